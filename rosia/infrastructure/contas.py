"""
Contas autenticadas.

Há dois esquemas de perfil (cadastro por e-mail e cadastro via Google). Cada um
tem uma implementação própria com o mesmo contrato; a escolha é feita uma única
vez, em `resolver_conta`, no momento da autenticação.
"""
from typing import Optional

from rosia.core.entities import Conta


def _somente_digitos(valor: Optional[str]) -> Optional[str]:
    if not valor:
        return None
    digitos = ''.join(ch for ch in str(valor) if ch.isdigit())
    return digitos or None


class ContaLocal:
    """Conta de e-mail e senha: o perfil vive no próprio Usuario."""
    tipo = 'local'

    def __init__(self, usuario):
        self.usuario = usuario

    def _nome(self) -> str:
        return ' '.join(filter(None, [self.usuario.first_name, self.usuario.last_name])).strip()

    def para_entidade(self) -> Conta:
        return Conta(
            id=str(self.usuario.pk),
            tipo=self.tipo,
            email=self.usuario.email,
            nome=self._nome(),
            cpf=_somente_digitos(self.usuario.cpf),
            telefone=self.usuario.telefone,
        )


class ContaGoogle:
    """Conta criada via Google: nome, CPF e telefone vêm do PerfilGoogle."""
    tipo = 'google'

    def __init__(self, usuario, perfil):
        self.usuario = usuario
        self.perfil = perfil

    def para_entidade(self) -> Conta:
        nome = self.perfil.nome_completo if self.perfil else ''
        if not nome:
            nome = ' '.join(filter(None, [self.usuario.first_name, self.usuario.last_name])).strip()
        return Conta(
            id=str(self.usuario.pk),
            tipo=self.tipo,
            email=self.usuario.email,
            nome=nome,
            cpf=_somente_digitos(self.perfil.cpf if self.perfil else None),
            telefone=self.perfil.telefone if self.perfil else None,
        )


def resolver_conta(usuario):
    """Escolhe a implementação de conta pelo `tipo_conta` do usuário."""
    if usuario.tipo_conta == usuario.TIPO_GOOGLE:
        perfil = getattr(usuario, 'perfil_google', None)
        return ContaGoogle(usuario, perfil)
    return ContaLocal(usuario)
