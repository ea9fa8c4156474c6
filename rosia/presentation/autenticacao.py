"""
Autenticação JWT que resolve a conta do usuário uma única vez por requisição.
"""
from rest_framework_simplejwt.authentication import JWTAuthentication

from rosia.infrastructure.contas import resolver_conta


class ContaJWTAuthentication(JWTAuthentication):
    """
    JWTAuthentication do simplejwt + `request.user.conta`.

    As views leem `request.user.conta` (entidade Conta) e nunca distinguem
    usuários locais de usuários Google.
    """

    def get_user(self, validated_token):
        usuario = super().get_user(validated_token)
        usuario.conta = resolver_conta(usuario).para_entidade()
        return usuario
