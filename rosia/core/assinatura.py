"""
Verificação da assinatura HMAC das notificações do gateway de pagamento.
"""
import hashlib
import hmac
from typing import Optional, Union


class VerificadorAssinaturaWebhook:
    """HMAC-SHA256 (hex) de `"{request_id}.{corpo_bruto}"` com o segredo compartilhado."""

    OK = 'ok'
    DIVERGENTE = 'mismatch'
    NAO_VERIFICADA = 'skipped'

    def __init__(self, segredo: Optional[str]):
        self.segredo = segredo or None

    def assinar(self, request_id: str, corpo_bruto: Union[bytes, str]) -> str:
        if isinstance(corpo_bruto, bytes):
            corpo_bruto = corpo_bruto.decode('utf-8', errors='replace')
        mensagem = f"{request_id or ''}.{corpo_bruto}".encode('utf-8')
        return hmac.new(self.segredo.encode('utf-8'), mensagem, hashlib.sha256).hexdigest()

    @staticmethod
    def extrair_assinatura(cabecalho: str) -> str:
        """Aceita tanto o hex puro quanto o formato `ts=...,v1=<hex>`."""
        for parte in cabecalho.split(','):
            chave, _, valor = parte.strip().partition('=')
            if chave == 'v1' and valor:
                return valor.strip()
        return cabecalho.strip()

    def verificar(self, request_id: Optional[str], corpo_bruto: Union[bytes, str],
                  cabecalho_assinatura: Optional[str]) -> str:
        if not self.segredo or not cabecalho_assinatura:
            return self.NAO_VERIFICADA

        esperado = self.assinar(request_id or '', corpo_bruto)
        recebido = self.extrair_assinatura(cabecalho_assinatura)
        if hmac.compare_digest(esperado, recebido.lower()):
            return self.OK
        return self.DIVERGENTE
