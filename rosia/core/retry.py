"""
Política de retentativa com número fixo de tentativas e intervalo fixo.

Usada no processamento de webhooks (busca do pedido / consulta da cobrança) e
no polling de rastreio junto à transportadora.
"""
import logging
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

from rosia.core.exceptions import ServicoIndisponivelError

logger = logging.getLogger(__name__)

T = TypeVar('T')


def _resultado_presente(resultado) -> bool:
    return resultado is not None


class PoliticaRetry:
    """
    Executa uma operação até `max_tentativas` vezes, aguardando `intervalo`
    segundos entre tentativas (nunca após a última).

    Uma tentativa "falha" quando o resultado não é aceito por `aceitar` ou quando
    levanta uma das `excecoes_transitorias`. Outras exceções propagam imediatamente.
    """

    def __init__(
        self,
        max_tentativas: int = 3,
        intervalo: float = 1.0,
        excecoes_transitorias: Tuple[Type[BaseException], ...] = (ServicoIndisponivelError,),
        dormir: Callable[[float], None] = time.sleep,
        nome: str = 'operacao',
    ):
        if max_tentativas < 1:
            raise ValueError("max_tentativas deve ser >= 1")
        self.max_tentativas = max_tentativas
        self.intervalo = intervalo
        self.excecoes_transitorias = excecoes_transitorias
        self.dormir = dormir
        self.nome = nome

    def executar(self, operacao: Callable[[], T], aceitar: Callable[[T], bool] = _resultado_presente) -> Optional[T]:
        """
        Retorna o primeiro resultado aceito. Esgotadas as tentativas, retorna o
        último resultado obtido, ou relança o erro transitório da última tentativa.
        """
        resultado = None
        for tentativa in range(1, self.max_tentativas + 1):
            ultima = tentativa == self.max_tentativas
            try:
                resultado = operacao()
            except self.excecoes_transitorias as e:
                if ultima:
                    logger.warning("%s: tentativas esgotadas (%s). Último erro: %s",
                                   self.nome, self.max_tentativas, e)
                    raise
                logger.info("%s: tentativa %s/%s falhou (%s)", self.nome, tentativa, self.max_tentativas, e)
            else:
                if aceitar(resultado):
                    return resultado
                if ultima:
                    logger.info("%s: nenhum resultado após %s tentativas", self.nome, self.max_tentativas)
                    return resultado
                logger.info("%s: tentativa %s/%s sem resultado", self.nome, tentativa, self.max_tentativas)

            self.dormir(self.intervalo)

        return resultado
