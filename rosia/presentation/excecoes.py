"""
Tratamento centralizado de erros da API (REST_FRAMEWORK['EXCEPTION_HANDLER']).

Todo erro sai no formato {"success": false, "error": <mensagem>, "code": <código>}.
"""
import logging

from django.conf import settings
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from rosia.core.exceptions import (
    BaseErroCore,
    ConflitoError,
    DadosInvalidosError,
    ErroPersistencia,
    IntegracaoFalhouError,
    ItemNaoEncontradoError,
    PagamentoFalhouError,
    ServicoIndisponivelError,
)

logger = logging.getLogger(__name__)

# A ordem importa: a primeira classe compatível define o status HTTP.
_STATUS_POR_ERRO = (
    (DadosInvalidosError, status.HTTP_400_BAD_REQUEST),
    (ItemNaoEncontradoError, status.HTTP_404_NOT_FOUND),
    (ConflitoError, status.HTTP_409_CONFLICT),
    (PagamentoFalhouError, status.HTTP_402_PAYMENT_REQUIRED),
    (ServicoIndisponivelError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (IntegracaoFalhouError, status.HTTP_502_BAD_GATEWAY),
    (ErroPersistencia, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def _corpo(mensagem, codigo, **extras) -> dict:
    corpo = {'success': False, 'error': mensagem, 'code': codigo}
    corpo.update({chave: valor for chave, valor in extras.items() if valor is not None})
    return corpo


def _tratar_erro_core(exc: BaseErroCore) -> Response:
    http_status = next(
        (codigo for classe, codigo in _STATUS_POR_ERRO if isinstance(exc, classe)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    extras = {}
    if isinstance(exc, PagamentoFalhouError):
        extras['reason'] = exc.motivo
        extras['payment_id'] = exc.pagamento_id
    if isinstance(exc, ServicoIndisponivelError):
        extras['status'] = 'processing'

    if http_status >= 500 and not isinstance(exc, ServicoIndisponivelError):
        logger.error("Erro %s: %s", exc.codigo, exc.message, exc_info=exc)
    else:
        logger.info("Requisição recusada (%s): %s", exc.codigo, exc.message)

    return Response(_corpo(exc.message, exc.codigo, **extras), status=http_status)


def tratar_excecao(exc, context):
    """Converte exceções de domínio, do DRF e inesperadas na resposta padrão."""
    if isinstance(exc, BaseErroCore):
        return _tratar_erro_core(exc)

    if isinstance(exc, exceptions.ValidationError):
        return Response(
            _corpo("Os dados fornecidos são inválidos.", 'INVALID_DATA', details=exc.detail),
            status=status.HTTP_400_BAD_REQUEST,
        )

    response = exception_handler(exc, context)
    if response is not None:
        # Erros do próprio DRF (401, 403, 404, 405, ...) mantêm o status original.
        detalhe = response.data.get('detail', response.data) if isinstance(response.data, dict) else response.data
        codigo = getattr(detalhe, 'code', None) or getattr(exc, 'default_code', 'error')
        response.data = _corpo(str(detalhe), str(codigo).upper())
        return response

    view = context.get('view')
    logger.exception("Erro inesperado em %s", type(view).__name__ if view else 'view desconhecida', exc_info=exc)
    return Response(
        _corpo("Erro interno do servidor.", 'INTERNAL_ERROR', details=str(exc) if settings.DEBUG else None),
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
