# cardapio/deps.py
from __future__ import annotations

import logging
from typing import NoReturn

from fastapi import HTTPException, status

from cardapio.core.errors import (
    CardapioError,
    NotFoundError,
    PersistenceError,
    TransientDeliveryError,
    UnauthorizedError,
    ValidationError,
    WebhookNotConfigured,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (UnauthorizedError, status.HTTP_401_UNAUTHORIZED),
    (TransientDeliveryError, status.HTTP_502_BAD_GATEWAY),
    (PersistenceError, status.HTTP_502_BAD_GATEWAY),
    (WebhookNotConfigured, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_code_for(exc: CardapioError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def raise_http_error(exc: CardapioError) -> NoReturn:
    """Converte um erro de domínio no HTTPException equivalente."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error("domain error code=%s message=%s", exc.code, exc.message)
    raise HTTPException(status_code=status_code, detail=exc.message) from exc
