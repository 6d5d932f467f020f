import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from cardapio.core.config import ASAAS_WEBHOOK_TOKEN_HEADER
from cardapio.core.database import get_db
from cardapio.core.errors import CardapioError, MalformedEvent
from cardapio.deps import status_code_for
from cardapio.services.payment_webhook import WEBHOOK_PREFIX, authenticate, handle_asaas_webhook

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])
logger = logging.getLogger(__name__)


def _error(exc: CardapioError) -> JSONResponse:
    return JSONResponse(status_code=status_code_for(exc), content={"error": exc.message})


@router.post("/asaas")
async def asaas_webhook(request: Request, db: Session = Depends(get_db)):
    token = request.headers.get(ASAAS_WEBHOOK_TOKEN_HEADER)

    # autentica antes de ler o corpo
    try:
        authenticate(token)
    except CardapioError as exc:
        return _error(exc)

    raw_body = await request.body()
    try:
        payload = json.loads(raw_body or b"null")
    except ValueError:
        return _error(MalformedEvent())

    try:
        result = handle_asaas_webhook(db, token=token, payload=payload)
    except CardapioError as exc:
        db.rollback()
        return _error(exc)
    except Exception as exc:
        db.rollback()
        logger.exception("%s processing failed", WEBHOOK_PREFIX)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    return {"success": True, "status": result.status, "matched": result.matched}
