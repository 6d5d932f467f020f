"""Reconciliação dos eventos de pagamento enviados pelo Asaas.

Um mesmo `payment.id` pode existir como pagamento de pedido e como pagamento de
assinatura. As duas buscas são independentes e cada registro encontrado é
atualizado. Reenvios do mesmo evento levam ao mesmo estado final.
"""
from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Union

from sqlalchemy.orm import Session

from cardapio.core.config import ASAAS_API_KEY
from cardapio.core.errors import MalformedEvent, UnauthorizedError, WebhookNotConfigured
from cardapio.models.order import Order
from cardapio.models.payment import OrderPayment, SubscriptionPayment

logger = logging.getLogger(__name__)
WEBHOOK_PREFIX = "[ASAAS_WEBHOOK]"

ASAAS_STATUS_MAP = {
    "PENDING": "pending",
    "RECEIVED": "received",
    "CONFIRMED": "confirmed",
    "OVERDUE": "overdue",
    "REFUNDED": "refunded",
    "RECEIVED_IN_CASH": "received",
    "REFUND_REQUESTED": "refund_requested",
}
PAID_STATUSES = {"received", "confirmed"}


@dataclass(frozen=True)
class WebhookEvent:
    payment_id: str
    provider_status: str
    event: str | None = None


@dataclass
class OrderMatch:
    payment: OrderPayment
    order: Order | None


@dataclass
class SubscriptionMatch:
    payment: SubscriptionPayment


@dataclass
class NoMatch:
    payment_id: str


PaymentMatch = Union[OrderMatch, SubscriptionMatch, NoMatch]


@dataclass
class ReconciliationResult:
    payment_id: str
    status: str
    matches: list[PaymentMatch] = field(default_factory=list)
    changed: bool = False

    @property
    def matched(self) -> bool:
        return not any(isinstance(match, NoMatch) for match in self.matches)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def map_provider_status(raw_status: str | None) -> str:
    status = ASAAS_STATUS_MAP.get((raw_status or "").strip().upper())
    if status is None:
        logger.warning("%s unknown provider status=%s; using pending", WEBHOOK_PREFIX, raw_status)
        return "pending"
    return status


def is_paid(status: str) -> bool:
    return status in PAID_STATUSES


def authenticate(token: str | None, *, api_key: str | None = None) -> None:
    """Compara o token do header com a chave configurada, em tempo constante."""
    expected = ASAAS_API_KEY if api_key is None else api_key
    if not expected:
        logger.error("%s ASAAS_API_KEY not configured", WEBHOOK_PREFIX)
        raise WebhookNotConfigured()
    if not token or not hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("%s invalid access token", WEBHOOK_PREFIX)
        raise UnauthorizedError()


def parse_event(payload: Any) -> WebhookEvent:
    if not isinstance(payload, dict):
        raise MalformedEvent()
    payment = payload.get("payment")
    if not isinstance(payment, dict):
        raise MalformedEvent()

    payment_id = payment.get("id")
    provider_status = payment.get("status")
    if not payment_id or not isinstance(payment_id, str):
        raise MalformedEvent()
    if not provider_status or not isinstance(provider_status, str):
        raise MalformedEvent()

    event = payload.get("event")
    return WebhookEvent(
        payment_id=payment_id,
        provider_status=provider_status,
        event=event if isinstance(event, str) else None,
    )


def find_matches(db: Session, payment_id: str) -> list[PaymentMatch]:
    matches: list[PaymentMatch] = []

    order_payment = db.query(OrderPayment).filter(OrderPayment.asaas_payment_id == payment_id).first()
    if order_payment:
        order = db.query(Order).filter(Order.id == order_payment.order_id).first()
        matches.append(OrderMatch(payment=order_payment, order=order))

    subscription_payment = (
        db.query(SubscriptionPayment).filter(SubscriptionPayment.asaas_payment_id == payment_id).first()
    )
    if subscription_payment:
        matches.append(SubscriptionMatch(payment=subscription_payment))

    if not matches:
        matches.append(NoMatch(payment_id=payment_id))
    return matches


def _apply_payment_status(payment, status: str, now: datetime) -> bool:
    changed = False
    if payment.status != status:
        payment.status = status
        changed = True
    # paid_at só é preenchido uma vez
    if is_paid(status) and payment.paid_at is None:
        payment.paid_at = now
        changed = True
    return changed


def _confirm_order(order: Order | None) -> bool:
    if order is None or order.status != "pending":
        return False
    order.status = "confirmed"
    logger.info("%s order confirmed", WEBHOOK_PREFIX, extra={"order_id": order.id})
    return True


def reconcile(db: Session, event: WebhookEvent, *, now: datetime | None = None) -> ReconciliationResult:
    status = map_provider_status(event.provider_status)
    now = now or utcnow()
    result = ReconciliationResult(payment_id=event.payment_id, status=status)
    result.matches = find_matches(db, event.payment_id)

    for match in result.matches:
        if isinstance(match, OrderMatch):
            result.changed |= _apply_payment_status(match.payment, status, now)
            if is_paid(status):
                result.changed |= _confirm_order(match.order)
            logger.info(
                "%s order payment updated status=%s",
                WEBHOOK_PREFIX,
                status,
                extra={"payment_id": event.payment_id, "order_id": match.payment.order_id},
            )
        elif isinstance(match, SubscriptionMatch):
            result.changed |= _apply_payment_status(match.payment, status, now)
            logger.info(
                "%s subscription payment updated status=%s restaurant_id=%s",
                WEBHOOK_PREFIX,
                status,
                match.payment.restaurant_id,
                extra={"payment_id": event.payment_id},
            )
        else:
            logger.info("%s payment not found", WEBHOOK_PREFIX, extra={"payment_id": event.payment_id})

    return result


def handle_asaas_webhook(
    db: Session,
    *,
    token: str | None,
    payload: Any,
    api_key: str | None = None,
    now: datetime | None = None,
) -> ReconciliationResult:
    authenticate(token, api_key=api_key)
    event = parse_event(payload)
    logger.info(
        "%s received event=%s status=%s",
        WEBHOOK_PREFIX,
        event.event,
        event.provider_status,
        extra={"payment_id": event.payment_id},
    )
    result = reconcile(db, event, now=now)
    if result.changed:
        db.commit()
    return result
