from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from cardapio.core.errors import ValidationError
from cardapio.models.order import Order
from cardapio.models.payment import OrderPayment, SubscriptionPayment
from cardapio.services.money import ZERO, to_money
from cardapio.services.payment_webhook import is_paid, utcnow

logger = logging.getLogger(__name__)

ALLOWED_PAYMENT_STATUSES = {"pending", "received", "confirmed", "overdue", "refunded", "refund_requested"}
PAYMENT_METHODS = {"pix", "credit_card", "boleto"}


def _validate(asaas_payment_id: str, amount, payment_method: str, status: str):
    if not (asaas_payment_id or "").strip():
        raise ValidationError("Identificador do pagamento obrigatório")
    normalized_method = (payment_method or "").strip().lower()
    if normalized_method not in PAYMENT_METHODS:
        raise ValidationError("Forma de pagamento inválida")
    normalized_status = (status or "").strip().lower()
    if normalized_status not in ALLOWED_PAYMENT_STATUSES:
        raise ValidationError("Status de pagamento inválido")
    value = to_money(amount)
    if value <= ZERO:
        raise ValidationError("Valor do pagamento deve ser maior que zero")
    return asaas_payment_id.strip(), value, normalized_method, normalized_status


def _ensure_unique(db: Session, model, asaas_payment_id: str) -> None:
    exists = db.query(model.id).filter(model.asaas_payment_id == asaas_payment_id).first()
    if exists:
        raise ValidationError("Pagamento já registrado")


def register_order_payment(
    db: Session,
    *,
    order: Order,
    asaas_payment_id: str,
    amount,
    payment_method: str,
    status: str = "pending",
    invoice_url: str | None = None,
) -> OrderPayment:
    payment_id, value, method, normalized_status = _validate(asaas_payment_id, amount, payment_method, status)
    _ensure_unique(db, OrderPayment, payment_id)

    payment = OrderPayment(
        order_id=order.id,
        asaas_payment_id=payment_id,
        asaas_invoice_url=invoice_url,
        amount=value,
        payment_method=method,
        status=normalized_status,
        paid_at=utcnow() if is_paid(normalized_status) else None,
    )
    db.add(payment)
    logger.info("payment registered", extra={"payment_id": payment_id, "order_id": order.id})
    return payment


def register_subscription_payment(
    db: Session,
    *,
    restaurant_id: int,
    subscription_plan_id: str,
    asaas_payment_id: str,
    amount,
    payment_method: str,
    status: str = "pending",
    invoice_url: str | None = None,
) -> SubscriptionPayment:
    payment_id, value, method, normalized_status = _validate(asaas_payment_id, amount, payment_method, status)
    if not (subscription_plan_id or "").strip():
        raise ValidationError("Plano de assinatura obrigatório")
    _ensure_unique(db, SubscriptionPayment, payment_id)

    payment = SubscriptionPayment(
        restaurant_id=restaurant_id,
        subscription_plan_id=subscription_plan_id.strip(),
        asaas_payment_id=payment_id,
        asaas_invoice_url=invoice_url,
        amount=value,
        payment_method=method,
        status=normalized_status,
        paid_at=utcnow() if is_paid(normalized_status) else None,
    )
    db.add(payment)
    logger.info("subscription payment registered restaurant_id=%s", restaurant_id, extra={"payment_id": payment_id})
    return payment
