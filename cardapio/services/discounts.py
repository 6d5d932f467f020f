from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from cardapio.core.errors import (
    CouponBelowMinimum,
    CouponExpired,
    CouponNotFound,
    CouponNotYetValid,
    CouponUsageLimitReached,
    InvalidCouponCode,
    InvalidCouponType,
)
from cardapio.models.coupon import Coupon
from cardapio.services.money import ZERO, to_money

logger = logging.getLogger(__name__)
COUPON_PREFIX = "[COUPON]"

COUPON_TYPES = {"percentage", "fixed"}


@dataclass(frozen=True)
class CouponDiscount:
    discount_amount: Decimal
    coupon_id: int
    code: str


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_coupon_code(raw_code: str | None) -> str:
    return (raw_code or "").strip().upper()


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def find_active_coupon(db: Session, *, restaurant_id: int, code: str) -> Coupon:
    coupon = (
        db.query(Coupon)
        .filter(
            Coupon.restaurant_id == restaurant_id,
            func.upper(Coupon.code) == code,
            Coupon.is_active.is_(True),
        )
        .first()
    )
    if not coupon:
        raise CouponNotFound()
    return coupon


def check_coupon(coupon: Coupon, subtotal: Decimal, now: datetime) -> None:
    """Valida janela de datas, limite de usos e pedido mínimo, nessa ordem."""
    if coupon.start_date and _as_aware(coupon.start_date) > now:
        raise CouponNotYetValid()
    if coupon.end_date and _as_aware(coupon.end_date) < now:
        raise CouponExpired()

    if coupon.max_uses is not None and int(coupon.current_uses or 0) >= int(coupon.max_uses):
        raise CouponUsageLimitReached()

    min_order = to_money(coupon.min_order)
    if subtotal < min_order:
        raise CouponBelowMinimum(min_order)


def compute_discount(coupon: Coupon, subtotal: Decimal) -> Decimal:
    coupon_type = (coupon.type or "").strip().lower()
    if coupon_type not in COUPON_TYPES:
        raise InvalidCouponType()

    value = Decimal(str(coupon.value or 0))
    if coupon_type == "percentage":
        discount = to_money(subtotal * value / Decimal("100"))
    else:
        discount = to_money(value)

    # desconto nunca maior que o subtotal nem negativo
    if discount > subtotal:
        discount = subtotal
    if discount < ZERO:
        discount = ZERO
    return discount


def apply_coupon(
    db: Session,
    *,
    restaurant_id: int,
    code: str | None,
    subtotal,
    now: datetime | None = None,
) -> CouponDiscount:
    normalized = normalize_coupon_code(code)
    if not normalized:
        raise InvalidCouponCode()

    order_subtotal = to_money(subtotal)
    coupon = find_active_coupon(db, restaurant_id=restaurant_id, code=normalized)
    try:
        check_coupon(coupon, order_subtotal, now or utcnow())
        discount = compute_discount(coupon, order_subtotal)
    except Exception as exc:
        logger.info(
            "%s rejected restaurant_id=%s code=%s reason=%s",
            COUPON_PREFIX,
            restaurant_id,
            normalized,
            getattr(exc, "code", type(exc).__name__),
        )
        raise

    logger.info(
        "%s applied restaurant_id=%s code=%s subtotal=%s discount=%s",
        COUPON_PREFIX,
        restaurant_id,
        normalized,
        order_subtotal,
        discount,
    )
    return CouponDiscount(discount_amount=discount, coupon_id=coupon.id, code=normalized)
