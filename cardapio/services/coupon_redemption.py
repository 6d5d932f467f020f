from __future__ import annotations

import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cardapio.core.errors import CouponUsageLimitReached
from cardapio.models.coupon import Coupon, CouponRedemption

logger = logging.getLogger(__name__)
COUPON_PREFIX = "[COUPON]"


def find_redemption(db: Session, order_id: str) -> CouponRedemption | None:
    return db.query(CouponRedemption).filter(CouponRedemption.order_id == order_id).first()


def redeem_coupon(db: Session, *, coupon_id: int, order_id: str) -> bool:
    """Consome um uso do cupom para o pedido. Retorna False se o pedido já consumiu.

    O incremento é feito no banco (`current_uses + 1`) e só acontece enquanto
    houver usos disponíveis; a unicidade de `order_id` garante um uso por pedido.
    """
    if find_redemption(db, order_id):
        logger.info("%s already redeemed coupon_id=%s", COUPON_PREFIX, coupon_id, extra={"order_id": order_id})
        return False

    try:
        with db.begin_nested():
            db.add(CouponRedemption(coupon_id=coupon_id, order_id=order_id))
            db.flush()
            updated = (
                db.query(Coupon)
                .filter(
                    Coupon.id == coupon_id,
                    or_(Coupon.max_uses.is_(None), Coupon.current_uses < Coupon.max_uses),
                )
                .update({Coupon.current_uses: Coupon.current_uses + 1}, synchronize_session=False)
            )
            if not updated:
                raise CouponUsageLimitReached()
    except IntegrityError:
        logger.info("%s concurrent redemption coupon_id=%s", COUPON_PREFIX, coupon_id, extra={"order_id": order_id})
        return False

    coupon = db.get(Coupon, coupon_id)
    if coupon is not None:
        db.expire(coupon, ["current_uses"])
    logger.info("%s redeemed coupon_id=%s", COUPON_PREFIX, coupon_id, extra={"order_id": order_id})
    return True
