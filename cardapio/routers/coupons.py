from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from cardapio.core.database import get_db
from cardapio.core.errors import CardapioError
from cardapio.deps import raise_http_error
from cardapio.services.discounts import apply_coupon
from cardapio.services.money import to_money
from cardapio.services.orders import get_restaurant

router = APIRouter(prefix="/api", tags=["coupons"])


class ValidateCouponPayload(BaseModel):
    code: str
    subtotal: Decimal = Field(..., ge=0)


class ValidateCouponResponse(BaseModel):
    valid: bool
    code: str
    coupon_id: int
    discount_amount: float
    subtotal: float
    new_total: float
    message: str


@router.post("/restaurants/{restaurant_id}/coupons/validate", response_model=ValidateCouponResponse)
def validate_coupon(
    restaurant_id: int,
    payload: ValidateCouponPayload,
    db: Session = Depends(get_db),
):
    try:
        restaurant = get_restaurant(db, restaurant_id)
        applied = apply_coupon(db, restaurant_id=restaurant.id, code=payload.code, subtotal=payload.subtotal)
    except CardapioError as exc:
        raise_http_error(exc)

    subtotal = to_money(payload.subtotal)
    return ValidateCouponResponse(
        valid=True,
        code=applied.code,
        coupon_id=applied.coupon_id,
        discount_amount=float(applied.discount_amount),
        subtotal=float(subtotal),
        new_total=float(subtotal - applied.discount_amount),
        message=f"Cupom {applied.code} aplicado!",
    )
