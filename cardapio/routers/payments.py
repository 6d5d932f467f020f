from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from cardapio.core.database import get_db
from cardapio.core.errors import CardapioError
from cardapio.deps import raise_http_error
from cardapio.services.orders import get_order, get_restaurant
from cardapio.services.payment_webhook import NoMatch, OrderMatch, find_matches
from cardapio.services.payments import register_order_payment, register_subscription_payment

router = APIRouter(prefix="/api", tags=["payments"])


class OrderPaymentCreate(BaseModel):
    asaas_payment_id: str
    amount: Decimal = Field(..., gt=0)
    payment_method: str
    status: str = "pending"
    invoice_url: Optional[str] = None


class SubscriptionPaymentCreate(OrderPaymentCreate):
    subscription_plan_id: str


class PaymentRead(BaseModel):
    kind: str
    id: int
    asaas_payment_id: str
    asaas_invoice_url: Optional[str]
    amount: float
    payment_method: str
    status: str
    paid_at: Optional[datetime]
    order_id: Optional[str] = None
    restaurant_id: Optional[int] = None
    subscription_plan_id: Optional[str] = None


def _payment_to_dict(payment, kind: str) -> dict:
    data = {
        "kind": kind,
        "id": payment.id,
        "asaas_payment_id": payment.asaas_payment_id,
        "asaas_invoice_url": payment.asaas_invoice_url,
        "amount": float(payment.amount),
        "payment_method": payment.payment_method,
        "status": payment.status,
        "paid_at": payment.paid_at,
    }
    if kind == "order":
        data["order_id"] = payment.order_id
    else:
        data["restaurant_id"] = payment.restaurant_id
        data["subscription_plan_id"] = payment.subscription_plan_id
    return data


def _commit_payment(db: Session, create):
    try:
        payment = create()
        db.commit()
    except CardapioError as exc:
        db.rollback()
        raise_http_error(exc)
    except Exception as exc:
        db.rollback()
        raise HTTPException(status_code=500, detail="Erro ao registrar pagamento") from exc
    db.refresh(payment)
    return payment


@router.post("/orders/{order_id}/payments", response_model=PaymentRead, status_code=201)
def create_order_payment(order_id: str, payload: OrderPaymentCreate, db: Session = Depends(get_db)):
    try:
        order = get_order(db, order_id)
    except CardapioError as exc:
        raise_http_error(exc)

    payment = _commit_payment(
        db,
        lambda: register_order_payment(
            db,
            order=order,
            asaas_payment_id=payload.asaas_payment_id,
            amount=payload.amount,
            payment_method=payload.payment_method,
            status=payload.status,
            invoice_url=payload.invoice_url,
        ),
    )
    return _payment_to_dict(payment, "order")


@router.post(
    "/restaurants/{restaurant_id}/subscription-payments",
    response_model=PaymentRead,
    status_code=201,
)
def create_subscription_payment(
    restaurant_id: int,
    payload: SubscriptionPaymentCreate,
    db: Session = Depends(get_db),
):
    try:
        restaurant = get_restaurant(db, restaurant_id)
    except CardapioError as exc:
        raise_http_error(exc)

    payment = _commit_payment(
        db,
        lambda: register_subscription_payment(
            db,
            restaurant_id=restaurant.id,
            subscription_plan_id=payload.subscription_plan_id,
            asaas_payment_id=payload.asaas_payment_id,
            amount=payload.amount,
            payment_method=payload.payment_method,
            status=payload.status,
            invoice_url=payload.invoice_url,
        ),
    )
    return _payment_to_dict(payment, "subscription")


@router.get("/payments/{asaas_payment_id}", response_model=List[PaymentRead])
def read_payment_records(asaas_payment_id: str, db: Session = Depends(get_db)):
    matches = find_matches(db, asaas_payment_id)
    if any(isinstance(match, NoMatch) for match in matches):
        raise HTTPException(status_code=404, detail="Pagamento não encontrado")
    return [
        _payment_to_dict(match.payment, "order" if isinstance(match, OrderMatch) else "subscription")
        for match in matches
    ]
