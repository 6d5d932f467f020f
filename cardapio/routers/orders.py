import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from cardapio.core.database import get_db
from cardapio.core.errors import CardapioError, MissingDeliveryAddress, ValidationError
from cardapio.core.request_context import set_request_context
from cardapio.deps import raise_http_error
from cardapio.models.order import Order
from cardapio.schemas.orders import MessageOptions, OrderItem, OrderPersistPayload, OrderType
from cardapio.services.discounts import apply_coupon
from cardapio.services.order_dispatch import DispatchOptions, OrderDispatcher
from cardapio.services.order_message import calculate_subtotal
from cardapio.services.orders import get_order, get_restaurant, persist_order, update_order_status
from cardapio.services.status_notifications import notify_order_status
from cardapio.whatsapp.launchers import ClientRedirectLauncher
from cardapio.whatsapp.links import detect_platform

router = APIRouter(prefix="/api", tags=["orders"])
logger = logging.getLogger(__name__)


class WhatsAppOrderPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[OrderItem]
    customer_name: str = Field(alias="customerName")
    customer_phone: str = Field("", alias="customerPhone")
    table_number: Optional[str] = Field(None, alias="tableNumber")
    observations: str = ""
    order_type: OrderType = Field("pickup", alias="orderType")
    delivery_address: Optional[str] = Field(None, alias="deliveryAddress")
    delivery_fee: Decimal = Field(Decimal("0"), ge=0, alias="deliveryFee")
    coupon_code: Optional[str] = Field(None, alias="couponCode")
    popup_allowed: bool = Field(True, alias="popupAllowed")
    open_in_new_tab: bool = Field(True, alias="openInNewTab")


class WhatsAppOrderResponse(BaseModel):
    message: str
    url: str
    delivery: str
    persisted: bool
    discount_amount: float


class OrderStatusUpdate(BaseModel):
    status: str
    notify: bool = True


def _order_to_dict(order: Order) -> Dict[str, Any]:
    return {
        "id": order.id,
        "restaurant_id": order.restaurant_id,
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "items": order.items_json or [],
        "subtotal": float(order.subtotal or 0),
        "discount_amount": float(order.discount_amount or 0),
        "delivery_fee": float(order.delivery_fee or 0),
        "total_amount": float(order.total_amount or 0),
        "coupon_id": order.coupon_id,
        "order_type": order.order_type,
        "delivery_address": order.delivery_address,
        "notes": order.notes,
        "table_number": order.table_number,
        "payment_method": order.payment_method,
        "status": order.status,
        "created_at": order.created_at,
    }


@router.post("/restaurants/{restaurant_id}/orders/whatsapp", response_model=WhatsAppOrderResponse)
def send_order_to_whatsapp(
    restaurant_id: int,
    payload: WhatsAppOrderPayload,
    request: Request,
    db: Session = Depends(get_db),
):
    set_request_context(restaurant_id=str(restaurant_id))
    launcher = ClientRedirectLauncher(popup_allowed=payload.popup_allowed)
    dispatcher = OrderDispatcher(launcher)

    try:
        restaurant = get_restaurant(db, restaurant_id)
        if payload.order_type == "delivery":
            if not restaurant.accepts_delivery:
                raise ValidationError("Este restaurante não aceita pedidos para entrega")
            if not (payload.delivery_address or "").strip():
                raise MissingDeliveryAddress()

        discount = Decimal("0")
        coupon_code = None
        if payload.coupon_code and payload.coupon_code.strip() and payload.items:
            applied = apply_coupon(
                db,
                restaurant_id=restaurant.id,
                code=payload.coupon_code,
                subtotal=calculate_subtotal(payload.items),
            )
            discount = applied.discount_amount
            coupon_code = applied.code

        options = DispatchOptions(
            phone=restaurant.whatsapp,
            restaurant_id=restaurant.id,
            customer_phone=payload.customer_phone,
            message=MessageOptions(
                observations=payload.observations,
                delivery_fee=payload.delivery_fee,
                discount_amount=discount,
                coupon_code=coupon_code,
                order_type=payload.order_type,
                delivery_address=payload.delivery_address,
            ),
            open_in_new_tab=payload.open_in_new_tab,
            platform_hint=detect_platform(request.headers.get("user-agent")),
        )
        result = dispatcher.dispatch(payload.items, payload.customer_name, payload.table_number, options)
    except CardapioError as exc:
        raise_http_error(exc)

    return WhatsAppOrderResponse(
        message=result.message,
        url=result.url,
        delivery=result.delivery,
        persisted=result.persisted,
        discount_amount=float(discount),
    )


@router.post("/orders", status_code=201)
def create_order(payload: OrderPersistPayload, db: Session = Depends(get_db)):
    set_request_context(restaurant_id=str(payload.restaurant_id))
    try:
        order = persist_order(db, payload)
        db.commit()
    except CardapioError as exc:
        db.rollback()
        raise_http_error(exc)
    except Exception as exc:
        db.rollback()
        logger.exception("order persist failed")
        raise HTTPException(status_code=500, detail="Erro ao salvar pedido") from exc

    db.refresh(order)
    return _order_to_dict(order)


@router.get("/orders/{order_id}")
def read_order(order_id: str, db: Session = Depends(get_db)):
    try:
        order = get_order(db, order_id)
    except CardapioError as exc:
        raise_http_error(exc)
    return _order_to_dict(order)


@router.patch("/orders/{order_id}/status")
def change_order_status(order_id: str, payload: OrderStatusUpdate, db: Session = Depends(get_db)):
    try:
        order = update_order_status(db, order_id, payload.status)
        db.commit()
    except CardapioError as exc:
        db.rollback()
        raise_http_error(exc)

    db.refresh(order)
    response = _order_to_dict(order)
    if not payload.notify:
        return response

    # o status já foi salvo; falha no aviso não desfaz a mudança
    try:
        notification = notify_order_status(db, order_id=order.id, restaurant_id=order.restaurant_id)
        response["notification"] = {"sent": notification.sent, "message": notification.message}
    except CardapioError as exc:
        logger.warning("status notification failed: %s", exc.message, extra={"order_id": order.id})
        response["notification"] = {"sent": False, "message": exc.message}
    return response
