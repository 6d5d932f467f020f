from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from cardapio.core.errors import (
    EmptyOrder,
    MissingCustomerName,
    MissingDeliveryAddress,
    OrderNotFound,
    RestaurantNotFound,
    ValidationError,
)
from cardapio.models.order import ORDER_STATUSES, Order
from cardapio.models.restaurant import Restaurant
from cardapio.schemas.orders import OrderPersistPayload
from cardapio.services.coupon_redemption import redeem_coupon
from cardapio.services.discounts import apply_coupon
from cardapio.services.money import ZERO, to_money
from cardapio.services.order_message import calculate_order_total, calculate_subtotal

logger = logging.getLogger(__name__)
ORDERS_PREFIX = "[ORDERS]"


def get_restaurant(db: Session, restaurant_id: int) -> Restaurant:
    restaurant = (
        db.query(Restaurant)
        .filter(Restaurant.id == restaurant_id, Restaurant.is_active.is_(True))
        .first()
    )
    if not restaurant:
        raise RestaurantNotFound()
    return restaurant


def get_order(db: Session, order_id: str) -> Order:
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise OrderNotFound()
    return order


def _resolve_order_type(payload: OrderPersistPayload) -> str:
    if payload.order_type:
        return payload.order_type
    if payload.delivery_address.strip() or to_money(payload.delivery_fee) > ZERO:
        return "delivery"
    return "pickup"


def persist_order(db: Session, payload: OrderPersistPayload, *, now: datetime | None = None) -> Order:
    """Grava o pedido enviado pelo WhatsApp.

    Os valores do cliente são recalculados aqui: subtotal pelos itens, desconto
    pelo cupom e total pela fórmula do pedido. O cupom é consumido uma vez.
    """
    restaurant = get_restaurant(db, payload.restaurant_id)

    if not payload.items:
        raise EmptyOrder()
    customer_name = payload.customer_name.strip()
    if not customer_name:
        raise MissingCustomerName()

    order_type = _resolve_order_type(payload)
    delivery_address = payload.delivery_address.strip()
    delivery_fee = to_money(payload.delivery_fee)
    if order_type == "delivery":
        if not restaurant.accepts_delivery:
            raise ValidationError("Este restaurante não aceita pedidos para entrega")
        if not delivery_address:
            raise MissingDeliveryAddress()
    else:
        delivery_address = ""
        delivery_fee = ZERO

    subtotal = calculate_subtotal(payload.items)
    discount = ZERO
    coupon_id = None
    if payload.coupon_code and payload.coupon_code.strip():
        applied = apply_coupon(
            db,
            restaurant_id=restaurant.id,
            code=payload.coupon_code,
            subtotal=subtotal,
            now=now,
        )
        discount = applied.discount_amount
        coupon_id = applied.coupon_id

    total = calculate_order_total(subtotal, discount, delivery_fee)
    if to_money(payload.total) != total:
        logger.warning(
            "%s client total differs client=%s server=%s restaurant_id=%s",
            ORDERS_PREFIX,
            to_money(payload.total),
            total,
            restaurant.id,
        )

    order = Order(
        restaurant_id=restaurant.id,
        customer_name=customer_name,
        customer_phone=(payload.customer_phone or "").strip() or None,
        items_json=[item.model_dump(mode="json") for item in payload.items],
        subtotal=subtotal,
        discount_amount=discount,
        delivery_fee=delivery_fee,
        total_amount=total,
        coupon_id=coupon_id,
        order_type=order_type,
        delivery_address=delivery_address or None,
        notes=(payload.observations or "").strip() or None,
        table_number=payload.table_number,
        payment_method=payload.method or "whatsapp",
        status="pending",
    )
    db.add(order)
    db.flush()

    if coupon_id is not None:
        redeem_coupon(db, coupon_id=coupon_id, order_id=order.id)

    logger.info(
        "%s created restaurant_id=%s total=%s coupon_id=%s",
        ORDERS_PREFIX,
        restaurant.id,
        total,
        coupon_id,
        extra={"order_id": order.id},
    )
    return order


def update_order_status(db: Session, order_id: str, status: str) -> Order:
    normalized = (status or "").strip().lower()
    if normalized not in ORDER_STATUSES:
        raise ValidationError("Status de pedido inválido")

    order = get_order(db, order_id)
    previous = order.status
    order.status = normalized
    logger.info(
        "%s status changed from=%s to=%s",
        ORDERS_PREFIX,
        previous,
        normalized,
        extra={"order_id": order.id},
    )
    return order
