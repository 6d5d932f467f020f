"""Aviso ao cliente quando o status do pedido muda."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from sqlalchemy.orm import Session

from cardapio.core.config import PUBLIC_TRACKING_BASE_URL
from cardapio.core.errors import OrderNotFound
from cardapio.models.order import Order
from cardapio.models.restaurant import Restaurant
from cardapio.services.money import to_money
from cardapio.services.orders import get_order, get_restaurant
from cardapio.whatsapp.cloud import WhatsAppCloudClient, client_for_restaurant

logger = logging.getLogger(__name__)
NOTIFY_PREFIX = "[STATUS_NOTIFY]"

STATUS_MESSAGES = {
    "pending": "⏳ Seu pedido foi recebido e está aguardando confirmação.",
    "confirmed": "✅ Seu pedido foi confirmado e será preparado em breve!",
    "preparing": "👨‍🍳 Seu pedido está sendo preparado com carinho!",
    "ready": "🎉 Seu pedido está pronto para retirada!",
    "out_for_delivery": "🚚 Seu pedido saiu para entrega e chegará em breve!",
    "completed": "✅ Pedido concluído! Obrigado pela preferência!",
    "cancelled": "❌ Seu pedido foi cancelado. Entre em contato conosco para mais informações.",
}


@dataclass
class NotificationResult:
    sent: bool
    message: str


def status_message(status: str) -> str:
    return STATUS_MESSAGES.get(status, f"Status atualizado: {status}")


def tracking_url(order_id: str, base_url: str = PUBLIC_TRACKING_BASE_URL) -> str:
    return f"{base_url.rstrip('/')}/pedido?id={order_id}"


def render_status_notification(
    *,
    restaurant_name: str,
    order: Order,
    status: str,
    base_url: str = PUBLIC_TRACKING_BASE_URL,
) -> str:
    total = to_money(order.total_amount)
    return (
        f"*{restaurant_name}*\n\n"
        f"{status_message(status)}\n\n"
        f"*Pedido:* #{str(order.id)[:8]}\n"
        f"*Cliente:* {order.customer_name}\n"
        f"*Total:* R$ {total:.2f}\n\n"
        f"Acompanhe seu pedido: {tracking_url(str(order.id), base_url)}"
    )


_default_client_factory = client_for_restaurant


def notify_order_status(
    db: Session,
    *,
    order_id: str,
    restaurant_id: int,
    status: str | None = None,
    client_factory: Callable[[Restaurant], WhatsAppCloudClient] | None = None,
) -> NotificationResult:
    restaurant = get_restaurant(db, restaurant_id)
    order = get_order(db, order_id)
    if order.restaurant_id != restaurant.id:
        raise OrderNotFound()
    new_status = status or order.status

    if not order.customer_phone:
        logger.info("%s customer without phone", NOTIFY_PREFIX, extra={"order_id": order.id})
        return NotificationResult(sent=False, message="Cliente sem telefone cadastrado")
    if not restaurant.whatsapp_api_token or not restaurant.whatsapp_phone_number_id:
        logger.info("%s whatsapp token not configured restaurant_id=%s", NOTIFY_PREFIX, restaurant.id)
        return NotificationResult(sent=False, message="Token do WhatsApp não configurado")

    text = render_status_notification(restaurant_name=restaurant.name, order=order, status=new_status)
    client = (client_factory or _default_client_factory)(restaurant)
    client.send_text(order.customer_phone, text)

    logger.info("%s sent status=%s", NOTIFY_PREFIX, new_status, extra={"order_id": order.id})
    return NotificationResult(sent=True, message="Notificação enviada com sucesso")
