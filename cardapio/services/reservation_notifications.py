"""Avisos de nova reserva: alerta para o restaurante e confirmação para o cliente."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable

from sqlalchemy.orm import Session

from cardapio.core.errors import NotificationDeliveryError, ReservationNotFound
from cardapio.models.reservation import Reservation
from cardapio.models.restaurant import Restaurant
from cardapio.services.orders import get_restaurant
from cardapio.whatsapp.cloud import WhatsAppCloudClient, client_for_restaurant

logger = logging.getLogger(__name__)
RESERVATION_PREFIX = "[RESERVATION_NOTIFY]"

_default_client_factory = client_for_restaurant


@dataclass
class ReservationNotificationResult:
    sent: bool
    message: str
    customer_notified: bool = False


def format_reservation_date(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def render_restaurant_alert(reservation: Reservation) -> str:
    lines = [
        "🔔 *NOVA RESERVA RECEBIDA*",
        "",
        f"📅 *Data:* {format_reservation_date(reservation.reservation_date)}",
        f"🕐 *Horário:* {reservation.reservation_time}",
        f"👥 *Pessoas:* {reservation.party_size}",
        f"👤 *Cliente:* {reservation.customer_name}",
        f"📱 *Telefone:* {reservation.customer_phone or ''}",
        f"🔑 *Código:* {reservation.confirmation_code}",
    ]
    if reservation.notes:
        lines.append(f"📝 *Observações:* {reservation.notes}")
    lines.extend(["", "⚠️ *Aguardando confirmação no painel administrativo*"])
    return "\n".join(lines)


def render_customer_confirmation(restaurant_name: str, reservation: Reservation) -> str:
    return (
        f"✅ *Reserva Solicitada - {restaurant_name}*\n\n"
        f"Olá {reservation.customer_name}! Sua reserva foi registrada.\n\n"
        f"📅 *Data:* {format_reservation_date(reservation.reservation_date)}\n"
        f"🕐 *Horário:* {reservation.reservation_time}\n"
        f"👥 *Pessoas:* {reservation.party_size}\n"
        f"🔑 *Código de Confirmação:* {reservation.confirmation_code}\n\n"
        "⏳ Aguardando confirmação do restaurante.\n"
        "Guarde este código para apresentar na chegada!"
    )


def get_reservation(db: Session, reservation_id: str, restaurant_id: int) -> Reservation:
    reservation = (
        db.query(Reservation)
        .filter(Reservation.id == reservation_id, Reservation.restaurant_id == restaurant_id)
        .first()
    )
    if not reservation:
        raise ReservationNotFound()
    return reservation


def notify_reservation(
    db: Session,
    *,
    reservation_id: str,
    restaurant_id: int,
    client_factory: Callable[[Restaurant], WhatsAppCloudClient] | None = None,
) -> ReservationNotificationResult:
    """Envia o alerta ao restaurante e, se houver telefone, a confirmação ao cliente.

    Falha no alerta do restaurante sobe como NotificationDeliveryError. Falha na
    confirmação do cliente só é registrada no log.
    """
    restaurant = get_restaurant(db, restaurant_id)
    reservation = get_reservation(db, reservation_id, restaurant.id)

    if not restaurant.whatsapp or not restaurant.whatsapp_api_token or not restaurant.whatsapp_phone_number_id:
        logger.info("%s whatsapp not connected restaurant_id=%s", RESERVATION_PREFIX, restaurant.id)
        return ReservationNotificationResult(sent=False, message="WhatsApp não conectado - notificação não enviada")

    client = (client_factory or _default_client_factory)(restaurant)
    client.send_text(restaurant.whatsapp, render_restaurant_alert(reservation))
    logger.info("%s restaurant alert sent reservation_id=%s", RESERVATION_PREFIX, reservation.id)

    customer_notified = False
    if reservation.customer_phone:
        try:
            client.send_text(reservation.customer_phone, render_customer_confirmation(restaurant.name, reservation))
            customer_notified = True
        except NotificationDeliveryError as exc:
            logger.warning("%s customer confirmation failed: %s", RESERVATION_PREFIX, exc.message)

    return ReservationNotificationResult(
        sent=True,
        message="Notificações enviadas com sucesso",
        customer_notified=customer_notified,
    )
