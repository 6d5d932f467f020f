from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from cardapio.core.database import get_db
from cardapio.core.errors import CardapioError
from cardapio.deps import raise_http_error
from cardapio.services.reservation_notifications import notify_reservation
from cardapio.services.status_notifications import notify_order_status

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


class OrderStatusNotification(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(alias="orderId")
    restaurant_id: int = Field(alias="restaurantId")
    new_status: str = Field(alias="newStatus")


class ReservationNotification(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reservation_id: str = Field(alias="reservationId")
    restaurant_id: int = Field(alias="restaurantId")


@router.post("/order-status")
def send_order_status_notification(payload: OrderStatusNotification, db: Session = Depends(get_db)):
    try:
        result = notify_order_status(
            db,
            order_id=payload.order_id,
            restaurant_id=payload.restaurant_id,
            status=payload.new_status,
        )
    except CardapioError as exc:
        raise_http_error(exc)

    if not result.sent:
        return {"success": False, "message": result.message}
    return {"success": True, "message": result.message}


@router.post("/reservation")
def send_reservation_notification(payload: ReservationNotification, db: Session = Depends(get_db)):
    try:
        result = notify_reservation(
            db,
            reservation_id=payload.reservation_id,
            restaurant_id=payload.restaurant_id,
        )
    except CardapioError as exc:
        raise_http_error(exc)

    if not result.sent:
        return {"success": False, "message": result.message}
    return {"success": True, "message": result.message, "customer_notified": result.customer_notified}
