import uuid

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Text, func

from cardapio.core.database import Base


def _new_reservation_id() -> str:
    return str(uuid.uuid4())


def _new_confirmation_code() -> str:
    return uuid.uuid4().hex[:8].upper()


class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(String(36), primary_key=True, default=_new_reservation_id)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), index=True, nullable=False)

    customer_name = Column(String(120), nullable=False)
    customer_phone = Column(String(30), nullable=True)
    customer_email = Column(String(255), nullable=True)

    reservation_date = Column(Date, nullable=False)
    reservation_time = Column(String(5), nullable=False)  # HH:MM
    party_size = Column(Integer, nullable=False)
    confirmation_code = Column(String(12), nullable=False, default=_new_confirmation_code)
    notes = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
