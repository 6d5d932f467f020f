import uuid

import sqlalchemy as sa
from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from cardapio.core.database import Base

ORDER_STATUSES = (
    "pending",
    "confirmed",
    "preparing",
    "ready",
    "out_for_delivery",
    "completed",
    "cancelled",
)


def _new_order_id() -> str:
    return str(uuid.uuid4())


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=_new_order_id)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), index=True, nullable=False)

    customer_name = Column(String(120), nullable=False)
    customer_phone = Column(String(30), nullable=True)

    items_json = Column(JSONB().with_variant(sa.JSON(), "sqlite"), nullable=False, default=list)

    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    delivery_fee = Column(Numeric(10, 2), nullable=False, default=0)
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    coupon_id = Column(Integer, ForeignKey("coupons.id"), nullable=True)

    order_type = Column(String(20), nullable=False, default="pickup")  # delivery / pickup
    delivery_address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    table_number = Column(String(20), nullable=True)
    payment_method = Column(String(30), nullable=False, default="whatsapp")

    status = Column(String(30), nullable=False, default="pending", index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    restaurant = relationship("Restaurant")
    payments = relationship("OrderPayment", back_populates="order", cascade="all, delete-orphan")
    coupon_redemption = relationship("CouponRedemption", back_populates="order", uselist=False)
