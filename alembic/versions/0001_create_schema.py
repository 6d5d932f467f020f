from __future__ import annotations

from alembic import op

from cardapio.core.database import Base
import cardapio.models  # noqa: F401

revision = "0001_create_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # restaurants, coupons, coupon_redemptions, orders, order_payments,
    # restaurant_subscription_payments, reservations
    Base.metadata.create_all(bind=op.get_bind())


def downgrade() -> None:
    Base.metadata.drop_all(bind=op.get_bind())
