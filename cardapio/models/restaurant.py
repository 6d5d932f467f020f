from sqlalchemy import Boolean, Column, DateTime, Integer, String, func

from cardapio.core.database import Base


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True)
    name = Column(String(120), nullable=False)
    # Somente dígitos, com DDI (ex: 5511999990000)
    whatsapp = Column(String(20), nullable=True)
    accepts_delivery = Column(Boolean, nullable=False, default=True)

    # Credenciais da WhatsApp Cloud API usadas nas notificações de status
    whatsapp_api_token = Column(String, nullable=True)
    whatsapp_phone_number_id = Column(String(40), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
