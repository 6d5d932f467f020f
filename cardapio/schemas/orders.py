from __future__ import annotations

from decimal import Decimal
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator, model_validator

OrderType = Literal["delivery", "pickup"]

# valores em reais; no JSON saem como número
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class _CartModel(BaseModel):
    # aceita o formato camelCase do carrinho do front e snake_case
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class OptionItem(_CartModel):
    item_name: str = Field(alias="itemName")
    item_price: Money = Field(default=Decimal("0"), ge=0, alias="itemPrice")


class SelectedOption(_CartModel):
    option_name: str = Field(alias="optionName")
    items: List[OptionItem] = Field(default_factory=list)


class OrderItem(_CartModel):
    id: str
    name: str
    price: Money = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    observations: Optional[str] = None
    selected_options: List[SelectedOption] = Field(default_factory=list, alias="selectedOptions")


class MessageOptions(BaseModel):
    observations: str = ""
    delivery_fee: Money = Field(default=Decimal("0"), ge=0)
    discount_amount: Money = Field(default=Decimal("0"), ge=0)
    coupon_code: Optional[str] = None
    order_type: OrderType = "pickup"
    delivery_address: Optional[str] = None

    @model_validator(mode="after")
    def _fee_only_for_delivery(self):
        # retirada não cobra taxa nem leva endereço
        if self.order_type != "delivery":
            self.delivery_fee = Decimal("0")
            self.delivery_address = None
        return self


class OrderPersistPayload(BaseModel):
    """Corpo enviado pelo dispatcher para o endpoint de persistência."""

    restaurant_id: int
    customer_name: str
    customer_phone: str = ""
    items: List[OrderItem]
    total: Money = Field(default=Decimal("0"), ge=0)
    subtotal: Money = Field(default=Decimal("0"), ge=0)
    delivery_fee: Money = Field(default=Decimal("0"), ge=0)
    delivery_address: str = ""
    table_number: Optional[str] = None
    method: str = "whatsapp"
    status: str = "sent_to_whatsapp"
    observations: str = ""
    order_type: Optional[OrderType] = None
    coupon_code: Optional[str] = None
    discount_amount: Money = Field(default=Decimal("0"), ge=0)

    @field_validator("table_number", mode="before")
    @classmethod
    def _table_as_text(cls, value):
        if value is None or value == "":
            return None
        return str(value).strip()
