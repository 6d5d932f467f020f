"""Montagem do texto do pedido enviado ao WhatsApp do restaurante.

O mesmo texto é mostrado ao cliente para conferência e enviado sem alterações
para a equipe, por isso a montagem é determinística: mesma entrada, mesmos bytes.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Sequence

from cardapio.core.errors import MissingDeliveryAddress
from cardapio.schemas.orders import MessageOptions, OrderItem
from cardapio.services.money import ZERO, format_currency, to_money

DIVIDER = "━━━━━━━━━━━━━━━━━━━━━━━"
PICKUP_NOTICE = "🏪 *Retirada no local*"
SIGNATURE = "_Enviado via Cardápio Digital_ 🚀"


def calculate_item_total(item: OrderItem) -> Decimal:
    """(preço unitário + soma das opções) x quantidade."""
    unit_total = to_money(item.price)
    for option in item.selected_options:
        for option_item in option.items:
            unit_total += to_money(option_item.item_price)
    return to_money(unit_total * item.quantity)


def calculate_subtotal(items: Iterable[OrderItem]) -> Decimal:
    return to_money(sum((calculate_item_total(item) for item in items), ZERO))


def calculate_order_total(subtotal, discount_amount=ZERO, delivery_fee=ZERO) -> Decimal:
    subtotal = to_money(subtotal)
    discount = min(to_money(discount_amount), subtotal)
    return to_money(subtotal - discount + to_money(delivery_fee))


def _header(customer_name: str, table) -> list[str]:
    name = customer_name.strip()
    customer_info = f"{name} (Mesa {table})" if table not in (None, "") else name
    return [f"🍽️ *Pedido - {customer_info}*", DIVIDER, ""]


def _item_block(item: OrderItem) -> list[str]:
    lines = [
        f"*{item.quantity}x {item.name}*",
        f"   {format_currency(item.price)} cada",
    ]
    for option in item.selected_options:
        lines.append(f"   _{option.option_name}:_")
        for option_item in option.items:
            price = to_money(option_item.item_price)
            suffix = f" (+{format_currency(price)})" if price > ZERO else ""
            lines.append(f"      • {option_item.item_name}{suffix}")

    if item.observations and item.observations.strip():
        lines.append(f"   📝 _{item.observations.strip()}_")

    lines.append(f"   Subtotal: {format_currency(calculate_item_total(item))}")
    lines.append("")
    return lines


def _totals_block(subtotal: Decimal, options: MessageOptions) -> list[str]:
    discount = min(to_money(options.discount_amount), subtotal)
    delivery_fee = to_money(options.delivery_fee)

    lines = [DIVIDER, f"*Subtotal:* {format_currency(subtotal)}"]
    if discount > ZERO:
        label = f"Desconto ({options.coupon_code})" if options.coupon_code else "Desconto"
        lines.append(f"*{label}:* -{format_currency(discount)}")
    if delivery_fee > ZERO:
        lines.append(f"*Taxa de entrega:* {format_currency(delivery_fee)}")
    total = calculate_order_total(subtotal, discount, delivery_fee)
    lines.append(f"*Total:* {format_currency(total)}")
    lines.append(DIVIDER)
    return lines


def _fulfillment_block(options: MessageOptions) -> list[str]:
    if options.order_type != "delivery":
        return ["", PICKUP_NOTICE]
    address = (options.delivery_address or "").strip()
    if not address:
        raise MissingDeliveryAddress()
    return ["", "📍 *Entrega:*", address]


def build_order_message(
    items: Sequence[OrderItem],
    customer_name: str,
    table=None,
    options: MessageOptions | None = None,
) -> str:
    options = options or MessageOptions()

    lines = _header(customer_name, table)
    for item in items:
        lines.extend(_item_block(item))

    lines.extend(_totals_block(calculate_subtotal(items), options))
    lines.extend(_fulfillment_block(options))

    observations = (options.observations or "").strip()
    if observations:
        lines.extend(["", "📝 *Observações:*", observations])

    lines.extend(["", SIGNATURE])
    return "\n".join(lines)
