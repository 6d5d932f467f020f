#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import sys
from decimal import Decimal
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from pydantic import ValidationError as PydanticValidationError  # noqa: E402

from cardapio.core.errors import CardapioError  # noqa: E402
from cardapio.core.logging_setup import configure_logging  # noqa: E402
from cardapio.schemas.orders import MessageOptions, OrderItem  # noqa: E402
from cardapio.services.order_dispatch import DispatchOptions, OrderDispatcher  # noqa: E402
from cardapio.services.order_message import build_order_message  # noqa: E402
from cardapio.whatsapp.launchers import BrowserLauncher  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Monta o pedido de um carrinho JSON e abre no WhatsApp.")
    parser.add_argument("cart", type=Path, help="Arquivo JSON com a lista de itens do carrinho")
    parser.add_argument("--name", required=True, help="Nome do cliente")
    parser.add_argument("--table", help="Número da mesa")
    parser.add_argument("--phone", help="WhatsApp do restaurante (padrão: RESTAURANT_WHATS_NUMBER)")
    parser.add_argument("--observations", default="", help="Observações gerais do pedido")
    parser.add_argument("--delivery-address", help="Endereço de entrega (ativa pedido para entrega)")
    parser.add_argument("--delivery-fee", type=Decimal, default=Decimal("0"), help="Taxa de entrega")
    parser.add_argument("--mobile", action="store_true", help="Gera link wa.me em vez do WhatsApp Web")
    parser.add_argument("--dry-run", action="store_true", help="Só imprime a mensagem, sem abrir o navegador")
    return parser.parse_args()


def _load_items(path: Path) -> list[OrderItem]:
    raw = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = raw.get("items") or []
    return [OrderItem.model_validate(item) for item in raw]


def main() -> int:
    args = parse_args()
    configure_logging()

    try:
        items = _load_items(args.cart)
    except (OSError, ValueError, PydanticValidationError) as exc:
        print(f"Carrinho inválido: {exc}")
        return 1

    is_delivery = bool(args.delivery_address and args.delivery_address.strip())
    message_options = MessageOptions(
        observations=args.observations,
        delivery_fee=args.delivery_fee,
        order_type="delivery" if is_delivery else "pickup",
        delivery_address=args.delivery_address,
    )

    if args.dry_run:
        print(build_order_message(items, args.name, args.table, message_options))
        return 0

    dispatcher = OrderDispatcher(BrowserLauncher(), save_to_db=False)
    options = DispatchOptions(
        phone=args.phone,
        message=message_options,
        platform_hint="mobile" if args.mobile else "desktop",
    )
    try:
        result = dispatcher.dispatch(items, args.name, args.table, options)
    except CardapioError as exc:
        print(exc.message)
        return 1

    print(result.message)
    print(f"\nLink ({result.delivery}): {result.url}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
