from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

import httpx

from cardapio.core.config import (
    ORDER_PERSIST_TIMEOUT_SECONDS,
    ORDER_SAVE_ENDPOINT,
    ORDER_SAVE_TO_DB,
    RESTAURANT_WHATS_NUMBER,
)
from cardapio.core.errors import (
    ChannelBlocked,
    ChannelNotConfigured,
    EmptyOrder,
    MissingCustomerName,
    MissingDeliveryAddress,
    PersistenceError,
    TransientDeliveryError,
)
from cardapio.schemas.orders import MessageOptions, OrderItem, OrderPersistPayload
from cardapio.services.order_message import build_order_message, calculate_order_total, calculate_subtotal
from cardapio.whatsapp.launchers import ChannelLauncher
from cardapio.whatsapp.links import PlatformHint, build_channel_link, is_whatsapp_configured, normalize_phone

logger = logging.getLogger(__name__)
DISPATCH_PREFIX = "[ORDER_DISPATCH]"


@dataclass
class DispatchOptions:
    phone: str | None = None
    restaurant_id: int | None = None
    customer_phone: str = ""
    message: MessageOptions = field(default_factory=MessageOptions)
    save_to_db: bool | None = None
    save_endpoint: str | None = None
    open_in_new_tab: bool = True
    platform_hint: PlatformHint = "desktop"


@dataclass
class DispatchResult:
    message: str
    url: str
    delivery: str  # new_context / navigation
    persisted: bool


def build_persist_payload(
    items: Sequence[OrderItem],
    customer_name: str,
    table,
    options: DispatchOptions,
) -> dict[str, Any]:
    message_options = options.message
    subtotal = calculate_subtotal(items)
    payload = OrderPersistPayload(
        restaurant_id=options.restaurant_id,
        customer_name=customer_name.strip(),
        customer_phone=options.customer_phone or "",
        items=list(items),
        total=calculate_order_total(subtotal, message_options.discount_amount, message_options.delivery_fee),
        subtotal=subtotal,
        delivery_fee=message_options.delivery_fee,
        delivery_address=message_options.delivery_address or "",
        table_number=table,
        observations=message_options.observations or "",
        order_type=message_options.order_type,
        coupon_code=message_options.coupon_code,
        discount_amount=message_options.discount_amount,
    )
    return payload.model_dump(mode="json")


class OrderDispatcher:
    def __init__(
        self,
        launcher: ChannelLauncher,
        *,
        http_client: httpx.Client | None = None,
        default_phone: str = RESTAURANT_WHATS_NUMBER,
        save_to_db: bool = ORDER_SAVE_TO_DB,
        save_endpoint: str = ORDER_SAVE_ENDPOINT,
        timeout: float = ORDER_PERSIST_TIMEOUT_SECONDS,
    ) -> None:
        self.launcher = launcher
        self._http_client = http_client
        self.default_phone = default_phone
        self.save_to_db = save_to_db
        self.save_endpoint = save_endpoint
        self.timeout = timeout

    def dispatch(
        self,
        items: Sequence[OrderItem],
        customer_name: str,
        table=None,
        options: DispatchOptions | None = None,
    ) -> DispatchResult:
        options = options or DispatchOptions()

        if not items:
            raise EmptyOrder()
        if not customer_name or not customer_name.strip():
            raise MissingCustomerName()
        if options.message.order_type == "delivery" and not (options.message.delivery_address or "").strip():
            raise MissingDeliveryAddress()
        phone = normalize_phone(options.phone or self.default_phone)
        if not is_whatsapp_configured(phone):
            raise ChannelNotConfigured()

        message = build_order_message(items, customer_name, table, options.message)

        persisted = False
        if self._should_persist(options):
            persisted = self._persist_best_effort(items, customer_name, table, options)

        url = build_channel_link(options.platform_hint, phone, message)
        delivery = self._deliver(url, open_in_new_tab=options.open_in_new_tab)
        logger.info(
            "%s sent restaurant_id=%s items=%s delivery=%s persisted=%s",
            DISPATCH_PREFIX,
            options.restaurant_id,
            len(items),
            delivery,
            persisted,
        )
        return DispatchResult(message=message, url=url, delivery=delivery, persisted=persisted)

    def _should_persist(self, options: DispatchOptions) -> bool:
        save_to_db = self.save_to_db if options.save_to_db is None else options.save_to_db
        endpoint = options.save_endpoint or self.save_endpoint
        return bool(save_to_db and endpoint and options.restaurant_id is not None)

    def _persist(self, endpoint: str, payload: dict[str, Any]) -> None:
        try:
            if self._http_client is not None:
                response = self._http_client.post(endpoint, json=payload, timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(endpoint, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise PersistenceError(f"Falha ao salvar pedido no banco de dados: {exc}") from exc

    def _persist_best_effort(self, items, customer_name, table, options: DispatchOptions) -> bool:
        endpoint = options.save_endpoint or self.save_endpoint
        try:
            payload = build_persist_payload(items, customer_name, table, options)
            self._persist(endpoint, payload)
        except Exception:
            # o envio segue mesmo se falhar ao salvar
            logger.warning("%s persist failed endpoint=%s", DISPATCH_PREFIX, endpoint, exc_info=True)
            return False
        return True

    def _deliver(self, url: str, *, open_in_new_tab: bool) -> str:
        if open_in_new_tab:
            try:
                if self.launcher.open_new_context(url):
                    return "new_context"
                logger.warning("%s new context blocked; falling back to navigation", DISPATCH_PREFIX)
            except TransientDeliveryError as exc:
                logger.warning("%s new context failed (%s); falling back to navigation", DISPATCH_PREFIX, exc)

        try:
            self.launcher.navigate(url)
        except TransientDeliveryError as exc:
            logger.error("%s channel blocked url_length=%s", DISPATCH_PREFIX, len(url))
            raise ChannelBlocked() from exc
        return "navigation"
