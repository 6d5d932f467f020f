import json
from decimal import Decimal

import httpx
import pytest

from cardapio.core.errors import (
    ChannelBlocked,
    ChannelNotConfigured,
    EmptyOrder,
    MissingCustomerName,
    MissingDeliveryAddress,
    TransientDeliveryError,
)
from cardapio.schemas.orders import MessageOptions, OrderItem
from cardapio.services.order_dispatch import DispatchOptions, OrderDispatcher
from cardapio.whatsapp.launchers import ClientRedirectLauncher
from tests.fixtures_data import PIZZA_CART

SAVE_ENDPOINT = "http://orders.local/api/orders"


class RecordingLauncher:
    def __init__(self, *, new_context_ok=True, navigate_ok=True):
        self.new_context_ok = new_context_ok
        self.navigate_ok = navigate_ok
        self.calls = []

    def open_new_context(self, url):
        self.calls.append(("new_context", url))
        return self.new_context_ok

    def navigate(self, url):
        self.calls.append(("navigate", url))
        if not self.navigate_ok:
            raise TransientDeliveryError("navegação bloqueada")


def _items():
    return [OrderItem.model_validate(item) for item in PIZZA_CART]


def _mock_client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_dispatch_opens_new_context_when_allowed():
    launcher = RecordingLauncher()
    dispatcher = OrderDispatcher(launcher, default_phone="5511999990000", save_to_db=False)

    result = dispatcher.dispatch(_items(), "Ana", options=DispatchOptions(platform_hint="mobile"))

    assert result.delivery == "new_context"
    assert result.url.startswith("https://wa.me/5511999990000?text=")
    assert launcher.calls == [("new_context", result.url)]
    assert result.persisted is False


def test_blocked_new_context_falls_back_to_single_navigation():
    launcher = RecordingLauncher(new_context_ok=False)
    dispatcher = OrderDispatcher(launcher, default_phone="5511999990000", save_to_db=False)

    result = dispatcher.dispatch(_items(), "Ana")

    assert result.delivery == "navigation"
    assert [kind for kind, _ in launcher.calls] == ["new_context", "navigate"]


def test_failed_fallback_raises_channel_blocked():
    launcher = RecordingLauncher(new_context_ok=False, navigate_ok=False)
    dispatcher = OrderDispatcher(launcher, default_phone="5511999990000", save_to_db=False)

    with pytest.raises(ChannelBlocked):
        dispatcher.dispatch(_items(), "Ana")

    assert [kind for kind, _ in launcher.calls] == ["new_context", "navigate"]


def test_open_in_same_tab_goes_straight_to_navigation():
    launcher = RecordingLauncher()
    dispatcher = OrderDispatcher(launcher, default_phone="5511999990000", save_to_db=False)

    result = dispatcher.dispatch(_items(), "Ana", options=DispatchOptions(open_in_new_tab=False))

    assert result.delivery == "navigation"
    assert [kind for kind, _ in launcher.calls] == ["navigate"]


def test_client_redirect_launcher_reports_mechanism():
    launcher = ClientRedirectLauncher(popup_allowed=False)
    dispatcher = OrderDispatcher(launcher, default_phone="5511999990000", save_to_db=False)

    result = dispatcher.dispatch(_items(), "Ana")

    assert launcher.mode == "navigation"
    assert launcher.url == result.url


@pytest.mark.parametrize(
    "items,name,phone,expected_error",
    [
        ([], "Ana", "5511999990000", EmptyOrder),
        (None, "   ", "5511999990000", MissingCustomerName),
        (None, "Ana", "", ChannelNotConfigured),
        (None, "Ana", "12345", ChannelNotConfigured),
    ],
)
def test_validation_happens_before_any_side_effect(items, name, phone, expected_error):
    launcher = RecordingLauncher()
    requests = []
    client = _mock_client(lambda request: requests.append(request) or httpx.Response(201))
    dispatcher = OrderDispatcher(
        launcher,
        http_client=client,
        default_phone=phone,
        save_to_db=True,
        save_endpoint=SAVE_ENDPOINT,
    )

    with pytest.raises(expected_error):
        dispatcher.dispatch(_items() if items is None else items, name, options=DispatchOptions(restaurant_id=1))

    assert launcher.calls == []
    assert requests == []


def test_delivery_order_without_address_is_rejected_before_sending():
    launcher = RecordingLauncher()
    requests = []
    client = _mock_client(lambda request: requests.append(request) or httpx.Response(201))
    dispatcher = OrderDispatcher(
        launcher,
        http_client=client,
        default_phone="5511999990000",
        save_to_db=True,
        save_endpoint=SAVE_ENDPOINT,
    )
    options = DispatchOptions(
        restaurant_id=1,
        message=MessageOptions(order_type="delivery", delivery_fee=Decimal("5")),
    )

    with pytest.raises(MissingDeliveryAddress):
        dispatcher.dispatch(_items(), "Ana", options=options)

    assert launcher.calls == []
    assert requests == []


def test_pickup_dispatch_never_charges_delivery_fee():
    dispatcher = OrderDispatcher(RecordingLauncher(), default_phone="5511999990000", save_to_db=False)
    options = DispatchOptions(message=MessageOptions(order_type="pickup", delivery_fee=Decimal("5")))

    result = dispatcher.dispatch(_items(), "Ana", options=options)

    assert "Taxa de entrega" not in result.message
    assert "*Total:* R$ 70,00" in result.message


def test_persistence_posts_payload_before_delivery():
    captured = {}

    def handler(request):
        captured["url"] = str(request.url)
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json={"id": "abc"})

    launcher = RecordingLauncher()
    dispatcher = OrderDispatcher(
        launcher,
        http_client=_mock_client(handler),
        default_phone="5511999990000",
        save_to_db=True,
        save_endpoint=SAVE_ENDPOINT,
    )
    options = DispatchOptions(
        restaurant_id=1,
        customer_phone="11988887777",
        message=MessageOptions(
            delivery_fee=Decimal("5"),
            discount_amount=Decimal("7"),
            coupon_code="DEZ",
            order_type="delivery",
            delivery_address="Rua A, 1",
        ),
    )

    result = dispatcher.dispatch(_items(), "Ana", "2", options)

    assert result.persisted is True
    assert captured["url"] == SAVE_ENDPOINT
    body = captured["body"]
    assert body["restaurant_id"] == 1
    assert body["method"] == "whatsapp"
    assert body["status"] == "sent_to_whatsapp"
    assert body["subtotal"] == 70.0
    assert body["total"] == 68.0
    assert body["delivery_fee"] == 5.0
    assert body["delivery_address"] == "Rua A, 1"
    assert body["table_number"] == "2"
    assert body["coupon_code"] == "DEZ"


def _server_error(request):
    return httpx.Response(500, json={"error": "boom"})


def _timeout(request):
    raise httpx.ConnectTimeout("timeout", request=request)


@pytest.mark.parametrize("handler", [_server_error, _timeout])
def test_persistence_failure_never_blocks_delivery(handler):
    launcher = RecordingLauncher()
    dispatcher = OrderDispatcher(
        launcher,
        http_client=_mock_client(handler),
        default_phone="5511999990000",
        save_to_db=True,
        save_endpoint=SAVE_ENDPOINT,
    )

    result = dispatcher.dispatch(_items(), "Ana", options=DispatchOptions(restaurant_id=1))

    assert result.persisted is False
    assert result.delivery == "new_context"
    assert len(launcher.calls) == 1


def test_persistence_skipped_without_restaurant():
    requests = []
    client = _mock_client(lambda request: requests.append(request) or httpx.Response(201))
    dispatcher = OrderDispatcher(
        RecordingLauncher(),
        http_client=client,
        default_phone="5511999990000",
        save_to_db=True,
        save_endpoint=SAVE_ENDPOINT,
    )

    result = dispatcher.dispatch(_items(), "Ana")

    assert result.persisted is False
    assert requests == []
