from __future__ import annotations

import re
from typing import Literal
from urllib.parse import quote

from cardapio.core.config import WHATSAPP_MOBILE_DOMAIN, WHATSAPP_WEB_DOMAIN

PlatformHint = Literal["mobile", "desktop"]

_MOBILE_UA = re.compile(r"Android|iPhone|iPad|iPod", re.IGNORECASE)
_NON_DIGITS = re.compile(r"\D")

MIN_PHONE_DIGITS = 10


def normalize_phone(phone: str | None) -> str:
    return _NON_DIGITS.sub("", phone or "")


def is_whatsapp_configured(phone: str | None) -> bool:
    return len(normalize_phone(phone)) >= MIN_PHONE_DIGITS


def detect_platform(user_agent: str | None) -> PlatformHint:
    if user_agent and _MOBILE_UA.search(user_agent):
        return "mobile"
    return "desktop"


def build_channel_link(platform_hint: PlatformHint, phone: str, message: str) -> str:
    digits = normalize_phone(phone)
    # encodeURIComponent: só letras, dígitos e -_.!~*'() ficam sem escape
    encoded = quote(message, safe="-_.!~*'()")
    if platform_hint == "mobile":
        return f"https://{WHATSAPP_MOBILE_DOMAIN}/{digits}?text={encoded}"
    return f"https://{WHATSAPP_WEB_DOMAIN}/send?phone={digits}&text={encoded}"
