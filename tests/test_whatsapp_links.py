from cardapio.whatsapp.links import build_channel_link, detect_platform, is_whatsapp_configured, normalize_phone


def test_mobile_link_uses_short_domain():
    url = build_channel_link("mobile", "+55 (11) 99999-0000", "Olá mundo!")

    assert url == "https://wa.me/5511999990000?text=Ol%C3%A1%20mundo!"


def test_desktop_link_uses_web_domain():
    url = build_channel_link("desktop", "5511999990000", "*1x Pizza*\nTotal: R$ 10,00")

    assert url.startswith("https://web.whatsapp.com/send?phone=5511999990000&text=")
    assert "%0A" in url
    assert "*1x%20Pizza*" in url
    assert "R%24%2010%2C00" in url


def test_detect_platform_from_user_agent():
    assert detect_platform("Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X)") == "mobile"
    assert detect_platform("Mozilla/5.0 (Linux; Android 14; Pixel 8)") == "mobile"
    assert detect_platform("Mozilla/5.0 (Windows NT 10.0; Win64; x64)") == "desktop"
    assert detect_platform(None) == "desktop"


def test_phone_normalization_and_configuration_check():
    assert normalize_phone("+55 11 9999-0000") == "551199990000"
    assert is_whatsapp_configured("11 99999 0000") is True
    assert is_whatsapp_configured("123") is False
    assert is_whatsapp_configured(None) is False
