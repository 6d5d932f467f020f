from __future__ import annotations

import webbrowser
from typing import Protocol

from cardapio.core.errors import TransientDeliveryError


class ChannelLauncher(Protocol):
    def open_new_context(self, url: str) -> bool:
        """Tenta abrir o link num novo contexto (aba/janela). False = bloqueado."""
        ...

    def navigate(self, url: str) -> None:
        """Navega no contexto atual. Levanta TransientDeliveryError se não conseguir."""
        ...


class BrowserLauncher:
    """Abre o link no navegador local (usado pelo script de linha de comando)."""

    def open_new_context(self, url: str) -> bool:
        return webbrowser.open_new_tab(url)

    def navigate(self, url: str) -> None:
        if not webbrowser.open(url, new=0):
            raise TransientDeliveryError("Nenhum navegador disponível para abrir o WhatsApp")


class ClientRedirectLauncher:
    """Launcher da API: quem abre o link é o cliente HTTP.

    O cliente informa se consegue abrir pop-ups; a resposta diz qual mecanismo usar.
    """

    def __init__(self, *, popup_allowed: bool = True) -> None:
        self.popup_allowed = popup_allowed
        self.mode: str | None = None
        self.url: str | None = None

    def open_new_context(self, url: str) -> bool:
        if not self.popup_allowed:
            return False
        self.mode, self.url = "new_context", url
        return True

    def navigate(self, url: str) -> None:
        self.mode, self.url = "navigation", url
