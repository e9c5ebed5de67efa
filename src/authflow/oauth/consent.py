# Consent surfaces: where the user grants (or refuses) provider access.
# Created: 2026-10-07

from __future__ import annotations

import logging
import webbrowser
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)


class ConsentWindow(Protocol):
    """Handle to an open consent surface."""

    @property
    def closed(self) -> bool: ...

    def close(self) -> None: ...


class ConsentSurface(Protocol):
    """Opens the provider's authorization page.

    ``open()`` returns None when the surface could not be shown (the
    equivalent of a blocked popup). Implementations that can observe the user
    closing the surface call *on_dismiss* when that happens.
    """

    def open(
        self, url: str, name: str, on_dismiss: Callable[[], None]
    ) -> ConsentWindow | None: ...


class BrowserTab:
    """A tab opened in the system browser.

    The browser gives no handle back, so ``close()`` only marks the tab as
    finished on our side.
    """

    def __init__(self, name: str):
        self.name = name
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True


class SystemBrowserSurface:
    """Opens the authorization URL in the user's default browser.

    Dismissal cannot be observed, so an abandoned attempt ends on the
    flow timeout.
    """

    def open(
        self, url: str, name: str, on_dismiss: Callable[[], None]
    ) -> ConsentWindow | None:
        try:
            opened = webbrowser.open(url, new=1)
        except webbrowser.Error as e:
            logger.warning("Could not launch browser for %s: %s", name, e)
            return None
        if not opened:
            logger.warning("No browser available for %s", name)
            return None
        logger.info("Opened consent page for %s", name)
        return BrowserTab(name)
