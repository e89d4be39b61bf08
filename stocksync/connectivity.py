"""Online/offline state tracking with explicit subscriptions."""

import logging
from collections.abc import Callable

import httpx

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class ConnectivityMonitor:
    """Tracks whether the server is reachable.

    Listeners are registered with :meth:`subscribe`, which returns a handle
    that removes them again. Callbacks fire only when the state changes.
    """

    def __init__(self, online: bool = True):
        self._online = online
        self._listeners: list[tuple[Callback | None, Callback | None]] = []

    @property
    def is_online(self) -> bool:
        return self._online

    def subscribe(
        self,
        on_online: Callback | None = None,
        on_offline: Callback | None = None,
    ) -> Callable[[], None]:
        """Register connectivity callbacks.

        Args:
            on_online: Called when the state flips to online.
            on_offline: Called when the state flips to offline.

        Returns:
            Callable[[], None]: Unsubscribe handle; calling it twice is harmless.
        """
        entry = (on_online, on_offline)
        self._listeners.append(entry)

        def unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return unsubscribe

    def set_online(self, online: bool) -> None:
        """Update the state and notify listeners on change."""
        if online == self._online:
            return
        self._online = online
        logger.info("Connection restored" if online else "Connection lost")

        for on_online, on_offline in list(self._listeners):
            callback = on_online if online else on_offline
            if callback is not None:
                callback()

    async def probe(self, client: httpx.AsyncClient, url: str) -> bool:
        """Check a health endpoint and update the state from the result.

        Args:
            client: HTTP client to use.
            url: Health check URL.

        Returns:
            bool: Current online state.
        """
        try:
            response = await client.get(url)
            self.set_online(response.status_code == 200)
        except httpx.HTTPError as e:
            logger.debug(f"Health probe failed: {e}")
            self.set_online(False)
        return self._online
