"""In-process event hub and webhook delivery for account lifecycle events."""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

ENTRY_CREATE = "entry.create"
ADMIN_USER_MODEL = "admin::user"


@dataclass(frozen=True)
class DomainEvent:
    name: str
    model: str
    entry: dict[str, Any]
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Listener = Callable[[DomainEvent], Awaitable[None]]


class EventHub:
    """Fan events out to the listeners subscribed to their name.

    A failing listener is logged and skipped; delivery problems never reach
    the code that emitted the event.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def subscribe(self, name: str, listener: Listener) -> None:
        self._listeners[name].append(listener)

    async def emit(self, event: DomainEvent) -> None:
        for listener in list(self._listeners.get(event.name, [])):
            try:
                await listener(event)
            except Exception:
                logger.exception(
                    "Listener %r failed for %s on %s", listener, event.name, event.model
                )


class WebhookDispatcher:
    """POST events as JSON to every configured webhook URL."""

    def __init__(self, urls: list[str], timeout: float = 10.0) -> None:
        self.urls = urls
        self.timeout = timeout

    @staticmethod
    def payload(event: DomainEvent) -> dict[str, Any]:
        return {
            "event": event.name,
            "createdAt": event.created_at.isoformat(),
            "model": event.model,
            "entry": event.entry,
        }

    async def __call__(self, event: DomainEvent) -> None:
        if not self.urls:
            return
        body = self.payload(event)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for url in self.urls:
                try:
                    response = await client.post(url, json=body)
                    response.raise_for_status()
                except httpx.HTTPError as error:
                    logger.warning("Webhook delivery to %s failed: %s", url, error)


def build_event_hub(webhook_urls: list[str]) -> EventHub:
    hub = EventHub()
    hub.subscribe(ENTRY_CREATE, WebhookDispatcher(webhook_urls))
    return hub
