# src/scriptdeck/core/pubsub.py

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Subscriber = Callable[[str, dict[str, Any]], None]


class PubSub:
    """
    In-process notification hub (NotificationSink implementation).

    Subscribers are called synchronously in subscription order. A failing
    subscriber is logged and skipped; it never breaks the publisher.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def publish(self, event: str, payload: dict[str, Any]) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event, payload)
            except Exception:
                logger.exception("Subscriber failed event=%s", event)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
