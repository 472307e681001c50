"""Event bus for publish/subscribe between the controller and observers.

One bus is created per Runtime and injected; there is no module-level
instance.
"""

import threading
from typing import Callable, Dict, List, Type

from ..domain.events import DomainEvent
from ..logging_config import get_logger

logger = get_logger(__name__)

EventCallback = Callable[[DomainEvent], None]


class EventBus:
    """
    Thread-safe event bus.

    Handlers subscribed to a concrete event type run first, then handlers
    subscribed to all events, each in subscription order. Handlers run
    synchronously on the publishing thread and outside the bus lock.
    """

    def __init__(self):
        self._handlers: Dict[Type[DomainEvent], List[EventCallback]] = {}
        self._lock = threading.Lock()
        self._error_handlers: List[Callable[[Exception, DomainEvent], None]] = []

    def subscribe(self, event_type: Type[DomainEvent], handler: EventCallback) -> None:
        """Subscribe ``handler`` to one event type."""
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)

        logger.debug("event_handler_subscribed", event_type=event_type.__name__)

    def subscribe_to_all(self, handler: EventCallback) -> None:
        """Subscribe ``handler`` to every event type."""
        self.subscribe(DomainEvent, handler)

    def unsubscribe(self, event_type: Type[DomainEvent], handler: EventCallback) -> None:
        with self._lock:
            handlers = self._handlers.get(event_type)
            if handlers and handler in handlers:
                handlers.remove(handler)

    def publish(self, event: DomainEvent) -> None:
        """
        Deliver ``event`` to its subscribers.

        A failing handler is logged and reported to error handlers; the
        remaining handlers still run and nothing is raised to the publisher.
        """
        with self._lock:
            handlers = list(self._handlers.get(type(event), ())) + list(self._handlers.get(DomainEvent, ()))
            error_handlers = list(self._error_handlers)

        event_type = event.__class__.__name__
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error("event_handler_failed", event_type=event_type, error=str(e), exc_info=True)
                for error_handler in error_handlers:
                    try:
                        error_handler(e, event)
                    except Exception as eh:
                        logger.error("event_error_handler_failed", event_type=event_type, error=str(eh))

    def on_error(self, handler: Callable[[Exception, DomainEvent], None]) -> None:
        """Register a callback for exceptions raised by event handlers."""
        with self._lock:
            self._error_handlers.append(handler)

    def clear(self) -> None:
        """Drop all subscriptions."""
        with self._lock:
            self._handlers.clear()
            self._error_handlers.clear()
