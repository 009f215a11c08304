"""
Message Bus

Routes domain events to their subscribers once a unit of work commits.
Notification dispatch and audit trails hook in here; the reservation
engine itself never calls them directly.
"""

from typing import Callable, Dict, Iterable, List, Type
import logging

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


class MessageBus:
    """
    Event bus

    Events: Multiple handlers per event (1:N). Handlers registered for a
    base class also receive its subclasses.
    """

    def __init__(self):
        self._event_handlers: Dict[Type[DomainEvent], List[EventHandler]] = {}

    def register_event_handler(self, event_type: Type[DomainEvent], handler: EventHandler):
        """
        Register an event handler

        Multiple handlers can be registered for the same event type;
        registering the same handler twice is a no-op.
        """
        handlers = self._event_handlers.setdefault(event_type, [])
        if handler in handlers:
            return
        handlers.append(handler)
        logger.debug(f"Registered event handler for {event_type.__name__}")

    def unregister_event_handler(self, event_type: Type[DomainEvent], handler: EventHandler):
        handlers = self._event_handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def subscribe(self, *event_types: Type[DomainEvent]):
        """Decorator form of register_event_handler"""
        def decorator(handler: EventHandler) -> EventHandler:
            for event_type in event_types:
                self.register_event_handler(event_type, handler)
            return handler
        return decorator

    def handlers_for(self, event: DomainEvent) -> List[EventHandler]:
        handlers: List[EventHandler] = []
        for event_type, registered in self._event_handlers.items():
            if isinstance(event, event_type):
                handlers.extend(registered)
        return handlers

    def publish_events(self, events: Iterable[DomainEvent]):
        """
        Publish domain events

        All registered handlers for each event type will be called.
        Errors in handlers are logged but don't stop other handlers.
        """
        for event in events:
            event_name = type(event).__name__
            handlers = self.handlers_for(event)

            if not handlers:
                logger.debug(f"No handlers registered for event {event_name}")
                continue

            logger.info(f"Publishing event: {event_name} (ID: {event.event_id})")

            for handler in handlers:
                try:
                    handler(event)
                except Exception as e:
                    logger.error(
                        f"Error in event handler {getattr(handler, '__name__', handler)} "
                        f"for event {event_name}: {e}",
                        exc_info=True
                    )
                    # Don't raise - other handlers should still run


# Global message bus instance
message_bus = MessageBus()
