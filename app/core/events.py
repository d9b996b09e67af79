"""
Bus d'événements synchrone pour les notifications internes (fin d'exécution, etc.).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

BULK_EXECUTION_COMPLETED = "cross_selling.bulk_execution.completed"


@dataclass
class Event:
    event_type: str
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class EventBus:
    """Publication/abonnement simple, aucun abonné n'est requis"""

    def __init__(self):
        self.subscribers: Dict[str, List[Callable[[Event], None]]] = {}

    def subscribe(self, event_type: str, callback: Callable[[Event], None]) -> None:
        """Abonne un callback à un type d'événement"""
        if not callable(callback):
            raise TypeError("Callback must be callable.")
        callbacks = self.subscribers.setdefault(event_type, [])
        if callback in callbacks:
            logger.warning(f"Callback {getattr(callback, '__name__', callback)} already subscribed to {event_type}")
            return
        callbacks.append(callback)

    def unsubscribe(self, event_type: str, callback: Callable[[Event], None]) -> None:
        """Désabonne un callback"""
        callbacks = self.subscribers.get(event_type)
        if not callbacks or callback not in callbacks:
            logger.warning(f"Callback {getattr(callback, '__name__', callback)} not found for event type {event_type}")
            return
        callbacks.remove(callback)
        if not callbacks:
            del self.subscribers[event_type]

    def publish(self, event: Event) -> int:
        """Publie un événement et retourne le nombre d'abonnés notifiés avec succès"""
        callbacks = list(self.subscribers.get(event.event_type, []))
        logger.debug(f"Event published: {event.event_type} ({len(callbacks)} subscribers)")

        delivered = 0
        for callback in callbacks:
            try:
                callback(event)
                delivered += 1
            except Exception as e:
                # Un abonné défaillant n'affecte ni l'émetteur ni les autres abonnés
                logger.error(
                    f"Error in subscriber '{getattr(callback, '__name__', callback)}' for event {event.event_type}: {e}"
                )
        return delivered


event_bus = EventBus()
