"""
Notification dispatch for the Quest Ledger engine.

The engine only emits events; delivery (email, push, in-app) belongs to
whoever subscribes. Emission is fire-and-forget: a failing handler is logged
and never affects the ledger.

Events:
- quest_completed: a quest was completed and credited
- tier_changed: a member moved to a different tier
- badge_granted: a member unlocked a badge
- points_credited: a membership bonus or adjustment hit the ledger
"""
import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

from ..utils.exceptions import BestEffortFailure

logger = logging.getLogger(__name__)

EVENT_TYPES = (
    'quest_completed',
    'tier_changed',
    'badge_granted',
    'points_credited',
)

Handler = Callable[[str, int, Dict[str, Any]], None]


def log_event(event_type: str, member_id: int, payload: Dict[str, Any]) -> None:
    """Default handler: record the event in the application log."""
    logger.info(f"[QuestLedger] Event {event_type} for member {member_id}: {payload}")


class NotificationService:
    """In-process event fan-out."""

    def __init__(self, install_default: bool = True):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)
        self._wildcard: List[Handler] = []
        if install_default:
            self._wildcard.append(log_event)

    def subscribe(self, handler: Handler, event_type: Optional[str] = None) -> Handler:
        """
        Register a handler for one event type, or for all events when
        event_type is None. Returns the handler so it can be used as a
        decorator.
        """
        if event_type is None:
            self._wildcard.append(handler)
        else:
            if event_type not in EVENT_TYPES:
                raise ValueError(f'Unknown event type: {event_type}')
            self._handlers[event_type].append(handler)
        return handler

    def unsubscribe(self, handler: Handler) -> None:
        if handler in self._wildcard:
            self._wildcard.remove(handler)
        for handlers in self._handlers.values():
            if handler in handlers:
                handlers.remove(handler)

    def emit(self, event_type: str, member_id: int, payload: Optional[Dict[str, Any]] = None) -> List[BestEffortFailure]:
        """
        Deliver an event to every matching handler.

        Returns the failures (already logged) so callers can report them.
        """
        payload = payload or {}
        failures = []
        for handler in list(self._handlers.get(event_type, [])) + list(self._wildcard):
            try:
                handler(event_type, member_id, payload)
            except Exception as e:
                failure = BestEffortFailure(f'notify {event_type}', e)
                logger.warning(f"[QuestLedger] {failure.message} (member {member_id})")
                failures.append(failure)
        return failures


notification_service = NotificationService()
