"""
EventBus central pour orchestrer les événements du jeu.

Le bus est aussi la source de vérité de la progression : chaque emit() met
d'abord à jour le GameStateStore, puis laisse le StoryEngine évaluer ses
règles, et seulement ensuite appelle les handlers externes (audio, lumières, UI).
"""

import itertools
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from asylum.settings import EVENT_HISTORY_LIMIT

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any]], None]


@dataclass(frozen=True)
class Event:
    """Événement émis : nom, payload et numéro d'émission."""
    name: str
    payload: Dict[str, Any] = field(default_factory=dict)
    seq: int = 0


@dataclass(frozen=True)
class Subscription:
    """Handle retourné par subscribe(), à passer à unsubscribe()."""
    event_name: str
    token: int


@dataclass(frozen=True)
class HandlerFailure:
    """Trace d'un handler qui a levé une exception pendant emit()."""
    event_name: str
    handler_name: str
    error: str


class EventBus:
    """
    Bus pub/sub synchrone.

    Ordre garanti pour un emit() : store -> story -> handlers externes.
    Les handlers ajoutés ou retirés pendant un dispatch ne prennent effet
    qu'à l'emit suivant.
    """

    def __init__(self, store=None, story=None, history_limit: int = EVENT_HISTORY_LIMIT) -> None:
        self._subscribers: Dict[str, List[Tuple[Subscription, Handler]]] = {}
        self._tokens = itertools.count(1)
        self._seq = itertools.count(1)
        self.store = store
        self.story = story
        # Journaux bornés : seuls les derniers événements sont gardés
        self.history: Deque[Event] = deque(maxlen=history_limit)
        self.failures: Deque[HandlerFailure] = deque(maxlen=history_limit)
        self._depth = 0

    def attach_store(self, store) -> None:
        self.store = store

    def attach_story(self, story) -> None:
        self.story = story

    def subscribe(self, event_name: str, handler: Handler) -> Subscription:
        subscription = Subscription(event_name, next(self._tokens))
        # Nouvelle liste à chaque modification : les snapshots en cours restent intacts
        handlers = list(self._subscribers.get(event_name, []))
        handlers.append((subscription, handler))
        self._subscribers[event_name] = handlers
        return subscription

    def unsubscribe(self, subscription: Subscription) -> bool:
        handlers = self._subscribers.get(subscription.event_name)
        if not handlers:
            return False
        remaining = [(sub, h) for sub, h in handlers if sub.token != subscription.token]
        if len(remaining) == len(handlers):
            return False
        if remaining:
            self._subscribers[subscription.event_name] = remaining
        else:
            del self._subscribers[subscription.event_name]
        return True

    def subscriber_count(self, event_name: Optional[str] = None) -> int:
        if event_name is not None:
            return len(self._subscribers.get(event_name, []))
        return sum(len(handlers) for handlers in self._subscribers.values())

    def emit(self, event_name: str, payload: Optional[Dict[str, Any]] = None) -> None:
        payload = dict(payload or {})
        event = Event(event_name, payload, next(self._seq))
        self.history.append(event)
        handlers = self._subscribers.get(event_name, [])
        logger.debug(f"Event #{event.seq}: {event_name} {payload} (depth {self._depth})")

        self._depth += 1
        try:
            if self.store is not None:
                self.store.apply(event_name, payload)

            if self.story is not None:
                try:
                    self.story.evaluate(event_name, payload)
                except Exception as e:
                    self._record_failure(event_name, "story", e)

            for _subscription, handler in handlers:
                try:
                    handler(dict(payload))
                except Exception as e:
                    # Éviter que des erreurs de handlers cassent la boucle
                    self._record_failure(event_name, _handler_name(handler), e)
        finally:
            self._depth -= 1

    def _record_failure(self, event_name: str, handler_name: str, error: Exception) -> None:
        logger.exception(f"Handler {handler_name} failed on {event_name}: {error}")
        self.failures.append(HandlerFailure(event_name, handler_name, repr(error)))

    def clear_history(self) -> None:
        self.history.clear()
        self.failures.clear()

    def events_named(self, event_name: str) -> List[Event]:
        return [event for event in self.history if event.name == event_name]


def _handler_name(handler: Handler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


# Événements standards
KEY_COLLECTED = "key_collected"              # payload: {"id", "key_id", "display_name"}
NOTE_READ = "note_read"                      # payload: {"id", "title", "content"}
NOTE_REVIEWED = "note_reviewed"              # même payload, relecture d'une note déjà lue
GENERATOR_STARTED = "generator_started"      # payload: {"id", "powers"}
POWER_RESTORED = "power_restored"
ENTITY_ENCOUNTER = "entity_encounter"        # payload: {"intensity"}
AREA_ENTERED = "area_entered"                # payload: {"area"}
STORY_TRIGGER = "story_trigger"              # payload: {"type", "message"}
DOOR_UNLOCKED = "door_unlocked"              # payload: {"id", "key_id", "target_area"}
DOOR_OPENED = "door_opened"                  # payload: {"id", "is_open", "target_area"}
SWITCH_TOGGLED = "switch_toggled"            # payload: {"id", "is_on", "controls"}
INTERACTION_DENIED = "interaction_denied"    # payload: {"id", "kind", "reason"}
SCENE_LOADED = "scene_loaded"                # payload: {"area", "data"}
DOORS_SEALED = "doors_sealed"                # payload: {"area", "door_ids"}
DOORS_RELEASED = "doors_released"            # payload: {"area", "door_ids"}
