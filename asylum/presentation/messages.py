"""
Messages à l'écran, document ouvert et HUD.

Pur consommateur du bus : rien ici ne modifie le GameState ni le monde.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from asylum.core.event_bus import (
    DOORS_RELEASED, DOORS_SEALED, INTERACTION_DENIED, KEY_COLLECTED,
    NOTE_READ, NOTE_REVIEWED, SCENE_LOADED, STORY_TRIGGER,
)
from asylum.settings import FLASHLIGHT_MAX_BATTERY, MESSAGE_DURATION

logger = logging.getLogger(__name__)

DENIED_MESSAGES = {
    "locked": "It's locked. You need a key.",
    "sealed": "The door won't budge. Something is holding it shut.",
    "already_running": "The generator is already running.",
}


@dataclass
class ScreenMessage:
    text: str
    remaining: float


class MessageFeed:
    """
    File de messages temporaires (beats narratifs, refus, portes scellées).
    """

    def __init__(self, bus, duration: float = MESSAGE_DURATION, max_messages: int = 4):
        self.duration = duration
        self.max_messages = max_messages
        self.messages: List[ScreenMessage] = []

        bus.subscribe(STORY_TRIGGER, self._on_story_trigger)
        bus.subscribe(INTERACTION_DENIED, self._on_denied)
        bus.subscribe(KEY_COLLECTED, self._on_key_collected)
        bus.subscribe(DOORS_SEALED, self._on_doors_sealed)
        bus.subscribe(DOORS_RELEASED, self._on_doors_released)
        bus.subscribe(SCENE_LOADED, self._on_scene_loaded)

    def show(self, text: str, duration: Optional[float] = None) -> None:
        """
        Affiche un message pendant `duration` secondes.

        Args:
            text: Texte à afficher
            duration: Durée spécifique (optionnel)
        """
        if not text:
            return
        self.messages.append(ScreenMessage(text, duration if duration is not None else self.duration))
        # Les plus anciens disparaissent en premier
        if len(self.messages) > self.max_messages:
            self.messages = self.messages[-self.max_messages:]
        logger.debug(f"Message shown: {text}")

    def update(self, dt: float) -> None:
        for message in self.messages:
            message.remaining -= dt
        self.messages = [m for m in self.messages if m.remaining > 0]

    @property
    def texts(self) -> List[str]:
        return [message.text for message in self.messages]

    def clear(self) -> None:
        self.messages.clear()

    def _on_story_trigger(self, payload: Dict[str, Any]) -> None:
        self.show(payload.get("message", ""))

    def _on_denied(self, payload: Dict[str, Any]) -> None:
        self.show(DENIED_MESSAGES.get(payload.get("reason"), ""))

    def _on_key_collected(self, payload: Dict[str, Any]) -> None:
        self.show(f"Picked up: {payload.get('display_name', 'Key')}")

    def _on_doors_sealed(self, payload: Dict[str, Any]) -> None:
        self.show("The doors slam shut behind you.")

    def _on_doors_released(self, payload: Dict[str, Any]) -> None:
        self.show("The door locks release with a heavy clunk.")

    def _on_scene_loaded(self, payload: Dict[str, Any]) -> None:
        name = (payload.get("data") or {}).get("name")
        if name:
            self.show(name)


class DocumentView:
    """Note affichée en plein écran jusqu'à fermeture."""

    def __init__(self, bus):
        self.title: Optional[str] = None
        self.content: Optional[str] = None
        bus.subscribe(NOTE_READ, self._on_note)
        bus.subscribe(NOTE_REVIEWED, self._on_note)
        bus.subscribe(SCENE_LOADED, lambda payload: self.close())

    @property
    def is_open(self) -> bool:
        return self.title is not None

    def _on_note(self, payload: Dict[str, Any]) -> None:
        self.title = payload.get("title", "Document")
        self.content = payload.get("content", "")

    def close(self) -> None:
        self.title = None
        self.content = None


def hud_snapshot(store, inventory, player, resolver=None) -> Dict[str, Any]:
    """
    Lecture seule de l'état affiché par le HUD.

    Returns:
        Dictionnaire prêt à dessiner (objectif, inventaire, batterie, invite)
    """
    state = store.get_state()
    battery = player.battery_level / FLASHLIGHT_MAX_BATTERY if FLASHLIGHT_MAX_BATTERY else 0.0
    return {
        "area": state.current_area,
        "keys_collected": state.keys_collected,
        "notes_read": state.notes_read,
        "power_restored": state.power_restored,
        "items": [key.display_name for key in inventory.items()],
        "item_count": len(inventory),
        "battery": round(battery * 100),
        "flashlight_on": player.flashlight_on,
        "prompt": resolver.prompt_text() if resolver is not None else None,
    }
