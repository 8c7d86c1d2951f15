"""
État d'éclairage de la zone, piloté uniquement par les événements du bus.
Le moteur de rendu lit `mode`, `flickering` et `chase_active` chaque frame.
"""

import logging
from typing import Any, Dict

from asylum.core.event_bus import (
    ENTITY_ENCOUNTER, POWER_RESTORED, SCENE_LOADED, STORY_TRIGGER, SWITCH_TOGGLED,
)
from asylum.core.story import StoryBeat
from asylum.settings import FLICKER_DURATION

logger = logging.getLogger(__name__)


class LightingController:

    def __init__(self, bus):
        self.mode = "basic"
        self.area_lighting = "basic"
        self.flicker_time = 0.0
        self.chase_active = False
        self.power_restored = False
        self.lights_on = True

        bus.subscribe(SCENE_LOADED, self._on_scene_loaded)
        bus.subscribe(ENTITY_ENCOUNTER, self._on_entity_encounter)
        bus.subscribe(POWER_RESTORED, self._on_power_restored)
        bus.subscribe(STORY_TRIGGER, self._on_story_trigger)
        bus.subscribe(SWITCH_TOGGLED, self._on_switch_toggled)

    @property
    def flickering(self) -> bool:
        return self.flicker_time > 0.0 or self.mode == "flickering"

    def update(self, dt: float) -> None:
        if self.flicker_time > 0.0:
            self.flicker_time = max(0.0, self.flicker_time - dt)

    def _on_scene_loaded(self, payload: Dict[str, Any]) -> None:
        self.area_lighting = (payload.get("data") or {}).get("lighting", "basic")
        self.mode = "emergency" if self.power_restored else self.area_lighting
        self.chase_active = False
        self.flicker_time = 0.0
        self.lights_on = True
        logger.debug(f"Lighting set to {self.mode}")

    def _on_entity_encounter(self, payload: Dict[str, Any]) -> None:
        intensity = float(payload.get("intensity", 1))
        self.flicker_time = max(self.flicker_time, FLICKER_DURATION * intensity)

    def _on_power_restored(self, payload: Dict[str, Any]) -> None:
        self.power_restored = True
        self.mode = "emergency"

    def _on_story_trigger(self, payload: Dict[str, Any]) -> None:
        if payload.get("type") == StoryBeat.CHASE_SEQUENCE.value:
            self.chase_active = True
            self.mode = "chase"

    def _on_switch_toggled(self, payload: Dict[str, Any]) -> None:
        if payload.get("controls") == "lighting":
            self.lights_on = bool(payload.get("is_on"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "flickering": self.flickering,
            "chase_active": self.chase_active,
            "lights_on": self.lights_on,
        }

    def restore(self, power_restored: bool = False, chase_active: bool = False) -> None:
        """Réapplique l'état après chargement d'une sauvegarde ou nouvelle partie."""
        self.power_restored = power_restored
        self.chase_active = chase_active
        self.flicker_time = 0.0
        if chase_active:
            self.mode = "chase"
        elif power_restored:
            self.mode = "emergency"
        else:
            self.mode = self.area_lighting
