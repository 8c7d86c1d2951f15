"""
Système de triggers spatiaux pour Hartwell Asylum.
Volumes sphériques invisibles qui émettent un événement quand le joueur y entre.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pygame.math import Vector3

from asylum.core.utils import PointLike, to_vector

logger = logging.getLogger(__name__)


@dataclass
class Trigger:
    """
    Zone sphérique liée à un événement.

    Un trigger one-shot se désarme définitivement après son déclenchement.
    Un trigger repeatable est déclenché sur front : il se désarme en tirant et
    ne se réarme qu'une fois le joueur complètement sorti du rayon.
    """
    trigger_id: str
    center: Vector3
    radius: float
    event_name: str
    payload: Dict[str, Any] = field(default_factory=dict)
    repeatable: bool = False
    armed: bool = True
    fire_count: int = 0

    def __post_init__(self) -> None:
        self.center = to_vector(self.center)
        if self.radius <= 0:
            raise ValueError(f"Trigger {self.trigger_id}: radius must be > 0, got {self.radius}")
        if not self.event_name:
            raise ValueError(f"Trigger {self.trigger_id}: event_name is required")

    def contains(self, position: PointLike) -> bool:
        return self.center.distance_to(to_vector(position)) <= self.radius

    def check(self, position: PointLike) -> bool:
        """
        Met à jour l'armement et indique si le trigger doit tirer ce tick.

        Args:
            position: Position du joueur

        Returns:
            True si le trigger tire (il est alors désarmé)
        """
        inside = self.contains(position)
        if not self.armed:
            if self.repeatable and not inside:
                self.armed = True
                logger.debug(f"Trigger re-armed: {self.trigger_id}")
            return False
        if not inside:
            return False

        self.armed = False
        self.fire_count += 1
        return True


def trigger_from_data(trigger_id: str, data: Dict[str, Any]) -> Trigger:
    """
    Crée un trigger depuis une entrée de zone.

    Args:
        trigger_id: ID unique dans la zone
        data: {"position": [x, y, z], "radius": r, "event": nom, "data": {...}, "repeatable": bool}

    Returns:
        Trigger configuré
    """
    return Trigger(
        trigger_id=trigger_id,
        center=to_vector(data.get("position", (0.0, 0.0, 0.0))),
        radius=float(data.get("radius", 0.0)),
        event_name=data.get("event", ""),
        payload=dict(data.get("data", {})),
        repeatable=bool(data.get("repeatable", False)),
    )


class TriggerSystem:
    """
    Triggers de la zone chargée, évalués une fois par tick.
    """

    def __init__(self, bus):
        self.bus = bus
        self.triggers: Dict[str, Trigger] = {}
        logger.info("TriggerSystem initialized")

    def add_trigger(self, trigger: Trigger) -> None:
        if trigger.trigger_id in self.triggers:
            raise ValueError(f"Duplicate trigger id: {trigger.trigger_id}")
        self.triggers[trigger.trigger_id] = trigger
        logger.debug(f"Trigger added: {trigger.trigger_id} -> {trigger.event_name}")

    def remove_trigger(self, trigger_id: str) -> bool:
        if trigger_id in self.triggers:
            del self.triggers[trigger_id]
            logger.debug(f"Trigger removed: {trigger_id}")
            return True
        return False

    def get_trigger(self, trigger_id: str) -> Optional[Trigger]:
        return self.triggers.get(trigger_id)

    def update(self, player_position: PointLike) -> List[str]:
        """
        Évalue tous les triggers pour la position du joueur.

        Args:
            player_position: Position du joueur

        Returns:
            IDs des triggers déclenchés ce tick, dans l'ordre d'enregistrement
        """
        position = to_vector(player_position)
        fired = []
        for trigger in list(self.triggers.values()):
            # Un handler a pu vider la zone pendant ce tick
            if self.triggers.get(trigger.trigger_id) is not trigger:
                continue
            if trigger.check(position):
                fired.append(trigger.trigger_id)
                logger.info(f"Trigger fired: {trigger.trigger_id} -> {trigger.event_name}")
                self.bus.emit(trigger.event_name, dict(trigger.payload))
        return fired

    def clear(self) -> None:
        count = len(self.triggers)
        self.triggers.clear()
        logger.debug(f"Cleared {count} triggers")

    def armed_flags(self) -> Dict[str, bool]:
        return {trigger_id: trigger.armed for trigger_id, trigger in self.triggers.items()}

    def restore_armed(self, flags: Dict[str, bool]) -> None:
        for trigger_id, armed in flags.items():
            trigger = self.triggers.get(trigger_id)
            if trigger is None:
                logger.warning(f"Unknown trigger in saved flags: {trigger_id}")
                continue
            trigger.armed = bool(armed)

    def get_stats(self) -> Dict[str, Any]:
        """
        Retourne des statistiques sur les triggers.

        Returns:
            Dictionnaire avec les statistiques
        """
        return {
            "total_triggers": len(self.triggers),
            "armed_triggers": sum(1 for t in self.triggers.values() if t.armed),
            "repeatable_triggers": sum(1 for t in self.triggers.values() if t.repeatable),
            "total_fires": sum(t.fire_count for t in self.triggers.values()),
        }
