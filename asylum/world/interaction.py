"""
Résolution des interactions du joueur.

Chaque tick, le résolveur détermine l'objet visé (à portée, actif, touché
par le rayon de visée, le plus proche). Sur un appui de touche, try_interact()
applique l'effet propre au type d'objet et émet l'événement correspondant.
Le résolveur ne parle au moteur que via le picker (requête de rayon) et le
hook dispose().
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from pygame.math import Vector3

from asylum.core.event_bus import (
    DOOR_OPENED, DOOR_UNLOCKED, GENERATOR_STARTED, INTERACTION_DENIED,
    KEY_COLLECTED, NOTE_READ, NOTE_REVIEWED, SWITCH_TOGGLED,
)
from asylum.core.utils import PointLike, to_vector
from asylum.settings import INTERACTION_RANGE
from asylum.world.interactables import (
    Interactable, InteractableKind, InteractableRegistry, Inventory,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PickResult:
    """Réponse d'une requête de rayon du moteur."""
    hit: bool
    target_id: Optional[str] = None
    distance: float = 0.0


class SpherePicker:
    """
    Picker sans moteur : rayon contre la sphère englobante de chaque objet actif.

    Implémente l'interface pick(origin, direction) attendue par le résolveur.
    """

    def __init__(self, registry: InteractableRegistry, max_distance: float = 100.0):
        self.registry = registry
        self.max_distance = max_distance

    def pick(self, origin: PointLike, direction: PointLike) -> PickResult:
        origin = to_vector(origin)
        direction = to_vector(direction)
        if direction.length_squared() == 0:
            return PickResult(False)
        direction = direction.normalize()

        best: Optional[PickResult] = None
        for obj in self.registry.active():
            t = ray_sphere_distance(origin, direction, obj.position, obj.pick_radius)
            if t is None or t > self.max_distance:
                continue
            if best is None or t < best.distance:
                best = PickResult(True, obj.object_id, t)
        return best or PickResult(False)


def ray_sphere_distance(origin: Vector3, direction: Vector3,
                        center: Vector3, radius: float) -> Optional[float]:
    """
    Distance le long du rayon jusqu'à la sphère, None si pas d'intersection.

    Args:
        origin: Origine du rayon
        direction: Direction normalisée
        center: Centre de la sphère
        radius: Rayon de la sphère
    """
    to_center = center - origin
    if to_center.length_squared() <= radius * radius:
        return 0.0
    t = to_center.dot(direction)
    if t < 0:
        return None
    closest_sq = to_center.length_squared() - t * t
    if closest_sq > radius * radius:
        return None
    return t - math.sqrt(radius * radius - closest_sq)


class InteractionStatus(Enum):
    SUCCESS = "success"
    NOTHING = "nothing_to_interact"
    LOCKED = "locked"
    SEALED = "sealed"
    ALREADY_RUNNING = "already_running"


DENIED_STATUSES = {InteractionStatus.LOCKED, InteractionStatus.SEALED, InteractionStatus.ALREADY_RUNNING}


@dataclass(frozen=True)
class InteractionResult:
    """Résultat typé d'une tentative d'interaction (jamais une exception)."""
    status: InteractionStatus
    object_id: Optional[str] = None
    kind: Optional[InteractableKind] = None
    event_name: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status is InteractionStatus.SUCCESS

    @property
    def denied(self) -> bool:
        return self.status in DENIED_STATUSES

    @property
    def reason(self) -> str:
        return self.status.value

    def __bool__(self) -> bool:
        return self.success


class InteractionResolver:
    """
    Détermine l'objet visé et applique les interactions par type.
    """

    def __init__(self, bus, registry: InteractableRegistry, inventory: Inventory,
                 picker, interaction_range: float = INTERACTION_RANGE,
                 dispose: Optional[Callable[[str], None]] = None):
        self.bus = bus
        self.registry = registry
        self.inventory = inventory
        self.picker = picker
        self.interaction_range = interaction_range
        self.dispose = dispose
        self.current_interactable: Optional[Interactable] = None

        self._handlers: Dict[InteractableKind, Callable[[Interactable], InteractionResult]] = {
            InteractableKind.DOOR: self._interact_door,
            InteractableKind.NOTE: self._interact_note,
            InteractableKind.KEY: self._interact_key,
            InteractableKind.SWITCH: self._interact_switch,
            InteractableKind.GENERATOR: self._interact_generator,
        }
        missing = set(InteractableKind) - set(self._handlers)
        if missing:
            raise ValueError(f"No interaction handler for: {sorted(k.value for k in missing)}")

    def candidates(self, eye_position: PointLike) -> List[Interactable]:
        """Objets actifs à portée, dans l'ordre d'enregistrement."""
        return [obj for obj in self.registry.active()
                if obj.distance_to(eye_position) <= self.interaction_range]

    def update(self, eye_position: PointLike, look_direction: PointLike) -> Optional[Interactable]:
        """
        Recalcule l'objet visé.

        Args:
            eye_position: Position de l'œil du joueur
            look_direction: Direction de visée

        Returns:
            Objet visé ou None
        """
        eye = to_vector(eye_position)
        in_range = self.candidates(eye)
        if not in_range:
            self.current_interactable = None
            return None

        result = self.picker.pick(eye, to_vector(look_direction))
        aimed = [obj for obj in in_range if result.hit and obj.object_id == result.target_id]
        if not aimed:
            self.current_interactable = None
            return None

        # Le plus proche, puis le premier enregistré (min() est stable)
        self.current_interactable = min(aimed, key=lambda obj: obj.distance_to(eye))
        return self.current_interactable

    def prompt_text(self) -> Optional[str]:
        """Texte d'aide affiché pour l'objet visé."""
        obj = self.current_interactable
        if obj is None:
            return None
        if obj.kind is InteractableKind.DOOR:
            return "Locked" if obj.data.locked else "Press E to open"
        if obj.kind is InteractableKind.NOTE:
            return "Press E to read"
        if obj.kind is InteractableKind.KEY:
            return "Press E to pick up"
        if obj.kind is InteractableKind.SWITCH:
            return "Press E to flip switch"
        if obj.kind is InteractableKind.GENERATOR:
            return "Press E to start generator"
        return "Press E to interact"

    def try_interact(self) -> InteractionResult:
        """
        Interagit avec l'objet visé (appel sur front d'appui, pas en maintien).

        Returns:
            Résultat typé ; `denied` pour une porte verrouillée ou un générateur déjà lancé
        """
        obj = self.current_interactable
        if obj is None or not obj.active or obj.object_id not in self.registry:
            self.current_interactable = None
            return InteractionResult(InteractionStatus.NOTHING)

        result = self._handlers[obj.kind](obj)
        logger.info(f"Interaction with {obj.object_id} ({obj.kind.value}): {result.reason}")
        return result

    def clear(self) -> None:
        self.current_interactable = None

    def _deny(self, obj: Interactable, status: InteractionStatus) -> InteractionResult:
        self.bus.emit(INTERACTION_DENIED, {
            "id": obj.object_id, "kind": obj.kind.value, "reason": status.value,
        })
        return InteractionResult(status, obj.object_id, obj.kind, INTERACTION_DENIED)

    def _interact_door(self, obj: Interactable) -> InteractionResult:
        door = obj.data
        if door.locked:
            # Sans clé possible : porte scellée par la poursuite
            if not door.required_key_id:
                return self._deny(obj, InteractionStatus.SEALED)
            if not self.inventory.has_key(door.required_key_id):
                return self._deny(obj, InteractionStatus.LOCKED)
            door.locked = False
            self.bus.emit(DOOR_UNLOCKED, {
                "id": obj.object_id, "key_id": door.required_key_id, "target_area": door.target_area,
            })
            return InteractionResult(InteractionStatus.SUCCESS, obj.object_id, obj.kind, DOOR_UNLOCKED)

        door.is_open = not door.is_open
        self.bus.emit(DOOR_OPENED, {
            "id": obj.object_id, "is_open": door.is_open, "target_area": door.target_area,
        })
        return InteractionResult(InteractionStatus.SUCCESS, obj.object_id, obj.kind, DOOR_OPENED)

    def _interact_note(self, obj: Interactable) -> InteractionResult:
        note = obj.data
        payload = {"id": obj.object_id, "title": note.title, "content": note.content}
        # Seule la première lecture compte dans notes_read
        event_name = NOTE_REVIEWED if note.is_read else NOTE_READ
        note.is_read = True
        self.bus.emit(event_name, payload)
        return InteractionResult(InteractionStatus.SUCCESS, obj.object_id, obj.kind, event_name)

    def _interact_key(self, obj: Interactable) -> InteractionResult:
        key = obj.data
        self.inventory.add(key)
        obj.active = False
        self.registry.remove(obj.object_id)
        self.current_interactable = None
        if self.dispose is not None:
            try:
                self.dispose(obj.object_id)
            except Exception as e:
                logger.error(f"dispose({obj.object_id}) failed: {e}")
        self.bus.emit(KEY_COLLECTED, {
            "id": obj.object_id, "key_id": key.key_id, "display_name": key.display_name,
        })
        return InteractionResult(InteractionStatus.SUCCESS, obj.object_id, obj.kind, KEY_COLLECTED)

    def _interact_switch(self, obj: Interactable) -> InteractionResult:
        switch = obj.data
        switch.is_on = not switch.is_on
        self.bus.emit(SWITCH_TOGGLED, {
            "id": obj.object_id, "is_on": switch.is_on, "controls": switch.controls,
        })
        return InteractionResult(InteractionStatus.SUCCESS, obj.object_id, obj.kind, SWITCH_TOGGLED)

    def _interact_generator(self, obj: Interactable) -> InteractionResult:
        generator = obj.data
        if generator.is_running:
            return self._deny(obj, InteractionStatus.ALREADY_RUNNING)
        generator.is_running = True
        self.bus.emit(GENERATOR_STARTED, {"id": obj.object_id, "powers": generator.powers})
        return InteractionResult(InteractionStatus.SUCCESS, obj.object_id, obj.kind, GENERATOR_STARTED)
