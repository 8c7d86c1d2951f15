"""
Chargeur de zones pour Hartwell Asylum.

Le catalogue lit les données statiques (areas.json). L'AreaManager démonte la
zone courante (beats différés, triggers, objets) et instancie la suivante,
puis émet scene_loaded. Un identifiant inconnu ne touche pas à la zone active.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pygame.math import Vector3

from asylum.core.event_bus import (
    DOOR_OPENED, DOORS_RELEASED, DOORS_SEALED, SCENE_LOADED, STORY_TRIGGER,
)
from asylum.core.story import StoryBeat
from asylum.core.utils import load_json_safe, safe_get, to_vector, vector_to_list
from asylum.settings import AREAS_FILE
from asylum.world.interactables import (
    Interactable, InteractableKind, InteractableRegistry, interactable_from_data,
)
from asylum.world.triggers import Trigger, TriggerSystem, trigger_from_data

logger = logging.getLogger(__name__)


class InvalidAreaReference(KeyError):
    """Identifiant de zone inconnu du catalogue."""


@dataclass(frozen=True)
class AreaDefinition:
    """Description statique d'une zone."""
    area_id: str
    name: str
    player_start: Vector3
    environment: str = "basic_room"
    lighting: str = "basic"
    interactables: Tuple[Dict[str, Any], ...] = ()
    triggers: Tuple[Dict[str, Any], ...] = ()

    def build_interactables(self) -> List[Interactable]:
        objects = []
        for index, raw in enumerate(self.interactables):
            object_id = raw.get("id") or f"{raw.get('type', 'object')}_{index}"
            objects.append(interactable_from_data(object_id, raw))
        return objects

    def build_triggers(self) -> List[Trigger]:
        return [trigger_from_data(raw.get("id") or f"trigger_{index}", raw)
                for index, raw in enumerate(self.triggers)]

    def to_payload(self) -> Dict[str, Any]:
        """Données publiées avec scene_loaded."""
        return {
            "name": self.name,
            "player_start": vector_to_list(self.player_start),
            "environment": self.environment,
            "lighting": self.lighting,
            "interactables": [dict(raw) for raw in self.interactables],
            "triggers": [dict(raw) for raw in self.triggers],
        }


class AreaCatalog:
    """
    Catalogue des zones connues.
    """

    def __init__(self) -> None:
        self.areas: Dict[str, AreaDefinition] = {}

    @classmethod
    def from_json(cls, path: Path = AREAS_FILE) -> "AreaCatalog":
        catalog = cls()
        if not catalog.load_from_json(path):
            logger.error(f"Area catalog is empty, could not load {path}")
        return catalog

    def load_from_json(self, path: Path) -> bool:
        """
        Charge les zones depuis un fichier JSON.

        Args:
            path: Chemin vers areas.json

        Returns:
            True si le chargement a réussi
        """
        data = load_json_safe(path)
        if not data:
            return False
        return self.load_from_data(data)

    def load_from_data(self, data: Dict[str, Any]) -> bool:
        try:
            areas = safe_get(data, "areas", {})
            if not isinstance(areas, dict):
                logger.error("Area data must contain an 'areas' mapping")
                return False
            for area_id, raw in areas.items():
                self.areas[area_id] = AreaDefinition(
                    area_id=area_id,
                    name=safe_get(raw, "name", area_id),
                    player_start=to_vector(safe_get(raw, "player_start", (0.0, 1.8, 0.0))),
                    environment=safe_get(raw, "environment", "basic_room"),
                    lighting=safe_get(raw, "lighting", "basic"),
                    interactables=tuple(safe_get(raw, "interactables", []) or []),
                    triggers=tuple(safe_get(raw, "triggers", []) or []),
                )
            logger.info(f"Loaded {len(areas)} areas")
            return True
        except (TypeError, ValueError) as e:
            logger.error(f"Error loading areas: {e}")
            return False

    def get(self, area_id: str) -> AreaDefinition:
        try:
            return self.areas[area_id]
        except KeyError as e:
            raise InvalidAreaReference(area_id) from e

    def has_area(self, area_id: str) -> bool:
        return area_id in self.areas

    @property
    def area_ids(self) -> List[str]:
        return list(self.areas)


class AreaManager:
    """
    Gère la zone chargée et les transitions entre zones.

    L'état des objets et des triggers d'une zone quittée est mémorisé
    (`memory`) puis réappliqué quand le joueur y revient : une clé ramassée ne
    réapparaît pas, un trigger one-shot reste désarmé.
    """

    def __init__(self, bus, catalog: AreaCatalog, triggers: TriggerSystem,
                 registry: InteractableRegistry, resolver=None, story=None):
        self.bus = bus
        self.catalog = catalog
        self.triggers = triggers
        self.registry = registry
        self.resolver = resolver
        self.story = story

        self.current_area_id: Optional[str] = None
        self.current_definition: Optional[AreaDefinition] = None
        self.pending_area_id: Optional[str] = None
        self.sealed_doors: List[str] = []
        self.memory: Dict[str, Dict[str, Any]] = {}
        self.load_errors: List[str] = []

        bus.subscribe(DOOR_OPENED, self._on_door_opened)
        bus.subscribe(STORY_TRIGGER, self._on_story_trigger)
        logger.info("AreaManager initialized")

    def load_area(self, area_id: str) -> bool:
        """
        Démonte la zone courante et charge `area_id`.

        Args:
            area_id: Identifiant de zone du catalogue

        Returns:
            True si la zone a été chargée ; False sans aucun démontage sinon
        """
        # Tout construire avant de démonter : échec = zone courante intacte
        built = self.prepare_area(area_id)
        if built is None:
            return False
        definition, objects, triggers = built

        self.unload()

        for obj in objects:
            self.registry.register(obj)
        for trigger in triggers:
            self.triggers.add_trigger(trigger)

        self.current_area_id = area_id
        self.current_definition = definition
        if area_id in self.memory:
            self.apply_area_state(self.memory[area_id])

        logger.info(f"Area loaded: {definition.name} ({len(self.registry)} objects, {len(triggers)} triggers)")
        self.bus.emit(SCENE_LOADED, {"area": area_id, "data": definition.to_payload()})
        return True

    def prepare_area(self, area_id: str) -> Optional[Tuple[AreaDefinition, List[Interactable], List[Trigger]]]:
        """
        Construit les objets et triggers d'une zone sans toucher à la zone courante.

        Returns:
            (définition, objets, triggers) ou None si la zone est inconnue ou invalide
        """
        try:
            definition = self.catalog.get(area_id)
            objects = definition.build_interactables()
            triggers = definition.build_triggers()
            self._check_unique_ids(area_id, objects, triggers)
        except InvalidAreaReference:
            logger.error(f"Area '{area_id}' not found")
            self.load_errors.append(f"Unknown area: {area_id}")
            return None
        except (AttributeError, TypeError, ValueError) as e:
            logger.error(f"Invalid data for area '{area_id}': {e}")
            self.load_errors.append(f"Invalid area {area_id}: {e}")
            return None
        return definition, objects, triggers

    def _check_unique_ids(self, area_id: str, objects: List[Interactable], triggers: List[Trigger]) -> None:
        object_ids = [obj.object_id for obj in objects]
        trigger_ids = [trigger.trigger_id for trigger in triggers]
        if len(set(object_ids)) != len(object_ids):
            raise ValueError(f"duplicate interactable ids in {area_id}")
        if len(set(trigger_ids)) != len(trigger_ids):
            raise ValueError(f"duplicate trigger ids in {area_id}")

    def unload(self) -> None:
        """Démonte la zone courante (beats différés, triggers, objets)."""
        if self.story is not None:
            self.story.teardown()
        if self.current_area_id is not None:
            self.memory[self.current_area_id] = self.capture_area_state()
        self.triggers.clear()
        self.registry.clear()
        if self.resolver is not None:
            self.resolver.clear()
        self.pending_area_id = None
        self.sealed_doors = []
        if self.current_area_id is not None:
            logger.info(f"Area unloaded: {self.current_area_id}")
        self.current_area_id = None
        self.current_definition = None

    def capture_area_state(self) -> Dict[str, Any]:
        """
        Snapshot sérialisable de la zone courante.

        Returns:
            {"objects": {id: {"active", "data"}}, "consumed": [...], "triggers": {id: armed}, "sealed": [...]}
        """
        defined_ids = [raw.get("id") for raw in self.current_definition.interactables] \
            if self.current_definition else []
        return {
            "objects": {
                obj.object_id: {"active": obj.active, "data": self._stored_data(obj)}
                for obj in self.registry
            },
            "consumed": [object_id for object_id in defined_ids
                         if object_id and object_id not in self.registry],
            "triggers": self.triggers.armed_flags(),
            "sealed": list(self.sealed_doors),
        }

    @staticmethod
    def _stored_data(obj: Interactable) -> Dict[str, Any]:
        data = obj.mutable_data()
        # Une porte de transition se referme derrière le joueur
        if obj.kind is InteractableKind.DOOR and data.get("target_area"):
            data["is_open"] = False
        return data

    def apply_area_state(self, state: Dict[str, Any]) -> None:
        for object_id in state.get("consumed", []):
            self.registry.remove(object_id)
        for object_id, values in state.get("objects", {}).items():
            obj = self.registry.get(object_id)
            if obj is None:
                logger.warning(f"Unknown object in area state: {object_id}")
                continue
            obj.active = bool(values.get("active", True))
            obj.apply_mutable_data(values.get("data", {}))
        self.triggers.restore_armed(state.get("triggers", {}))
        self.sealed_doors = [object_id for object_id in state.get("sealed", []) if object_id in self.registry]

    def world_memory(self) -> Dict[str, Dict[str, Any]]:
        """Mémoire de toutes les zones visitées, zone courante comprise."""
        memory = dict(self.memory)
        if self.current_area_id is not None:
            memory[self.current_area_id] = self.capture_area_state()
        return memory

    def restore_memory(self, memory: Dict[str, Dict[str, Any]]) -> None:
        self.memory = {area_id: dict(state) for area_id, state in memory.items()}

    def request_transition(self, area_id: str) -> bool:
        """
        Programme un changement de zone, appliqué au prochain tick.

        Returns:
            False si la zone est inconnue
        """
        if not self.catalog.has_area(area_id):
            logger.error(f"Transition to unknown area '{area_id}' ignored")
            return False
        self.pending_area_id = area_id
        logger.debug(f"Transition requested: {area_id}")
        return True

    def apply_pending_transition(self) -> bool:
        if self.pending_area_id is None:
            return False
        area_id = self.pending_area_id
        self.pending_area_id = None
        return self.load_area(area_id)

    def _on_door_opened(self, payload: Dict[str, Any]) -> None:
        target = payload.get("target_area")
        if target and payload.get("is_open"):
            self.request_transition(target)

    def _on_story_trigger(self, payload: Dict[str, Any]) -> None:
        beat_type = payload.get("type")
        if beat_type == StoryBeat.CHASE_SEQUENCE.value:
            self.seal_doors()
        elif beat_type == StoryBeat.POWER_RESTORED.value:
            self.release_doors()

    def seal_doors(self) -> List[str]:
        """
        Verrouille derrière le joueur les portes sans clé de la zone.

        Returns:
            IDs des portes scellées
        """
        sealed = []
        for obj in self.registry.of_kind(InteractableKind.DOOR):
            door = obj.data
            if door.locked or door.required_key_id:
                continue
            door.is_open = False
            door.locked = True
            sealed.append(obj.object_id)
        if sealed:
            self.sealed_doors.extend(sealed)
            self.bus.emit(DOORS_SEALED, {"area": self.current_area_id, "door_ids": list(sealed)})
        return sealed

    def release_doors(self) -> List[str]:
        released = []
        for object_id in self.sealed_doors:
            obj = self.registry.get(object_id)
            if obj is not None and obj.kind is InteractableKind.DOOR:
                obj.data.locked = False
                released.append(object_id)
        self.sealed_doors = []
        if released:
            self.bus.emit(DOORS_RELEASED, {"area": self.current_area_id, "door_ids": list(released)})
        return released

    def reset(self) -> None:
        """Nouvelle partie : démonte la zone et oublie la mémoire du monde."""
        self.unload()
        self.memory.clear()
        self.load_errors.clear()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "current_area": self.current_area_id,
            "pending_area": self.pending_area_id,
            "interactables": len(self.registry),
            "sealed_doors": list(self.sealed_doors),
            "visited_areas": sorted(set(self.memory) | ({self.current_area_id} if self.current_area_id else set())),
            "triggers": self.triggers.get_stats(),
        }
