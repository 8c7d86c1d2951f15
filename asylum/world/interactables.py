"""
Objets interactifs du monde : portes, notes, clés, interrupteurs, générateurs.

Chaque Interactable porte des données typées selon son type (variant
étiqueté) au lieu d'un dictionnaire libre. Le registre d'une zone en est le
seul propriétaire ; l'inventaire conserve les clés ramassées.
"""

import logging
from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from pygame.math import Vector3

from asylum.core.utils import PointLike, to_vector
from asylum.settings import PICK_RADIUS

logger = logging.getLogger(__name__)


class InteractableKind(Enum):
    """Types d'objets interactifs."""
    DOOR = "door"
    NOTE = "note"
    KEY = "key"
    SWITCH = "switch"
    GENERATOR = "generator"


@dataclass
class DoorData:
    locked: bool = False
    required_key_id: Optional[str] = None
    is_open: bool = False
    target_area: Optional[str] = None


@dataclass
class NoteData:
    title: str = "Document"
    content: str = "The text is too faded to read..."
    is_read: bool = False


@dataclass
class KeyData:
    key_id: str = ""
    display_name: str = "Key"


@dataclass
class SwitchData:
    is_on: bool = False
    controls: str = ""


@dataclass
class GeneratorData:
    is_running: bool = False
    powers: str = ""


InteractableData = Union[DoorData, NoteData, KeyData, SwitchData, GeneratorData]

DATA_TYPES = {
    InteractableKind.DOOR: DoorData,
    InteractableKind.NOTE: NoteData,
    InteractableKind.KEY: KeyData,
    InteractableKind.SWITCH: SwitchData,
    InteractableKind.GENERATOR: GeneratorData,
}

# Clés des fichiers de zone -> champs des données typées
_DATA_ALIASES = {
    "key_id": "required_key_id",
    "target_scene": "target_area",
    "name": "display_name",
}


@dataclass
class Interactable:
    """
    Objet du monde que le joueur peut viser et utiliser.
    """
    object_id: str
    kind: InteractableKind
    position: Vector3
    data: InteractableData
    active: bool = True
    pick_radius: float = 0.5

    def __post_init__(self) -> None:
        self.position = to_vector(self.position)
        expected = DATA_TYPES[self.kind]
        if not isinstance(self.data, expected):
            raise ValueError(
                f"Interactable {self.object_id}: {self.kind.value} expects "
                f"{expected.__name__}, got {type(self.data).__name__}"
            )

    def distance_to(self, point: PointLike) -> float:
        return self.position.distance_to(to_vector(point))

    def mutable_data(self) -> Dict[str, Any]:
        """Données modifiables, sérialisables (sauvegarde)."""
        return asdict(self.data)

    def apply_mutable_data(self, values: Dict[str, Any]) -> None:
        known = {f.name for f in fields(self.data)}
        self.data = replace(self.data, **{k: v for k, v in values.items() if k in known})


def build_data(kind: InteractableKind, raw: Dict[str, Any]) -> InteractableData:
    """
    Construit les données typées d'un objet à partir des données de zone.

    Args:
        kind: Type d'objet
        raw: Dictionnaire brut ("data" dans areas.json)

    Returns:
        Instance de DoorData, NoteData, ...
    """
    data_cls = DATA_TYPES[kind]
    known = {f.name for f in fields(data_cls)}
    values = {}
    for key, value in (raw or {}).items():
        if kind is InteractableKind.KEY and key == "id":
            key = "key_id"
        key = _DATA_ALIASES.get(key, key) if key not in known else key
        if key in known:
            values[key] = value
        else:
            logger.debug(f"Ignoring unknown {kind.value} field: {key}")
    return data_cls(**values)


def interactable_from_data(object_id: str, raw: Dict[str, Any]) -> Interactable:
    """
    Crée un Interactable depuis une entrée de zone.

    Raises:
        ValueError: type inconnu ou position invalide
    """
    try:
        kind = InteractableKind(raw.get("type"))
    except ValueError as e:
        raise ValueError(f"Unknown interactable type for {object_id}: {raw.get('type')!r}") from e
    return Interactable(
        object_id=object_id,
        kind=kind,
        position=to_vector(raw.get("position", (0.0, 0.0, 0.0))),
        data=build_data(kind, raw.get("data", {})),
        pick_radius=float(raw.get("pick_radius", PICK_RADIUS.get(kind.value, 0.5))),
    )


class InteractableRegistry:
    """
    Registre des objets interactifs de la zone chargée (ordre d'enregistrement conservé).
    """

    def __init__(self) -> None:
        self._objects: Dict[str, Interactable] = {}

    def register(self, interactable: Interactable) -> Interactable:
        if interactable.object_id in self._objects:
            raise ValueError(f"Duplicate interactable id: {interactable.object_id}")
        self._objects[interactable.object_id] = interactable
        logger.debug(f"Interactable registered: {interactable.object_id} ({interactable.kind.value})")
        return interactable

    def get(self, object_id: str) -> Optional[Interactable]:
        return self._objects.get(object_id)

    def remove(self, object_id: str) -> bool:
        return self._objects.pop(object_id, None) is not None

    def order_of(self, object_id: str) -> int:
        for index, key in enumerate(self._objects):
            if key == object_id:
                return index
        return -1

    def active(self) -> List[Interactable]:
        return [obj for obj in self._objects.values() if obj.active]

    def of_kind(self, kind: InteractableKind) -> List[Interactable]:
        return [obj for obj in self._objects.values() if obj.kind is kind]

    def clear(self) -> None:
        self._objects.clear()

    def __iter__(self) -> Iterator[Interactable]:
        return iter(list(self._objects.values()))

    def __len__(self) -> int:
        return len(self._objects)

    def __contains__(self, object_id: object) -> bool:
        return object_id in self._objects


class Inventory:
    """Clés ramassées, dans l'ordre de ramassage."""

    def __init__(self) -> None:
        self._keys: List[KeyData] = []

    def add(self, key: KeyData) -> None:
        self._keys.append(replace(key))
        logger.info(f"Inventory: added {key.display_name} ({key.key_id})")

    def has_key(self, key_id: Optional[str]) -> bool:
        if not key_id:
            return False
        return any(key.key_id == key_id for key in self._keys)

    def items(self) -> Tuple[KeyData, ...]:
        return tuple(replace(key) for key in self._keys)

    def key_ids(self) -> List[str]:
        return [key.key_id for key in self._keys]

    def clear(self) -> None:
        self._keys.clear()

    def to_list(self) -> List[Dict[str, Any]]:
        return [asdict(key) for key in self._keys]

    def restore(self, keys: List[Dict[str, Any]]) -> None:
        self._keys = [KeyData(**key) for key in keys]

    def __contains__(self, key_id: object) -> bool:
        return isinstance(key_id, str) and self.has_key(key_id)

    def __len__(self) -> int:
        return len(self._keys)
