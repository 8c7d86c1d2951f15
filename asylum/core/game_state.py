"""
État de progression du jeu.

GameState est un snapshot immuable ; seul GameStateStore le remplace, via la
fonction de transition pure `transition()`. Rejouer le journal d'événements
depuis l'état initial redonne toujours le même état.
"""

import logging
from dataclasses import asdict, dataclass, fields, replace
from functools import reduce
from typing import Any, Dict, Iterable, Mapping, Optional

from asylum.settings import INITIAL_AREA_TAG

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GameState:
    keys_collected: int = 0
    notes_read: int = 0
    generator_started: bool = False
    power_restored: bool = False
    entity_encounters: int = 0
    current_area: str = INITIAL_AREA_TAG

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_COUNTERS = ("keys_collected", "notes_read", "entity_encounters")
_FIELD_NAMES = {f.name for f in fields(GameState)}


def transition(state: GameState, event_name: str, payload: Optional[Mapping[str, Any]] = None) -> GameState:
    """
    Fonction de transition pure : (état, événement) -> nouvel état.

    Args:
        state: État courant
        event_name: Nom de l'événement
        payload: Données de l'événement

    Returns:
        Nouvel état (l'état d'origine si l'événement n'a pas d'effet)
    """
    if event_name == "key_collected":
        return replace(state, keys_collected=state.keys_collected + 1)
    if event_name == "note_read":
        return replace(state, notes_read=state.notes_read + 1)
    if event_name == "generator_started":
        return replace(state, generator_started=True)
    if event_name == "power_restored":
        return replace(state, power_restored=True)
    if event_name == "entity_encounter":
        return replace(state, entity_encounters=state.entity_encounters + 1)
    if event_name == "area_entered":
        area = (payload or {}).get("area")
        if not isinstance(area, str) or not area:
            logger.warning(f"area_entered without a valid area: {payload}")
            return state
        return replace(state, current_area=area)
    return state


def replay(events: Iterable[Any], initial: Optional[GameState] = None) -> GameState:
    """
    Rejoue une séquence d'événements.

    Args:
        events: Objets Event (name, payload) ou tuples (name, payload)
        initial: État de départ (état par défaut si None)
    """
    def step(state: GameState, event: Any) -> GameState:
        if isinstance(event, tuple):
            name, payload = event
        else:
            name, payload = event.name, event.payload
        return transition(state, name, payload)

    return reduce(step, events, initial or GameState())


class GameStateStore:
    """Propriétaire unique du GameState."""

    def __init__(self, initial: Optional[GameState] = None) -> None:
        self._initial = initial or GameState()
        self._state = self._initial

    def apply(self, event_name: str, payload: Optional[Mapping[str, Any]] = None) -> GameState:
        new_state = transition(self._state, event_name, payload)
        if new_state is not self._state:
            logger.debug(f"GameState updated by {event_name}: {new_state}")
        self._state = new_state
        return new_state

    def get_state(self) -> GameState:
        # GameState est figé : le snapshot ne peut pas modifier l'état partagé
        return self._state

    def set_state(self, partial: Optional[Mapping[str, Any]] = None, **changes: Any) -> GameState:
        """
        Remplacement administratif (restauration de sauvegarde), par fusion.

        Raises:
            ValueError: champ inconnu ou compteur négatif
        """
        merged = dict(partial or {})
        merged.update(changes)
        unknown = set(merged) - _FIELD_NAMES
        if unknown:
            raise ValueError(f"Unknown GameState fields: {sorted(unknown)}")
        for name in _COUNTERS:
            if name in merged and int(merged[name]) < 0:
                raise ValueError(f"{name} must be >= 0, got {merged[name]}")
        self._state = replace(self._state, **merged)
        logger.info(f"GameState overridden: {sorted(merged)}")
        return self._state

    def reset(self) -> None:
        self._state = self._initial
        logger.info("GameState reset")
