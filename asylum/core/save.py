"""
Sauvegarde et restauration d'une partie.

Le format est un enregistrement JSON plat :

    {
      "version": 1,
      "area": "restricted_area",
      "state": {...champs du GameState...},
      "inventory": [{"key_id", "display_name"}, ...],
      "interactables": {id: {"active", "data"}},   # zone courante, objets consommés omis
      "consumed": [id, ...],
      "triggers": {id: armed},
      "sealed_doors": [id, ...],
      "story": {"fired": [...], "pending": [{"rule", "remaining"}]},
      "player": {...},
      "areas": {area_id: {...}}                    # autres zones déjà visitées
    }

Recharger un enregistrement reproduit le comportement ultérieur du jeu :
règles déjà déclenchées, triggers désarmés, beats en attente.
"""

import logging
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict

from asylum.core.game_state import GameState
from asylum.core.utils import load_json_safe, write_json_safe
from asylum.settings import SAVE_PATH, SAVE_VERSION

logger = logging.getLogger(__name__)

_STATE_FIELDS = {f.name for f in fields(GameState)}


class SaveFormatError(ValueError):
    """Enregistrement de sauvegarde illisible ou incompatible."""


def build_save_record(session) -> Dict[str, Any]:
    """
    Construit l'enregistrement de sauvegarde d'une session.

    Args:
        session: GameSession démarrée

    Returns:
        Dictionnaire sérialisable en JSON
    """
    areas = session.area_manager
    if areas.current_area_id is None:
        raise SaveFormatError("No area loaded, nothing to save")

    current = areas.capture_area_state()
    others = {area_id: state for area_id, state in areas.memory.items()
              if area_id != areas.current_area_id}
    return {
        "version": SAVE_VERSION,
        "area": areas.current_area_id,
        "state": session.store.get_state().to_dict(),
        "inventory": session.inventory.to_list(),
        "interactables": current["objects"],
        "consumed": current["consumed"],
        "triggers": current["triggers"],
        "sealed_doors": current["sealed"],
        "story": {
            "fired": sorted(session.story.fired_rules),
            "pending": session.story.pending_beats(),
        },
        "player": session.player.to_dict(),
        "areas": others,
    }


def validate_record(record: Any, catalog) -> None:
    """
    Vérifie un enregistrement avant toute modification de la session.

    Raises:
        SaveFormatError: version, zone ou état invalide
    """
    if not isinstance(record, dict):
        raise SaveFormatError("Save record must be a JSON object")
    if record.get("version") != SAVE_VERSION:
        raise SaveFormatError(f"Unsupported save version: {record.get('version')!r}")
    area_id = record.get("area")
    if not catalog.has_area(area_id):
        raise SaveFormatError(f"Unknown area in save: {area_id!r}")
    state = record.get("state")
    if not isinstance(state, dict):
        raise SaveFormatError("Missing game state")
    unknown = set(state) - _STATE_FIELDS
    if unknown:
        raise SaveFormatError(f"Unknown GameState fields: {sorted(unknown)}")
    for name in ("keys_collected", "notes_read", "entity_encounters"):
        value = state.get(name, 0)
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise SaveFormatError(f"{name} must be a non-negative integer, got {value!r}")
    for name in ("generator_started", "power_restored"):
        if not isinstance(state.get(name, False), bool):
            raise SaveFormatError(f"{name} must be a boolean, got {state[name]!r}")
    if not isinstance(state.get("current_area", ""), str):
        raise SaveFormatError(f"current_area must be a string, got {state['current_area']!r}")
    for key in record.get("inventory", []):
        if not isinstance(key, dict) or not key.get("key_id"):
            raise SaveFormatError(f"Invalid inventory entry: {key!r}")
    for area_id in record.get("areas", {}):
        if not catalog.has_area(area_id):
            raise SaveFormatError(f"Unknown area in world memory: {area_id!r}")


def area_memory_from_record(record: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Reconstitue la mémoire des zones, zone courante comprise."""
    memory = {area_id: dict(state) for area_id, state in record.get("areas", {}).items()}
    memory[record["area"]] = {
        "objects": record.get("interactables", {}),
        "consumed": record.get("consumed", []),
        "triggers": record.get("triggers", {}),
        "sealed": record.get("sealed_doors", []),
    }
    return memory


def save_game(session, path: Path = SAVE_PATH) -> bool:
    """
    Écrit la partie en cours.

    Returns:
        True si l'écriture a réussi
    """
    try:
        record = build_save_record(session)
    except SaveFormatError as e:
        logger.error(f"Cannot save game: {e}")
        return False
    if not write_json_safe(Path(path), record):
        return False
    logger.info(f"Game saved to {path} (area {record['area']})")
    return True


def load_game(session, path: Path = SAVE_PATH) -> bool:
    """
    Recharge une partie. La session n'est pas modifiée en cas d'échec.

    Returns:
        True si la partie a été restaurée
    """
    record = load_json_safe(Path(path))
    if record is None:
        return False
    try:
        return session.restore(record)
    except SaveFormatError as e:
        logger.error(f"Invalid save file {path}: {e}")
        return False
