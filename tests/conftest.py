"""
Configuration pytest pour Hartwell Asylum.
Fixtures communes et setup des tests.
"""

import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

# Ajouter le dossier racine au path pour les imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from asylum.core.event_bus import EventBus
from asylum.core.game_state import GameStateStore
from asylum.core.scheduler import Scheduler
from asylum.core.story import StoryEngine, default_rules
from asylum.world.interaction import PickResult


class Recorder:
    """Handler externe qui mémorise les événements reçus, dans l'ordre."""

    def __init__(self, bus, *event_names):
        self.events = []
        for name in event_names:
            bus.subscribe(name, self._make_handler(name))

    def _make_handler(self, name):
        def handler(payload):
            self.events.append((name, payload))
        return handler

    @property
    def names(self):
        return [name for name, _ in self.events]

    def payloads(self, name):
        return [payload for event_name, payload in self.events if event_name == name]


class FixedPicker:
    """Picker de test : vise toujours l'objet `target_id` (ou rien)."""

    def __init__(self, target_id=None):
        self.target_id = target_id

    def pick(self, origin, direction):
        if self.target_id is None:
            return PickResult(False)
        return PickResult(True, self.target_id, 1.0)


@pytest.fixture
def core():
    """Bus, store, scheduler et moteur d'histoire câblés comme en jeu."""
    scheduler = Scheduler()
    store = GameStateStore()
    bus = EventBus(store=store)
    story = StoryEngine(bus, store, scheduler, rules=default_rules(repeat_aggression=False))
    return SimpleNamespace(bus=bus, store=store, scheduler=scheduler, story=story)


@pytest.fixture
def recorder_factory():
    """Fabrique de Recorder."""
    return Recorder


@pytest.fixture
def sample_area_data():
    """Deux zones minimales reliées par une porte."""
    return {
        "version": 1,
        "areas": {
            "hall": {
                "name": "Hall",
                "player_start": [0, 1.8, 0],
                "lighting": "dim",
                "interactables": [
                    {"id": "hall_note", "type": "note", "position": [1, 1.8, 2],
                     "data": {"title": "Memo", "content": "Do not enter."}},
                    {"id": "hall_key", "type": "key", "position": [-1, 1.8, 2],
                     "data": {"id": "ward_key", "name": "Ward Key"}},
                    {"id": "hall_door", "type": "door", "position": [0, 1.8, 2.5],
                     "data": {"locked": True, "key_id": "ward_key", "target_area": "ward"}},
                ],
                "triggers": [
                    {"id": "hall_zone", "position": [0, 1.8, 10], "radius": 2,
                     "event": "area_entered", "data": {"area": "hall"}},
                ],
            },
            "ward": {
                "name": "Ward",
                "player_start": [0, 1.8, -5],
                "lighting": "emergency",
                "interactables": [
                    {"id": "ward_exit", "type": "door", "position": [0, 1.8, -7],
                     "data": {"locked": False, "target_area": "hall"}},
                    {"id": "ward_vault", "type": "door", "position": [0, 1.8, 12],
                     "data": {"locked": True, "key_id": "vault_key"}},
                    {"id": "ward_generator", "type": "generator", "position": [-5, 0.5, 8],
                     "data": {"powers": "ward_lighting"}},
                ],
                "triggers": [
                    {"id": "ward_zone", "position": [0, 1.8, 20], "radius": 2,
                     "event": "area_entered", "data": {"area": "restricted"}},
                    {"id": "ward_presence", "position": [0, 1.8, 30], "radius": 2,
                     "event": "entity_encounter", "data": {"intensity": 2}, "repeatable": True},
                ],
            },
        },
    }


@pytest.fixture
def picker_factory():
    """Fabrique de FixedPicker."""
    return FixedPicker
