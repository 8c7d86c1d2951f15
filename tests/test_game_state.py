"""
Tests pour le GameState et sa fonction de transition.
"""

import dataclasses

import pytest

from asylum.core.event_bus import EventBus
from asylum.core.game_state import GameState, GameStateStore, replay, transition


class TestTransition:
    """Tests pour la fonction de transition pure."""

    def test_initial_state(self):
        state = GameState()

        assert state.keys_collected == 0
        assert state.notes_read == 0
        assert not state.generator_started
        assert not state.power_restored
        assert state.entity_encounters == 0
        assert state.current_area == "entrance"

    def test_counters(self):
        """Test des compteurs incrémentés d'exactement un."""
        state = GameState()
        state = transition(state, "key_collected", {"id": "office_key"})
        state = transition(state, "note_read", {})
        state = transition(state, "entity_encounter", {"intensity": 3})

        assert state.keys_collected == 1
        assert state.notes_read == 1
        assert state.entity_encounters == 1

    def test_flags(self):
        state = transition(GameState(), "generator_started", {})
        assert state.generator_started
        assert not state.power_restored

        state = transition(state, "power_restored", {})
        assert state.power_restored

    def test_area_entered(self):
        state = transition(GameState(), "area_entered", {"area": "corridor"})
        assert state.current_area == "corridor"

    def test_area_entered_without_area_is_ignored(self):
        """Un area_entered sans zone ne change pas l'état."""
        state = GameState()
        assert transition(state, "area_entered", {}) is state
        assert transition(state, "area_entered", {"area": 42}) is state

    def test_unknown_event_is_noop(self):
        state = GameState()
        assert transition(state, "door_opened", {"id": "x"}) is state
        assert transition(state, "note_reviewed", {"id": "x"}) is state

    def test_original_state_untouched(self):
        """La transition ne modifie jamais l'état d'origine."""
        state = GameState()
        transition(state, "key_collected", {})
        assert state.keys_collected == 0

    def test_state_is_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            GameState().keys_collected = 5


class TestReplay:
    """Rejouer le journal redonne l'état courant."""

    def test_replay_matches_store(self, core):
        core.bus.emit("key_collected", {"id": "office_key"})
        core.bus.emit("note_read", {"id": "entrance_note"})
        core.bus.emit("area_entered", {"area": "corridor"})
        core.bus.emit("entity_encounter", {"intensity": 1})
        core.bus.emit("generator_started", {"id": "main_generator"})

        assert replay(core.bus.history) == core.store.get_state()

    def test_replay_tuples(self):
        events = [("key_collected", {}), ("key_collected", {}), ("area_entered", {"area": "exit"})]

        state = replay(events)

        assert state.keys_collected == 2
        assert state.current_area == "exit"

    def test_replay_empty(self):
        initial = GameState(notes_read=2)
        assert replay([], initial) == initial


class TestGameStateStore:
    """Tests pour GameStateStore."""

    def setup_method(self):
        self.store = GameStateStore()

    def test_apply(self):
        self.store.apply("key_collected", {})
        assert self.store.get_state().keys_collected == 1

    def test_snapshot_is_immutable(self):
        """Un snapshot reste valide après d'autres événements."""
        snapshot = self.store.get_state()
        self.store.apply("key_collected", {})

        assert snapshot.keys_collected == 0
        assert self.store.get_state().keys_collected == 1

    def test_set_state_merges(self):
        self.store.apply("note_read", {})
        state = self.store.set_state({"keys_collected": 2}, power_restored=True)

        assert state.keys_collected == 2
        assert state.power_restored
        assert state.notes_read == 1

    def test_set_state_rejects_unknown_fields(self):
        with pytest.raises(ValueError):
            self.store.set_state(lives=3)

    def test_set_state_rejects_negative_counters(self):
        with pytest.raises(ValueError):
            self.store.set_state(keys_collected=-1)

    def test_reset(self):
        self.store.apply("key_collected", {})
        self.store.reset()
        assert self.store.get_state() == GameState()

    def test_store_driven_by_bus(self):
        store = GameStateStore()
        bus = EventBus(store=store)

        bus.emit("entity_encounter", {})
        bus.emit("entity_encounter", {})

        assert store.get_state().entity_encounters == 2
