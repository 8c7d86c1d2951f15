"""
Tests narration : règles du moteur d'histoire, délais de mise en scène, teardown.
"""

import pytest

from asylum.core.event_bus import (
    AREA_ENTERED, ENTITY_ENCOUNTER, GENERATOR_STARTED, KEY_COLLECTED,
    NOTE_READ, NOTE_REVIEWED, POWER_RESTORED, STORY_TRIGGER, EventBus,
)
from asylum.core.game_state import GameStateStore
from asylum.core.scheduler import Scheduler
from asylum.core.story import STORY_MESSAGES, StoryBeat, StoryEngine, StoryRule, default_rules


def story_types(recorder):
    return [payload["type"] for payload in recorder.payloads(STORY_TRIGGER)]


class TestStoryRules:
    """Règles par défaut."""

    def test_entity_introduction_after_delay(self, core, recorder_factory):
        """La première clé annonce l'entité après 2 secondes."""
        recorder = recorder_factory(core.bus, STORY_TRIGGER)
        core.bus.emit(KEY_COLLECTED, {"id": "office_key"})

        core.scheduler.update(1.9)
        assert story_types(recorder) == []

        core.scheduler.update(0.1)
        assert story_types(recorder) == ["entity_introduction"]
        assert recorder.payloads(STORY_TRIGGER)[0]["message"] == \
            STORY_MESSAGES[StoryBeat.ENTITY_INTRODUCTION]

    def test_second_key_does_not_reintroduce(self, core, recorder_factory):
        recorder = recorder_factory(core.bus, STORY_TRIGGER)
        core.bus.emit(KEY_COLLECTED, {})
        core.bus.emit(KEY_COLLECTED, {})
        core.scheduler.update(5.0)

        assert story_types(recorder) == ["entity_introduction"]

    def test_backstory_on_first_note_only(self, core, recorder_factory):
        recorder = recorder_factory(core.bus, STORY_TRIGGER)
        core.bus.emit(NOTE_READ, {"id": "a"})
        core.bus.emit(NOTE_READ, {"id": "b"})
        core.bus.emit(NOTE_REVIEWED, {"id": "a"})

        assert story_types(recorder) == ["backstory_reveal"]

    def test_generator_restores_power_after_delay(self, core, recorder_factory):
        """generator_started -> 3 s -> power_restored puis story_trigger."""
        recorder = recorder_factory(core.bus, POWER_RESTORED, STORY_TRIGGER)
        core.bus.emit(GENERATOR_STARTED, {"id": "main_generator"})

        core.scheduler.update(2.9)
        assert recorder.events == []
        assert not core.store.get_state().power_restored

        core.scheduler.update(0.1)
        assert recorder.names == [POWER_RESTORED, STORY_TRIGGER]
        assert story_types(recorder) == ["power_restored"]
        assert core.store.get_state().power_restored

    def test_entity_aggressive_on_third_encounter(self, core, recorder_factory):
        recorder = recorder_factory(core.bus, STORY_TRIGGER)

        core.bus.emit(ENTITY_ENCOUNTER, {"intensity": 1})
        core.bus.emit(ENTITY_ENCOUNTER, {"intensity": 1})
        assert story_types(recorder) == []

        core.bus.emit(ENTITY_ENCOUNTER, {"intensity": 1})
        assert story_types(recorder) == ["entity_aggressive"]

        core.bus.emit(ENTITY_ENCOUNTER, {"intensity": 1})
        assert story_types(recorder) == ["entity_aggressive"]

    def test_entity_aggressive_repeatable_when_enabled(self, recorder_factory):
        scheduler = Scheduler()
        store = GameStateStore()
        bus = EventBus(store=store)
        StoryEngine(bus, store, scheduler, rules=default_rules(repeat_aggression=True))
        recorder = recorder_factory(bus, STORY_TRIGGER)

        for _ in range(4):
            bus.emit(ENTITY_ENCOUNTER, {})

        assert story_types(recorder) == ["entity_aggressive", "entity_aggressive"]

    def test_chase_on_restricted_area(self, core, recorder_factory):
        recorder = recorder_factory(core.bus, STORY_TRIGGER)
        core.bus.emit(AREA_ENTERED, {"area": "corridor"})
        assert story_types(recorder) == []

        core.bus.emit(AREA_ENTERED, {"area": "restricted"})
        core.bus.emit(AREA_ENTERED, {"area": "restricted"})
        assert story_types(recorder) == ["chase_sequence"]

    def test_evaluate_returns_triggered_rules(self, core):
        assert core.story.evaluate(NOTE_READ, {}) == []
        core.store.apply(NOTE_READ, {})
        assert core.story.evaluate(NOTE_READ, {}) == ["backstory_reveal"]
        assert "backstory_reveal" in core.story.fired_rules


class TestStoryLifecycle:
    """Beats différés, teardown et reset."""

    def test_teardown_cancels_pending_beats(self, core, recorder_factory):
        """Un beat différé annulé par un déchargement ne part jamais."""
        recorder = recorder_factory(core.bus, STORY_TRIGGER, POWER_RESTORED)
        core.bus.emit(GENERATOR_STARTED, {})
        assert len(core.story.pending_beats()) == 1

        assert core.story.teardown() == 1
        core.scheduler.update(10.0)

        assert recorder.events == []
        assert core.story.pending_beats() == []

    def test_pending_beats_report_remaining(self, core):
        core.bus.emit(KEY_COLLECTED, {})
        core.scheduler.update(0.5)

        beats = core.story.pending_beats()
        assert beats[0]["rule"] == "entity_introduction"
        assert beats[0]["remaining"] == pytest.approx(1.5)

    def test_restore_pending(self, core, recorder_factory):
        recorder = recorder_factory(core.bus, STORY_TRIGGER)
        core.story.restore_pending([{"rule": "entity_introduction", "remaining": 0.5},
                                    {"rule": "unknown_rule", "remaining": 1.0}])

        core.scheduler.update(0.5)

        assert story_types(recorder) == ["entity_introduction"]

    def test_restore_fired_blocks_rule(self, core, recorder_factory):
        recorder = recorder_factory(core.bus, STORY_TRIGGER)
        core.story.restore_fired(["backstory_reveal", "not_a_rule"])

        core.bus.emit(NOTE_READ, {})

        assert story_types(recorder) == []
        assert core.story.fired_rules == {"backstory_reveal"}

    def test_reset_forgets_fired_rules(self, core, recorder_factory):
        core.bus.emit(NOTE_READ, {})
        core.story.reset()
        core.store.reset()
        recorder = recorder_factory(core.bus, STORY_TRIGGER)

        core.bus.emit(NOTE_READ, {})

        assert story_types(recorder) == ["backstory_reveal"]

    def test_custom_rules(self, recorder_factory):
        scheduler = Scheduler()
        store = GameStateStore()
        bus = EventBus(store=store)
        rule = StoryRule(
            name="lights_out",
            event_name="switch_toggled",
            condition=lambda state, payload: payload.get("is_on") is False,
            emissions=(("blackout", {"level": 1}),),
            delay=1.0,
        )
        StoryEngine(bus, store, scheduler, rules=[rule])
        recorder = recorder_factory(bus, "blackout")

        bus.emit("switch_toggled", {"is_on": True})
        bus.emit("switch_toggled", {"is_on": False})
        scheduler.update(1.0)

        assert recorder.events == [("blackout", {"level": 1})]

    def test_duplicate_rule_names(self):
        rules = default_rules()
        with pytest.raises(ValueError):
            StoryEngine(EventBus(), GameStateStore(), Scheduler(), rules=rules + rules[:1])
