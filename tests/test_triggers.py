"""
Tests pour le système de triggers spatiaux.
"""

import pytest

from asylum.core.event_bus import EventBus
from asylum.world.triggers import Trigger, TriggerSystem, trigger_from_data


class TestTrigger:
    """Tests pour Trigger."""

    def test_creation(self):
        trigger = Trigger("zone", (0, 1.8, 5), 2.0, "area_entered", {"area": "entrance"})

        assert trigger.armed
        assert trigger.contains((0, 1.8, 6))
        assert trigger.contains((0, 1.8, 7))  # sur le bord
        assert not trigger.contains((0, 1.8, 7.1))

    def test_invalid_radius(self):
        with pytest.raises(ValueError):
            Trigger("zone", (0, 0, 0), 0.0, "area_entered")

    def test_missing_event(self):
        with pytest.raises(ValueError):
            Trigger("zone", (0, 0, 0), 1.0, "")

    def test_from_data(self):
        trigger = trigger_from_data("whispers", {
            "position": [0, 1.8, 0], "radius": 3, "event": "entity_encounter",
            "data": {"intensity": 1}, "repeatable": True,
        })

        assert trigger.radius == 3.0
        assert trigger.payload == {"intensity": 1}
        assert trigger.repeatable


class TestTriggerSystem:
    """Tests pour TriggerSystem."""

    def setup_method(self):
        self.bus = EventBus()
        self.events = []
        self.bus.subscribe("area_entered", self.events.append)
        self.bus.subscribe("entity_encounter", self.events.append)
        self.system = TriggerSystem(self.bus)

    def test_one_shot_fires_once(self):
        """Un trigger one-shot ne tire qu'une fois, même en ressortant puis revenant."""
        self.system.add_trigger(Trigger("zone", (0, 1.8, 5), 2.0, "area_entered", {"area": "corridor"}))

        assert self.system.update((0, 1.8, 5)) == ["zone"]
        assert self.system.update((0, 1.8, 5)) == []
        self.system.update((0, 1.8, -20))
        assert self.system.update((0, 1.8, 5)) == []

        assert self.events == [{"area": "corridor"}]

    def test_outside_does_not_fire(self):
        self.system.add_trigger(Trigger("zone", (0, 1.8, 5), 2.0, "area_entered", {"area": "corridor"}))

        assert self.system.update((10, 1.8, 5)) == []
        assert self.events == []

    def test_repeatable_is_edge_triggered(self):
        """Un trigger repeatable tire à l'entrée, pas à chaque tick passé dedans."""
        self.system.add_trigger(Trigger("whispers", (0, 1.8, 0), 3.0, "entity_encounter",
                                        {"intensity": 1}, repeatable=True))

        fired = [self.system.update((0, 1.8, 0)) for _ in range(5)]
        assert fired == [["whispers"], [], [], [], []]

        # Sortie complète puis retour : nouveau déclenchement
        assert self.system.update((0, 1.8, 10)) == []
        assert self.system.update((0, 1.8, 1)) == ["whispers"]

        assert len(self.events) == 2
        assert self.system.get_trigger("whispers").fire_count == 2

    def test_registration_order(self):
        self.system.add_trigger(Trigger("b", (0, 0, 0), 1.0, "entity_encounter", {"id": "b"}))
        self.system.add_trigger(Trigger("a", (0, 0, 0), 1.0, "entity_encounter", {"id": "a"}))

        assert self.system.update((0, 0, 0)) == ["b", "a"]

    def test_duplicate_id(self):
        self.system.add_trigger(Trigger("zone", (0, 0, 0), 1.0, "area_entered"))
        with pytest.raises(ValueError):
            self.system.add_trigger(Trigger("zone", (5, 0, 0), 1.0, "area_entered"))

    def test_handler_clearing_triggers_mid_update(self):
        """Un handler qui vide les triggers (changement de zone) arrête l'évaluation."""
        self.system.add_trigger(Trigger("first", (0, 0, 0), 1.0, "area_entered", {"area": "x"}))
        self.system.add_trigger(Trigger("second", (0, 0, 0), 1.0, "entity_encounter", {}))
        self.bus.subscribe("area_entered", lambda payload: self.system.clear())

        assert self.system.update((0, 0, 0)) == ["first"]

    def test_remove_trigger(self):
        self.system.add_trigger(Trigger("zone", (0, 0, 0), 1.0, "area_entered"))

        assert self.system.remove_trigger("zone")
        assert not self.system.remove_trigger("zone")
        assert self.system.update((0, 0, 0)) == []

    def test_armed_flags_round_trip(self):
        self.system.add_trigger(Trigger("zone", (0, 0, 0), 1.0, "area_entered", {"area": "x"}))
        self.system.update((0, 0, 0))
        flags = self.system.armed_flags()
        assert flags == {"zone": False}

        self.system.clear()
        self.system.add_trigger(Trigger("zone", (0, 0, 0), 1.0, "area_entered", {"area": "x"}))
        self.system.restore_armed(flags)

        assert self.system.update((0, 0, 0)) == []
