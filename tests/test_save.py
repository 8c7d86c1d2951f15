"""
Tests pour la sauvegarde et la restauration d'une partie.
"""

import json
from dataclasses import replace

import pytest

from asylum.core.save import SaveFormatError, build_save_record, load_game, save_game, validate_record
from asylum.game import GameSession
from asylum.settings import SAVE_VERSION


def pick_up(session, position, target_id):
    session.player.place(position)
    session.player.look_at(session.registry.get(target_id).position)
    session.tick(0.016)
    return session.interact()


def play_to_restricted_area(session):
    """Clé, porte d'entrée, couloir, aile restreinte, générateur lancé."""
    pick_up(session, (-3, 1.8, 0.5), "office_key")
    pick_up(session, (0, 1.8, 8), "entrance_door")
    session.interact()
    session.tick(0.016)
    pick_up(session, (0, 1.8, 13), "corridor_door")
    session.tick(0.016)
    pick_up(session, (-5, 1.8, 6), "main_generator")
    session.tick(1.0)


class TestSaveRecord:
    """Contenu de l'enregistrement."""

    def setup_method(self):
        self.session = GameSession()
        self.session.start()

    def test_record_fields(self):
        pick_up(self.session, (-3, 1.8, 0.5), "office_key")

        record = build_save_record(self.session)

        assert record["version"] == SAVE_VERSION
        assert record["area"] == "asylum_entrance"
        assert record["state"]["keys_collected"] == 1
        assert record["inventory"] == [{"key_id": "office_key", "display_name": "Office Key"}]
        assert "office_key" not in record["interactables"]
        assert record["consumed"] == ["office_key"]
        assert record["triggers"] == {"entrance_zone": True}
        assert record["story"]["pending"][0]["rule"] == "entity_introduction"
        assert record["player"]["position"] == [-3, 1.8, 0.5]
        # Sérialisable tel quel
        json.dumps(record)

    def test_nothing_loaded(self):
        with pytest.raises(SaveFormatError):
            build_save_record(GameSession())

    @pytest.mark.parametrize("change", [
        {"version": 99},
        {"area": "basement"},
        {"state": {"keys_collected": -1}},
        {"state": {"lives": 3}},
        {"state": {"keys_collected": True}},
        {"state": {"power_restored": "yes"}},
        {"state": {"generator_started": 1}},
        {"state": {"current_area": 7}},
        {"inventory": ["office_key"]},
        {"areas": {"basement": {}}},
    ])
    def test_validate_rejects(self, change):
        record = build_save_record(self.session)
        record.update(change)

        with pytest.raises(SaveFormatError):
            validate_record(record, self.session.catalog)


class TestSaveRoundTrip:
    """Recharger reproduit le comportement ultérieur."""

    def test_pending_beat_survives_reload(self):
        """Le courant revient 2 s après le chargement d'une sauvegarde faite 1 s après le générateur."""
        session = GameSession()
        session.start()
        play_to_restricted_area(session)
        record = session.snapshot()

        restored = GameSession()
        restored.start()
        assert restored.restore(record)

        assert restored.area_manager.current_area_id == "restricted_area"
        assert restored.area_manager.sealed_doors == ["restricted_return"]
        assert restored.lighting.mode == "chase"
        assert restored.story.pending_beats()[0]["remaining"] == pytest.approx(2.0)

        restored.tick(1.9)
        assert not restored.store.get_state().power_restored
        restored.tick(0.2)
        assert restored.store.get_state().power_restored
        assert restored.area_manager.sealed_doors == []

    def test_fired_rules_and_triggers_survive_reload(self):
        """La poursuite ne redémarre pas et la clé ramassée ne réapparaît pas."""
        session = GameSession()
        session.start()
        play_to_restricted_area(session)
        record = json.loads(json.dumps(session.snapshot()))

        restored = GameSession()
        stories = []
        restored.bus.subscribe("story_trigger", lambda p: stories.append(p["type"]))
        restored.start()
        restored.restore(record)

        restored.player.place((0, 1.8, 0))
        restored.tick(0.016)
        assert "chase_sequence" not in stories
        assert restored.registry.get("main_generator").data.is_running

        # Retour à l'entrée : la clé a déjà été ramassée
        restored.area_manager.load_area("asylum_entrance")
        assert "office_key" not in restored.registry
        assert not restored.registry.get("entrance_door").data.locked
        assert restored.inventory.has_key("office_key")

    def test_invalid_record_leaves_session_untouched(self):
        session = GameSession()
        session.start()
        pick_up(session, (-3, 1.8, 0.5), "office_key")
        record = session.snapshot()
        record["area"] = "basement"

        with pytest.raises(SaveFormatError):
            session.restore(record)

        assert session.area_manager.current_area_id == "asylum_entrance"
        assert session.store.get_state().keys_collected == 1
        assert len(session.story.pending_beats()) == 1

    def test_unloadable_area_leaves_session_untouched(self):
        """Une zone aux données invalides est refusée avant tout démontage."""
        session = GameSession()
        session.start()
        pick_up(session, (-3, 1.8, 0.5), "office_key")
        record = session.snapshot()
        record["area"] = "main_corridor"
        broken = session.catalog.get("main_corridor")
        session.catalog.areas["main_corridor"] = replace(
            broken, interactables=({"id": "crate", "type": "crate", "position": [0, 1, 0]},))

        with pytest.raises(SaveFormatError):
            session.restore(record)

        assert session.area_manager.current_area_id == "asylum_entrance"
        assert session.store.get_state().keys_collected == 1
        assert session.inventory.has_key("office_key")
        assert len(session.story.pending_beats()) == 1


class TestSaveFiles:
    """save_game / load_game sur disque."""

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "save.json"
        session = GameSession()
        session.start()
        pick_up(session, (2, 1.8, -1.5), "entrance_note")

        assert save_game(session, path)
        assert path.exists()

        other = GameSession()
        other.start()
        assert load_game(other, path)
        assert other.store.get_state().notes_read == 1
        assert other.registry.get("entrance_note").data.is_read

    def test_load_missing_file(self, tmp_path):
        session = GameSession()
        session.start()

        assert not load_game(session, tmp_path / "missing.json")

    def test_load_corrupted_file(self, tmp_path):
        path = tmp_path / "save.json"
        path.write_text("{not json", encoding="utf-8")
        session = GameSession()
        session.start()

        assert not load_game(session, path)
        assert session.area_manager.current_area_id == "asylum_entrance"

    def test_load_wrong_version(self, tmp_path):
        path = tmp_path / "save.json"
        session = GameSession()
        session.start()
        record = session.snapshot()
        record["version"] = SAVE_VERSION + 1
        path.write_text(json.dumps(record), encoding="utf-8")

        assert not load_game(session, path)

    def test_save_without_area(self, tmp_path):
        assert not save_game(GameSession(), tmp_path / "save.json")
