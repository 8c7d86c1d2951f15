"""
Gestionnaire audio pour les effets sonores et les ambiances.

AudioCues est un pur consommateur du bus : il traduit les événements en
sons, sans aucun canal de retour vers le cœur du jeu.
"""
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import pygame

from asylum.core.event_bus import (
    DOOR_OPENED, DOOR_UNLOCKED, DOORS_SEALED, ENTITY_ENCOUNTER, GENERATOR_STARTED,
    INTERACTION_DENIED, KEY_COLLECTED, NOTE_READ, NOTE_REVIEWED, SCENE_LOADED,
    STORY_TRIGGER, SWITCH_TOGGLED,
)
from asylum.core.story import StoryBeat
from asylum.settings import ASSETS_PATH

logger = logging.getLogger(__name__)

# Sons attendus dans assets/sfx (wav ou ogg)
SOUND_IDS = (
    "door_creak", "door_locked", "door_slam", "paper_rustle", "key_pickup",
    "switch_flip", "generator_start", "entity_whisper", "stinger_1",
    "stinger_2", "stinger_3",
)
AMBIENT_IDS = ("ambient_asylum", "generator_running", "chase_music")


class AudioManager:
    """Gestionnaire des effets sonores et des boucles d'ambiance (pygame.mixer)."""

    def __init__(self, assets_path: Path = ASSETS_PATH):
        self.assets_path = Path(assets_path)
        self.sounds: Dict[str, pygame.mixer.Sound] = {}
        self.ambient_channels: Dict[str, pygame.mixer.Channel] = {}
        self.sfx_volume = 0.5
        self.ambient_volume = 0.3
        self.available = False

        # Initialiser pygame.mixer si pas déjà fait
        try:
            if not pygame.mixer.get_init():
                pygame.mixer.init(frequency=22050, size=-16, channels=2, buffer=512)
            self.available = True
        except pygame.error as e:
            logger.warning(f"Audio disabled, mixer unavailable: {e}")
            return

        self._load_sounds()

    def _load_sounds(self) -> None:
        """Charge tous les sons présents dans assets/sfx et assets/ambient."""
        for folder, sound_ids in (("sfx", SOUND_IDS), ("ambient", AMBIENT_IDS)):
            for sound_id in sound_ids:
                path = self._find_file(folder, sound_id)
                if path is None:
                    continue
                try:
                    self.sounds[sound_id] = pygame.mixer.Sound(str(path))
                    logger.debug(f"Loaded sound: {sound_id}")
                except pygame.error as e:
                    logger.warning(f"Failed to load sound {sound_id}: {e}")
        logger.info(f"Loaded {len(self.sounds)} sounds")

    def _find_file(self, folder: str, sound_id: str) -> Optional[Path]:
        for extension in (".wav", ".ogg"):
            path = self.assets_path / folder / f"{sound_id}{extension}"
            if path.exists():
                return path
        return None

    def play_sound(self, sound_id: str, volume: Optional[float] = None) -> bool:
        """
        Joue un effet sonore.

        Args:
            sound_id: ID du son
            volume: Volume spécifique (optionnel)

        Returns:
            True si le son a été joué avec succès
        """
        sound = self.sounds.get(sound_id)
        if sound is None:
            logger.debug(f"Sound not found: {sound_id}")
            return False
        try:
            sound.set_volume((volume if volume is not None else 1.0) * self.sfx_volume)
            sound.play()
            return True
        except pygame.error as e:
            logger.error(f"Error playing sound {sound_id}: {e}")
            return False

    def play_ambient(self, ambient_id: str) -> bool:
        """Démarre une boucle d'ambiance (sans effet si déjà en cours)."""
        if ambient_id in self.ambient_channels:
            return True
        sound = self.sounds.get(ambient_id)
        if sound is None:
            logger.debug(f"Ambient not found: {ambient_id}")
            return False
        try:
            sound.set_volume(self.ambient_volume)
            channel = sound.play(loops=-1)
            if channel is not None:
                self.ambient_channels[ambient_id] = channel
            return channel is not None
        except pygame.error as e:
            logger.error(f"Error playing ambient {ambient_id}: {e}")
            return False

    def stop_ambient(self, ambient_id: str) -> None:
        channel = self.ambient_channels.pop(ambient_id, None)
        if channel is not None:
            channel.stop()

    def stop_all(self) -> None:
        for ambient_id in list(self.ambient_channels):
            self.stop_ambient(ambient_id)
        if self.available:
            pygame.mixer.stop()


class AudioCues:
    """
    Abonné du bus qui déclenche les sons correspondant aux événements.

    `backend` est n'importe quel objet exposant play_sound / play_ambient /
    stop_ambient (AudioManager en jeu, un enregistreur en test).
    """

    # Son simple par événement
    EVENT_SOUNDS = {
        DOOR_OPENED: "door_creak",
        DOOR_UNLOCKED: "door_creak",
        DOORS_SEALED: "door_slam",
        NOTE_READ: "paper_rustle",
        NOTE_REVIEWED: "paper_rustle",
        KEY_COLLECTED: "key_pickup",
        SWITCH_TOGGLED: "switch_flip",
        GENERATOR_STARTED: "generator_start",
        ENTITY_ENCOUNTER: "entity_whisper",
    }

    DENIED_SOUNDS = {
        "locked": "door_locked",
        "sealed": "door_locked",
    }

    STORY_SOUNDS = {
        StoryBeat.ENTITY_INTRODUCTION.value: "entity_whisper",
        StoryBeat.ENTITY_AGGRESSIVE.value: "stinger_2",
        StoryBeat.CHASE_SEQUENCE.value: "stinger_3",
    }

    def __init__(self, bus, backend):
        self.backend = backend
        self.subscriptions = []
        for event_name, sound_id in self.EVENT_SOUNDS.items():
            self.subscriptions.append(bus.subscribe(event_name, self._make_player(sound_id)))
        self.subscriptions.append(bus.subscribe(INTERACTION_DENIED, self._on_denied))
        self.subscriptions.append(bus.subscribe(GENERATOR_STARTED, self._on_generator_started))
        self.subscriptions.append(bus.subscribe(STORY_TRIGGER, self._on_story_trigger))
        self.subscriptions.append(bus.subscribe(SCENE_LOADED, self._on_scene_loaded))

    def _make_player(self, sound_id: str):
        def play(payload: Dict[str, Any]) -> None:
            self.backend.play_sound(sound_id)
        play.__qualname__ = f"AudioCues.play[{sound_id}]"
        return play

    def _on_denied(self, payload: Dict[str, Any]) -> None:
        sound_id = self.DENIED_SOUNDS.get(payload.get("reason"))
        if sound_id:
            self.backend.play_sound(sound_id)

    def _on_generator_started(self, payload: Dict[str, Any]) -> None:
        self.backend.play_ambient("generator_running")

    def _on_story_trigger(self, payload: Dict[str, Any]) -> None:
        beat_type = payload.get("type")
        sound_id = self.STORY_SOUNDS.get(beat_type)
        if sound_id:
            self.backend.play_sound(sound_id)
        if beat_type == StoryBeat.CHASE_SEQUENCE.value:
            self.backend.play_ambient("chase_music")

    def _on_scene_loaded(self, payload: Dict[str, Any]) -> None:
        self.backend.stop_ambient("chase_music")
        self.backend.play_ambient("ambient_asylum")

    def detach(self, bus) -> None:
        for subscription in self.subscriptions:
            bus.unsubscribe(subscription)
        self.subscriptions.clear()
