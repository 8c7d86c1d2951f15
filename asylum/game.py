"""
Session de jeu Hartwell Asylum.

Assemble le cœur narratif (bus, store, moteur d'histoire, scheduler), le monde
(zones, objets, triggers, joueur) et les consommateurs de présentation, puis
les fait avancer au rythme de tick(dt). Aucun appel pygame.display ici : la
session tourne aussi bien sous le viewer que dans les tests.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from asylum.core.event_bus import SCENE_LOADED, EventBus
from asylum.core.game_state import GameStateStore
from asylum.core.save import SaveFormatError, area_memory_from_record, build_save_record, validate_record
from asylum.core.scheduler import Scheduler
from asylum.core.story import StoryEngine, default_rules
from asylum.presentation.audio import AudioCues
from asylum.presentation.lighting import LightingController
from asylum.presentation.messages import DocumentView, MessageFeed, hud_snapshot
from asylum.settings import INTERACTION_RANGE, START_AREA, STORY_REPEAT_AGGRESSION
from asylum.world.areas import AreaCatalog, AreaManager
from asylum.world.interactables import InteractableKind, InteractableRegistry, Inventory
from asylum.world.interaction import InteractionResult, InteractionResolver, SpherePicker
from asylum.world.player import Player
from asylum.world.triggers import TriggerSystem

logger = logging.getLogger(__name__)


class GameSession:
    """
    Une partie en cours.

    Ordre d'un tick : transition de zone en attente, beats différés,
    triggers, objet visé, puis consommateurs de présentation.
    """

    def __init__(self, catalog: Optional[AreaCatalog] = None, picker=None,
                 audio_backend=None, dispose: Optional[Callable[[str], None]] = None,
                 interaction_range: float = INTERACTION_RANGE,
                 repeat_aggression: bool = STORY_REPEAT_AGGRESSION):
        # Cœur narratif
        self.scheduler = Scheduler()
        self.store = GameStateStore()
        self.bus = EventBus(store=self.store)
        self.story = StoryEngine(self.bus, self.store, self.scheduler,
                                 rules=default_rules(repeat_aggression))

        # Monde
        self.catalog = catalog if catalog is not None else AreaCatalog.from_json()
        self.registry = InteractableRegistry()
        self.inventory = Inventory()
        self.triggers = TriggerSystem(self.bus)
        self.picker = picker if picker is not None else SpherePicker(self.registry)
        self.disposed: List[str] = []
        self._dispose_hook = dispose
        self.resolver = InteractionResolver(
            self.bus, self.registry, self.inventory, self.picker,
            interaction_range=interaction_range, dispose=self._dispose,
        )
        self.area_manager = AreaManager(self.bus, self.catalog, self.triggers, self.registry,
                                        resolver=self.resolver, story=self.story)
        self.player = Player()
        self.player.attach(self.bus)

        # Présentation
        self.lighting = LightingController(self.bus)
        self.messages = MessageFeed(self.bus)
        self.document = DocumentView(self.bus)
        self.audio = AudioCues(self.bus, audio_backend) if audio_backend is not None else None

        self.bus.subscribe(SCENE_LOADED, self._on_scene_loaded)
        self.elapsed = 0.0
        self.started = False
        logger.info("GameSession created")

    def _dispose(self, object_id: str) -> None:
        self.disposed.append(object_id)
        if self._dispose_hook is not None:
            self._dispose_hook(object_id)

    def _on_scene_loaded(self, payload: Dict[str, Any]) -> None:
        start = (payload.get("data") or {}).get("player_start")
        if start is not None:
            self.player.place(start)
        self._sync_switch_lighting()

    def _sync_switch_lighting(self) -> None:
        for obj in self.registry.of_kind(InteractableKind.SWITCH):
            if obj.data.controls == "lighting":
                self.lighting.lights_on = obj.data.is_on

    def start(self, area_id: str = START_AREA) -> bool:
        """
        Charge la zone de départ.

        Returns:
            True si la zone a été chargée
        """
        if not self.area_manager.load_area(area_id):
            logger.error(f"Could not start session in area '{area_id}'")
            return False
        self.started = True
        logger.info(f"Session started in {area_id}")
        return True

    def tick(self, dt: float) -> None:
        """Fait avancer la partie de `dt` secondes."""
        self.area_manager.apply_pending_transition()
        self.scheduler.update(dt)
        self.triggers.update(self.player.position)
        self.resolver.update(self.player.position, self.player.look_direction)
        self.lighting.update(dt)
        self.messages.update(dt)
        self.elapsed += dt

    def interact(self) -> InteractionResult:
        """Interaction sur front d'appui de la touche E."""
        return self.resolver.try_interact()

    def reset(self, area_id: str = START_AREA) -> bool:
        """Nouvelle partie depuis zéro."""
        self.area_manager.reset()
        self.scheduler.reset()
        self.story.reset()
        self.store.reset()
        self.inventory.clear()
        self.player.reset()
        self.lighting.restore()
        self.messages.clear()
        self.document.close()
        self.bus.clear_history()
        self.disposed.clear()
        self.elapsed = 0.0
        logger.info("Session reset")
        return self.start(area_id)

    def snapshot(self) -> Dict[str, Any]:
        """Enregistrement de sauvegarde de la partie en cours."""
        return build_save_record(self)

    def restore(self, record: Dict[str, Any]) -> bool:
        """
        Remplace la partie en cours par un enregistrement de sauvegarde.

        Raises:
            SaveFormatError: enregistrement invalide (la session reste intacte)
        """
        validate_record(record, self.catalog)
        # Zone construite avant tout démontage
        if self.area_manager.prepare_area(record["area"]) is None:
            raise SaveFormatError(f"Area {record['area']!r} cannot be loaded")

        self.area_manager.unload()
        self.scheduler.reset()
        self.story.reset()
        self.store.reset()
        state = self.store.set_state(record["state"])
        self.inventory.restore(record.get("inventory", []))
        self.area_manager.restore_memory(area_memory_from_record(record))
        self.messages.clear()

        if not self.area_manager.load_area(record["area"]):
            return False

        story = record.get("story", {})
        self.story.restore_fired(story.get("fired", []))
        self.story.restore_pending(story.get("pending", []))
        if record.get("player"):
            self.player.restore(record["player"])
        self.lighting.restore(power_restored=state.power_restored,
                              chase_active=bool(self.area_manager.sealed_doors))
        self._sync_switch_lighting()
        self.started = True
        logger.info(f"Session restored in {record['area']}")
        return True

    @property
    def is_complete(self) -> bool:
        """Le joueur a atteint la sortie."""
        return self.store.get_state().current_area == "exit"

    def hud(self) -> Dict[str, Any]:
        return hud_snapshot(self.store, self.inventory, self.player, self.resolver)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "elapsed": self.elapsed,
            "state": self.store.get_state().to_dict(),
            "areas": self.area_manager.get_stats(),
            "player": self.player.get_stats(),
            "pending_beats": self.story.pending_beats(),
            "handler_failures": len(self.bus.failures),
        }
