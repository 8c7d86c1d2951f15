"""
Viewer de debug Hartwell Asylum.

Vue de dessus (plan X/Z) de la zone courante : joueur, objets, triggers,
messages et HUD. Gère l'initialisation pygame et la boucle principale ; toute
la logique de jeu vit dans GameSession.
"""

import logging
from typing import Optional, Tuple

import pygame

from asylum.core.input import InputAction, InputManager
from asylum.core.save import load_game, save_game
from asylum.game import GameSession
from asylum.presentation.audio import AudioManager
from asylum.settings import (
    BLACK, DARK_GRAY, DEV_MODE, FPS, GAME_TITLE, GRAY, GREEN, HEIGHT, RED,
    SAVE_PATH, UI_PANEL, WHITE, WIDTH, WINDOW_SIZE, YELLOW,
)
from asylum.world.interactables import InteractableKind

logger = logging.getLogger(__name__)

# Pixels par unité de monde
SCALE = 20

KIND_COLORS = {
    InteractableKind.DOOR: (150, 90, 40),
    InteractableKind.NOTE: WHITE,
    InteractableKind.KEY: YELLOW,
    InteractableKind.SWITCH: (80, 160, 255),
    InteractableKind.GENERATOR: (200, 60, 200),
}

LIGHTING_BACKGROUNDS = {
    "basic": (30, 30, 30),
    "dim": (18, 18, 22),
    "flickering": (22, 22, 18),
    "emergency": (40, 10, 10),
    "chase": (60, 0, 0),
}


class Game:
    """
    Application pygame autour d'une GameSession.
    """

    def __init__(self):
        self.running = False
        self.clock = pygame.time.Clock()
        self.screen: Optional[pygame.Surface] = None
        self.font: Optional[pygame.font.Font] = None
        self.font_small: Optional[pygame.font.Font] = None

        self.input_manager = InputManager()
        self.session: Optional[GameSession] = None

        logger.info("Game instance created")

    def initialize(self) -> bool:
        """
        Initialise pygame et la session.

        Returns:
            True si l'initialisation a réussi
        """
        try:
            pygame.init()
            self.screen = pygame.display.set_mode(WINDOW_SIZE)
            pygame.display.set_caption(GAME_TITLE)
            self.font = pygame.font.Font(None, 28)
            self.font_small = pygame.font.Font(None, 20)
        except pygame.error as e:
            logger.error(f"Failed to initialize pygame: {e}")
            return False

        self.session = GameSession(audio_backend=AudioManager())
        if not self.session.start():
            return False

        logger.info("Game initialized successfully")
        return True

    def run(self) -> None:
        """Lance la boucle principale du jeu."""
        if not self.initialize():
            logger.error("Failed to initialize, exiting")
            return

        self.running = True
        logger.info("Starting main game loop")

        try:
            while self.running:
                dt = self.clock.tick(FPS) / 1000.0  # Delta time en secondes

                self._handle_events()
                self._update(dt)
                self._draw()

                pygame.display.flip()
        finally:
            self._cleanup()

    def _handle_events(self) -> None:
        """Gère tous les événements pygame."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.quit()
                return
            self.input_manager.handle_event(event)

    def _update(self, dt: float) -> None:
        """Met à jour la session à partir des entrées de la frame."""
        session = self.session
        inputs = self.input_manager

        if session.document.is_open:
            # La lecture d'un document fige le joueur
            if inputs.is_action_pressed(InputAction.CLOSE_DOCUMENT) or inputs.is_action_pressed(InputAction.INTERACT):
                session.document.close()
        else:
            forward, strafe = inputs.get_movement_vector()
            session.player.move(forward, strafe, dt)
            yaw, pitch = inputs.get_look_vector()
            session.player.turn(yaw, pitch, dt)

            if inputs.is_action_pressed(InputAction.INTERACT):
                session.interact()
            if inputs.is_action_pressed(InputAction.FLASHLIGHT):
                session.player.toggle_flashlight()
            if inputs.is_action_pressed(InputAction.CLOSE_DOCUMENT):
                self.quit()

        if DEV_MODE:
            if inputs.is_action_pressed(InputAction.QUICK_SAVE):
                save_game(session, SAVE_PATH)
            elif inputs.is_action_pressed(InputAction.QUICK_LOAD):
                load_game(session, SAVE_PATH)
            elif inputs.is_action_pressed(InputAction.RESTART):
                session.reset()

        session.tick(dt)
        inputs.update()

    def _to_screen(self, x: float, z: float) -> Tuple[int, int]:
        """Projette le plan X/Z (Z vers le haut de l'écran) autour du joueur."""
        origin = self.session.player.position
        return (int(WIDTH / 2 + (x - origin.x) * SCALE),
                int(HEIGHT / 2 - (z - origin.z) * SCALE))

    def _draw(self) -> None:
        """Dessine tout à l'écran."""
        if not self.screen:
            return
        session = self.session
        lighting = session.lighting

        background = LIGHTING_BACKGROUNDS.get(lighting.mode, (30, 30, 30))
        if not lighting.lights_on:
            background = BLACK
        if lighting.flickering and pygame.time.get_ticks() // 80 % 2:
            background = DARK_GRAY
        self.screen.fill(background)

        self._draw_triggers()
        self._draw_objects()
        self._draw_player()
        self._draw_hud()
        self._draw_messages()
        if session.document.is_open:
            self._draw_document()

    def _draw_triggers(self) -> None:
        for trigger in self.session.triggers.triggers.values():
            color = RED if trigger.armed else GRAY
            center = self._to_screen(trigger.center.x, trigger.center.z)
            pygame.draw.circle(self.screen, color, center, max(2, int(trigger.radius * SCALE)), 1)

    def _draw_objects(self) -> None:
        current = self.session.resolver.current_interactable
        for obj in self.session.registry.active():
            center = self._to_screen(obj.position.x, obj.position.z)
            radius = max(4, int(obj.pick_radius * SCALE))
            pygame.draw.circle(self.screen, KIND_COLORS[obj.kind], center, radius)
            if current is not None and obj.object_id == current.object_id:
                pygame.draw.circle(self.screen, GREEN, center, radius + 4, 2)

    def _draw_player(self) -> None:
        player = self.session.player
        center = self._to_screen(player.position.x, player.position.z)
        look = player.look_direction
        tip = self._to_screen(player.position.x + look.x * 1.5, player.position.z + look.z * 1.5)
        pygame.draw.circle(self.screen, WHITE, center, 8)
        pygame.draw.line(self.screen, YELLOW if player.flashlight_on else GRAY, center, tip, 3)

    def _draw_hud(self) -> None:
        hud = self.session.hud()
        lines = [
            f"Area: {self.session.area_manager.current_area_id} ({hud['area']})",
            f"Keys: {hud['keys_collected']}  Notes: {hud['notes_read']}  Items: {', '.join(hud['items']) or '-'}",
            f"Battery: {hud['battery']}%  Power: {'on' if hud['power_restored'] else 'off'}",
        ]
        panel = pygame.Surface((420, 24 * len(lines) + 12), pygame.SRCALPHA)
        panel.fill(UI_PANEL)
        self.screen.blit(panel, (10, 10))
        for index, line in enumerate(lines):
            self.screen.blit(self.font_small.render(line, True, WHITE), (20, 18 + index * 24))

        if hud["prompt"]:
            text = self.font.render(hud["prompt"], True, WHITE)
            self.screen.blit(text, text.get_rect(center=(WIDTH // 2, HEIGHT - 50)))

    def _draw_messages(self) -> None:
        for index, message in enumerate(self.session.messages.texts):
            text = self.font.render(message, True, WHITE)
            self.screen.blit(text, text.get_rect(center=(WIDTH // 2, 80 + index * 32)))

    def _draw_document(self) -> None:
        document = self.session.document
        rect = pygame.Rect(WIDTH // 4, HEIGHT // 6, WIDTH // 2, HEIGHT * 2 // 3)
        pygame.draw.rect(self.screen, (230, 220, 190), rect)
        pygame.draw.rect(self.screen, BLACK, rect, 2)
        self.screen.blit(self.font.render(document.title, True, BLACK), (rect.x + 20, rect.y + 20))

        # Retour à la ligne simple sur la largeur du panneau
        y = rect.y + 60
        line = ""
        for word in (document.content or "").split():
            candidate = f"{line} {word}".strip()
            if self.font_small.size(candidate)[0] > rect.width - 40:
                self.screen.blit(self.font_small.render(line, True, BLACK), (rect.x + 20, y))
                y += 22
                line = word
            else:
                line = candidate
        if line:
            self.screen.blit(self.font_small.render(line, True, BLACK), (rect.x + 20, y))
        footer = self.font_small.render("Press ESC or E to close", True, DARK_GRAY)
        self.screen.blit(footer, (rect.x + 20, rect.bottom - 30))

    def _cleanup(self) -> None:
        """Nettoie les ressources avant la fermeture."""
        logger.info("Cleaning up...")
        if self.session is not None and self.session.audio is not None:
            self.session.audio.backend.stop_all()
        pygame.quit()
        logger.info("Cleanup complete")

    def quit(self) -> None:
        """Déclenche la fermeture du jeu."""
        self.running = False
        logger.info("Game quit requested")
