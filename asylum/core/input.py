"""
Gestionnaire d'entrées centralisé pour Hartwell Asylum.
Gère les entrées clavier avec mapping configurable et détection de front.
"""

import logging
from enum import Enum
from typing import Dict, List, Set, Tuple

import pygame

logger = logging.getLogger(__name__)


class InputAction(Enum):
    """Actions d'entrée du jeu."""

    # Mouvement
    MOVE_FORWARD = "move_forward"
    MOVE_BACK = "move_back"
    STRAFE_LEFT = "strafe_left"
    STRAFE_RIGHT = "strafe_right"
    TURN_LEFT = "turn_left"
    TURN_RIGHT = "turn_right"
    LOOK_UP = "look_up"
    LOOK_DOWN = "look_down"

    # Actions
    INTERACT = "interact"
    FLASHLIGHT = "flashlight"
    CLOSE_DOCUMENT = "close_document"

    # Debug (dev mode)
    QUICK_SAVE = "quick_save"
    QUICK_LOAD = "quick_load"
    RESTART = "restart"


class InputManager:
    """
    Gestionnaire d'entrées centralisé.

    `is_action_pressed` n'est vrai que sur la frame de l'appui : une touche
    E maintenue ne déclenche qu'une seule interaction.
    """

    def __init__(self):
        self.key_mapping: Dict[int, InputAction] = {
            # Mouvement
            pygame.K_w: InputAction.MOVE_FORWARD,
            pygame.K_s: InputAction.MOVE_BACK,
            pygame.K_a: InputAction.STRAFE_LEFT,
            pygame.K_d: InputAction.STRAFE_RIGHT,
            pygame.K_LEFT: InputAction.TURN_LEFT,
            pygame.K_RIGHT: InputAction.TURN_RIGHT,
            pygame.K_UP: InputAction.LOOK_UP,
            pygame.K_DOWN: InputAction.LOOK_DOWN,

            # Actions
            pygame.K_e: InputAction.INTERACT,
            pygame.K_f: InputAction.FLASHLIGHT,
            pygame.K_ESCAPE: InputAction.CLOSE_DOCUMENT,

            # Debug
            pygame.K_F5: InputAction.QUICK_SAVE,
            pygame.K_F9: InputAction.QUICK_LOAD,
            pygame.K_F2: InputAction.RESTART,
        }

        # États des actions
        self.actions_pressed: Set[InputAction] = set()  # Enfoncées cette frame
        self.actions_held: Set[InputAction] = set()     # Maintenues
        self.actions_released: Set[InputAction] = set() # Relâchées cette frame

        logger.info("InputManager initialized")

    def handle_event(self, event: pygame.event.Event) -> None:
        """
        Traite un événement pygame.

        Args:
            event: Événement pygame à traiter
        """
        if event.type == pygame.KEYDOWN:
            action = self.key_mapping.get(event.key)
            # La répétition clavier ne crée pas de nouveau front
            if action and action not in self.actions_held:
                self.actions_pressed.add(action)
                self.actions_held.add(action)

        elif event.type == pygame.KEYUP:
            action = self.key_mapping.get(event.key)
            if action:
                self.actions_released.add(action)
                self.actions_held.discard(action)

    def update(self) -> None:
        """Met à jour les états (à appeler en fin de frame)."""
        self.actions_pressed.clear()
        self.actions_released.clear()

    def is_action_pressed(self, action: InputAction) -> bool:
        return action in self.actions_pressed

    def is_action_held(self, action: InputAction) -> bool:
        return action in self.actions_held

    def is_action_released(self, action: InputAction) -> bool:
        return action in self.actions_released

    def get_movement_vector(self) -> Tuple[float, float]:
        """
        Retourne le vecteur de déplacement basé sur les entrées.

        Returns:
            Tuple (avant, latéral) entre -1 et 1
        """
        forward = 0.0
        strafe = 0.0
        if self.is_action_held(InputAction.MOVE_FORWARD):
            forward += 1.0
        if self.is_action_held(InputAction.MOVE_BACK):
            forward -= 1.0
        if self.is_action_held(InputAction.STRAFE_RIGHT):
            strafe += 1.0
        if self.is_action_held(InputAction.STRAFE_LEFT):
            strafe -= 1.0
        return (forward, strafe)

    def get_look_vector(self) -> Tuple[float, float]:
        """Tuple (lacet, tangage) entre -1 et 1."""
        yaw = 0.0
        pitch = 0.0
        if self.is_action_held(InputAction.TURN_RIGHT):
            yaw += 1.0
        if self.is_action_held(InputAction.TURN_LEFT):
            yaw -= 1.0
        if self.is_action_held(InputAction.LOOK_UP):
            pitch += 1.0
        if self.is_action_held(InputAction.LOOK_DOWN):
            pitch -= 1.0
        return (yaw, pitch)

    def remap_key(self, key: int, action: InputAction) -> None:
        """
        Remapper une touche vers une action.

        Args:
            key: Code de la touche pygame
            action: Action à associer
        """
        self.key_mapping[key] = action
        logger.debug(f"Remapped key {key} to {action}")

    def get_mapped_keys(self, action: InputAction) -> List[int]:
        return [key for key, mapped_action in self.key_mapping.items() if mapped_action == action]
