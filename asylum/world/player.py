"""
Joueur : position de l'œil, orientation et lampe torche.
"""

import logging
import math
from typing import Any, Dict

from pygame.math import Vector3

from asylum.core.event_bus import ENTITY_ENCOUNTER
from asylum.core.utils import PointLike, clamp, to_vector, vector_to_list
from asylum.settings import (
    FLASHLIGHT_DRAIN, FLASHLIGHT_MAX_BATTERY, PLAYER_EYE_HEIGHT,
    PLAYER_TURN_SPEED, PLAYER_WALK_SPEED,
)

logger = logging.getLogger(__name__)


class Player:
    """
    Joueur contrôlable en vue subjective.

    `position` est la position de la caméra (œil), comme dans le moteur 3D :
    c'est elle qui sert aux triggers et à la portée d'interaction.
    """

    def __init__(self, x: float = 0.0, y: float = PLAYER_EYE_HEIGHT, z: float = 0.0):
        self.position = Vector3(x, y, z)
        self.yaw = 0.0    # degrés, 0 = +Z
        self.pitch = 0.0  # degrés, positif vers le haut
        self.speed = PLAYER_WALK_SPEED

        self.flashlight_on = True
        self.battery_level = FLASHLIGHT_MAX_BATTERY

        self.distance_walked = 0.0
        logger.info(f"Player created at ({x}, {y}, {z})")

    @property
    def look_direction(self) -> Vector3:
        """Direction de visée normalisée."""
        yaw = math.radians(self.yaw)
        pitch = math.radians(self.pitch)
        return Vector3(
            math.sin(yaw) * math.cos(pitch),
            math.sin(pitch),
            math.cos(yaw) * math.cos(pitch),
        )

    def place(self, position: PointLike, yaw: float = 0.0, pitch: float = 0.0) -> None:
        """
        Téléporte le joueur (début de zone, chargement de sauvegarde).

        Args:
            position: Position de l'œil
            yaw: Orientation horizontale en degrés
            pitch: Orientation verticale en degrés
        """
        self.position = to_vector(position)
        self.yaw = yaw % 360.0
        self.pitch = clamp(pitch, -89.0, 89.0)

    def look_at(self, target: PointLike) -> None:
        """Oriente la caméra vers un point du monde."""
        offset = to_vector(target) - self.position
        if offset.length_squared() == 0:
            return
        self.yaw = math.degrees(math.atan2(offset.x, offset.z)) % 360.0
        self.pitch = clamp(math.degrees(math.atan2(offset.y, math.hypot(offset.x, offset.z))), -89.0, 89.0)

    def move(self, forward: float, strafe: float, dt: float) -> None:
        """
        Déplace le joueur dans le plan horizontal.

        Args:
            forward: -1 à 1 (arrière / avant)
            strafe: -1 à 1 (gauche / droite)
            dt: Temps écoulé
        """
        if abs(forward) < 0.1 and abs(strafe) < 0.1:
            return
        yaw = math.radians(self.yaw)
        ahead = Vector3(math.sin(yaw), 0.0, math.cos(yaw))
        right = Vector3(math.cos(yaw), 0.0, -math.sin(yaw))
        step = ahead * forward + right * strafe
        if step.length_squared() > 1.0:
            step = step.normalize()
        step *= self.speed * dt
        self.position += step
        self.distance_walked += step.length()

    def turn(self, yaw_input: float, pitch_input: float, dt: float) -> None:
        self.yaw = (self.yaw + yaw_input * PLAYER_TURN_SPEED * dt) % 360.0
        self.pitch = clamp(self.pitch + pitch_input * PLAYER_TURN_SPEED * dt, -89.0, 89.0)

    def toggle_flashlight(self) -> bool:
        if self.battery_level <= 0:
            self.flashlight_on = False
        else:
            self.flashlight_on = not self.flashlight_on
        return self.flashlight_on

    def drain_battery(self, amount: float) -> None:
        self.battery_level = max(0.0, self.battery_level - amount)
        if self.battery_level == 0.0 and self.flashlight_on:
            self.flashlight_on = False
            logger.info("Flashlight battery depleted")

    def attach(self, bus) -> None:
        """Abonne le joueur aux événements qui le concernent."""
        bus.subscribe(ENTITY_ENCOUNTER, self._on_entity_encounter)

    def _on_entity_encounter(self, payload: Dict[str, Any]) -> None:
        # La présence de l'entité vide la batterie plus vite
        if self.flashlight_on:
            self.drain_battery(FLASHLIGHT_DRAIN)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position": vector_to_list(self.position),
            "yaw": self.yaw,
            "pitch": self.pitch,
            "flashlight_on": self.flashlight_on,
            "battery_level": self.battery_level,
        }

    def restore(self, data: Dict[str, Any]) -> None:
        self.place(data.get("position", vector_to_list(self.position)),
                   float(data.get("yaw", 0.0)), float(data.get("pitch", 0.0)))
        self.flashlight_on = bool(data.get("flashlight_on", True))
        self.battery_level = float(data.get("battery_level", FLASHLIGHT_MAX_BATTERY))

    def reset(self) -> None:
        self.place((0.0, PLAYER_EYE_HEIGHT, 0.0))
        self.flashlight_on = True
        self.battery_level = FLASHLIGHT_MAX_BATTERY
        self.distance_walked = 0.0

    def get_stats(self) -> Dict[str, Any]:
        return {
            "position": tuple(self.position),
            "distance_walked": self.distance_walked,
            "battery_level": self.battery_level,
            "flashlight_on": self.flashlight_on,
        }
