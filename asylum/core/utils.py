"""
Utilitaires généraux pour Hartwell Asylum.
Fonctions helper communes utilisées dans tout le projet.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

from pygame.math import Vector3

logger = logging.getLogger(__name__)

PointLike = Union[Vector3, Sequence[float]]


def clamp(value: float, min_value: float, max_value: float) -> float:
    """
    Limite une valeur entre min et max.

    Args:
        value: Valeur à limiter
        min_value: Valeur minimum
        max_value: Valeur maximum

    Returns:
        Valeur limitée
    """
    return max(min_value, min(value, max_value))


def to_vector(point: PointLike) -> Vector3:
    """
    Convertit un point (tuple, liste ou Vector3) en Vector3 indépendant.

    Args:
        point: Point (x, y, z)

    Returns:
        Nouveau Vector3 (jamais l'instance d'origine)
    """
    if len(point) != 3:
        raise ValueError(f"Expected a 3D point, got {point!r}")
    return Vector3(float(point[0]), float(point[1]), float(point[2]))


def vector_to_list(vector: Vector3) -> list:
    """Sérialise un Vector3 en liste [x, y, z]."""
    return [vector.x, vector.y, vector.z]


def safe_get(dictionary: Dict[str, Any], key: str, default: Any = None) -> Any:
    """
    Récupère une valeur de dictionnaire avec fallback sécurisé.

    Args:
        dictionary: Dictionnaire source
        key: Clé à chercher
        default: Valeur par défaut

    Returns:
        Valeur trouvée ou valeur par défaut
    """
    try:
        return dictionary.get(key, default)
    except (AttributeError, TypeError):
        return default


def load_json_safe(file_path: Path) -> Optional[Dict[str, Any]]:
    """
    Charge un fichier JSON avec gestion d'erreurs.

    Args:
        file_path: Chemin vers le fichier JSON

    Returns:
        Dictionnaire parsé ou None en cas d'erreur
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (FileNotFoundError, json.JSONDecodeError, PermissionError) as e:
        logger.error(f"Error loading JSON {file_path}: {e}")
        return None


def write_json_safe(file_path: Path, data: Dict[str, Any]) -> bool:
    """
    Écrit un dictionnaire en JSON avec gestion d'erreurs.

    Returns:
        True si l'écriture a réussi
    """
    try:
        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Error writing JSON {file_path}: {e}")
        return False
