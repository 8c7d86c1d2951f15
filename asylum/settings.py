from pathlib import Path
import os
from typing import Tuple

# === FENÊTRE DE DEBUG ===
WIDTH = 1200
HEIGHT = 600
FPS = 60

BLACK = (0, 0, 0)
WHITE = (255, 255, 255)

GAME_TITLE = "Hartwell Asylum"

# === DONNÉES ===
PACKAGE_PATH = Path(__file__).parent
DATA_PATH = PACKAGE_PATH / "data"
AREAS_FILE = DATA_PATH / "areas.json"
ASSETS_PATH = Path(os.getenv("ASSETS_PATH", "assets"))
SAVE_PATH = Path(os.getenv("SAVE_PATH", "savegame.json"))
SAVE_VERSION = 1

# Zone de départ et tag d'aire initial du GameState
START_AREA = os.getenv("START_AREA", "asylum_entrance")
INITIAL_AREA_TAG = "entrance"

# === INTERACTION ===
INTERACTION_RANGE = float(os.getenv("INTERACTION_RANGE", "3.0"))
# Rayon de "pick" par type d'objet (approximation des meshes du moteur 3D)
PICK_RADIUS = {
    "door": 1.25,
    "note": 0.35,
    "key": 0.3,
    "switch": 0.35,
    "generator": 0.9,
}

# === RYTHME NARRATIF (secondes) ===
ENTITY_INTRO_DELAY = 2.0
POWER_RESTORE_DELAY = 3.0
AGGRESSION_THRESHOLD = 3
STORY_REPEAT_AGGRESSION = os.getenv("STORY_REPEAT_AGGRESSION", "False").lower() == "true"
CHASE_AREA_TAG = "restricted"

# Nombre d'événements gardés dans l'historique du bus
EVENT_HISTORY_LIMIT = int(os.getenv("EVENT_HISTORY_LIMIT", "500"))

# === JOUEUR ===
PLAYER_EYE_HEIGHT = 1.8
PLAYER_WALK_SPEED = 3.0        # unités/seconde
PLAYER_TURN_SPEED = 90.0       # degrés/seconde
FLASHLIGHT_MAX_BATTERY = 100.0
FLASHLIGHT_DRAIN = 10.0        # par rencontre avec l'entité

# === PRÉSENTATION ===
MESSAGE_DURATION = 3.0
FLICKER_DURATION = 0.6

# Configuration de développement
DEV_MODE = os.getenv("DEV_MODE", "True").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Couleurs du viewer
GRAY = (128, 128, 128)
DARK_GRAY = (64, 64, 64)
RED = (255, 0, 0)
GREEN = (0, 255, 0)
YELLOW = (255, 255, 0)
UI_PANEL = (0, 0, 0, 160)

WINDOW_SIZE: Tuple[int, int] = (WIDTH, HEIGHT)
