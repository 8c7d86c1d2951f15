"""
Point d'entrée principal pour Hartwell Asylum.
"""

import logging

from asylum.settings import GAME_TITLE, LOG_LEVEL

# Configuration du logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main():
    """Point d'entrée principal du jeu."""
    logger.info(f"Starting {GAME_TITLE}")

    from asylum.app import Game

    game = Game()
    game.run()


if __name__ == "__main__":
    main()
