"""
Planificateur de callbacks différés pour Hartwell Asylum.

Avance au rythme de la boucle de jeu (update(dt) chaque frame) : aucun
thread, aucun timer ambiant. Chaque tâche est annulable, une tâche annulée
ne se déclenche jamais.
"""

import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class ScheduledTask:
    """Callback programmé à une échéance (en secondes de jeu)."""
    task_id: int
    due: float
    callback: Callable[[], None] = field(repr=False)
    label: str = ""
    cancelled: bool = False
    fired: bool = False

    @property
    def pending(self) -> bool:
        return not self.cancelled and not self.fired

    def cancel(self) -> bool:
        """Annule la tâche. Retourne False si elle était déjà terminée."""
        if not self.pending:
            return False
        self.cancelled = True
        return True


class Scheduler:
    """
    File de tâches différées pilotée par le temps de jeu.

    Les tâches dues sont exécutées par ordre d'échéance puis de programmation.
    Une tâche programmée depuis un callback attend toujours l'update suivant.
    """

    def __init__(self) -> None:
        self.elapsed = 0.0
        self._tasks: List[ScheduledTask] = []
        self._ids = itertools.count(1)

    def schedule(self, delay: float, callback: Callable[[], None], label: str = "") -> ScheduledTask:
        """
        Programme un callback.

        Args:
            delay: Délai en secondes (>= 0)
            callback: Fonction sans argument
            label: Nom lisible pour les logs

        Returns:
            Handle annulable de la tâche
        """
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        task = ScheduledTask(next(self._ids), self.elapsed + delay, callback, label)
        self._tasks.append(task)
        logger.debug(f"Task scheduled: {label or task.task_id} in {delay:.2f}s")
        return task

    def cancel(self, task: ScheduledTask) -> bool:
        cancelled = task.cancel()
        if cancelled:
            logger.debug(f"Task cancelled: {task.label or task.task_id}")
        self._prune()
        return cancelled

    def cancel_all(self) -> int:
        count = sum(1 for task in self._tasks if task.cancel())
        self._tasks.clear()
        if count:
            logger.info(f"Cancelled {count} pending tasks")
        return count

    def update(self, dt: float) -> int:
        """
        Avance le temps et exécute les tâches arrivées à échéance.

        Returns:
            Nombre de tâches exécutées
        """
        self.elapsed += dt
        due = [task for task in self._tasks if task.pending and task.due <= self.elapsed]
        due.sort(key=lambda task: (task.due, task.task_id))

        fired = 0
        for task in due:
            # Un callback précédent a pu annuler cette tâche
            if not task.pending:
                continue
            task.fired = True
            fired += 1
            try:
                task.callback()
            except Exception as e:
                logger.exception(f"Scheduled task {task.label or task.task_id} failed: {e}")
        self._prune()
        return fired

    def _prune(self) -> None:
        self._tasks = [task for task in self._tasks if task.pending]

    @property
    def pending(self) -> List[ScheduledTask]:
        return [task for task in self._tasks if task.pending]

    def remaining(self, task: ScheduledTask) -> Optional[float]:
        """Temps restant avant l'échéance, None si la tâche n'est plus en attente."""
        if not task.pending:
            return None
        return max(0.0, task.due - self.elapsed)

    def reset(self) -> None:
        self.cancel_all()
        self.elapsed = 0.0
