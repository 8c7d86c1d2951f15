"""
Moteur de progression narrative.

Évalué une fois par événement émis, après la mise à jour du GameState : il
inspecte l'événement et l'état pour synthétiser des "story beats"
(`story_trigger`), éventuellement après un délai de mise en scène. Les beats
différés sont des tâches du Scheduler possédées par le moteur et annulées au
teardown (déchargement de zone, reset).
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Tuple

from asylum.core.event_bus import (
    AREA_ENTERED, ENTITY_ENCOUNTER, GENERATOR_STARTED, KEY_COLLECTED,
    NOTE_READ, POWER_RESTORED, STORY_TRIGGER,
)
from asylum.core.game_state import GameState
from asylum.core.scheduler import ScheduledTask, Scheduler
from asylum.settings import (
    AGGRESSION_THRESHOLD, CHASE_AREA_TAG, ENTITY_INTRO_DELAY,
    POWER_RESTORE_DELAY, STORY_REPEAT_AGGRESSION,
)

logger = logging.getLogger(__name__)


class StoryBeat(Enum):
    """Types de beats narratifs (payload["type"] de story_trigger)."""
    ENTITY_INTRODUCTION = "entity_introduction"
    BACKSTORY_REVEAL = "backstory_reveal"
    POWER_RESTORED = "power_restored"
    ENTITY_AGGRESSIVE = "entity_aggressive"
    CHASE_SEQUENCE = "chase_sequence"


STORY_MESSAGES: Dict[StoryBeat, str] = {
    StoryBeat.ENTITY_INTRODUCTION: "You hear a faint whisper echoing through the halls...",
    StoryBeat.BACKSTORY_REVEAL: "The experiments... they went too far...",
    StoryBeat.POWER_RESTORED: "Emergency lighting activated. Exit route available.",
    StoryBeat.ENTITY_AGGRESSIVE: "It knows you're here. RUN.",
    StoryBeat.CHASE_SEQUENCE: "UNAUTHORIZED ACCESS DETECTED",
}

Condition = Callable[[GameState, Mapping[str, Any]], bool]
Emission = Tuple[str, Dict[str, Any]]


def beat(story_beat: StoryBeat) -> Emission:
    """Construit l'émission story_trigger d'un beat."""
    return (STORY_TRIGGER, {"type": story_beat.value, "message": STORY_MESSAGES[story_beat]})


@dataclass(frozen=True)
class StoryRule:
    """
    Règle narrative : si `event_name` est émis et que `condition` est vraie,
    émet `emissions` dans l'ordre après `delay` secondes.
    """
    name: str
    event_name: str
    condition: Condition
    emissions: Tuple[Emission, ...]
    delay: float = 0.0
    repeatable: bool = False


def default_rules(repeat_aggression: bool = STORY_REPEAT_AGGRESSION) -> List[StoryRule]:
    """Table de règles du jeu."""
    return [
        StoryRule(
            name="entity_introduction",
            event_name=KEY_COLLECTED,
            condition=lambda state, payload: state.keys_collected == 1,
            emissions=(beat(StoryBeat.ENTITY_INTRODUCTION),),
            delay=ENTITY_INTRO_DELAY,
        ),
        StoryRule(
            name="backstory_reveal",
            event_name=NOTE_READ,
            condition=lambda state, payload: state.notes_read == 1,
            emissions=(beat(StoryBeat.BACKSTORY_REVEAL),),
        ),
        StoryRule(
            name="power_restored",
            event_name=GENERATOR_STARTED,
            condition=lambda state, payload: True,
            emissions=((POWER_RESTORED, {}), beat(StoryBeat.POWER_RESTORED)),
            delay=POWER_RESTORE_DELAY,
        ),
        StoryRule(
            name="entity_aggressive",
            event_name=ENTITY_ENCOUNTER,
            condition=lambda state, payload: state.entity_encounters >= AGGRESSION_THRESHOLD,
            emissions=(beat(StoryBeat.ENTITY_AGGRESSIVE),),
            repeatable=repeat_aggression,
        ),
        StoryRule(
            name="chase_sequence",
            event_name=AREA_ENTERED,
            condition=lambda state, payload: payload.get("area") == CHASE_AREA_TAG,
            emissions=(beat(StoryBeat.CHASE_SEQUENCE),),
        ),
    ]


@dataclass
class PendingBeat:
    rule_name: str
    task: Optional[ScheduledTask] = field(default=None, repr=False)


class StoryEngine:
    """
    Évalue les règles narratives sur chaque événement du bus.

    Chaque règle ne se déclenche qu'une fois par partie, sauf si elle est
    marquée `repeatable`.
    """

    def __init__(self, bus, store, scheduler: Scheduler,
                 rules: Optional[List[StoryRule]] = None) -> None:
        self.bus = bus
        self.store = store
        self.scheduler = scheduler
        self.rules: List[StoryRule] = list(rules) if rules is not None else default_rules()
        self.fired_rules: Set[str] = set()
        self._pending: List[PendingBeat] = []
        self._rules_by_name = {rule.name: rule for rule in self.rules}
        if len(self._rules_by_name) != len(self.rules):
            raise ValueError("Duplicate story rule names detected.")
        bus.attach_story(self)
        logger.info(f"StoryEngine initialized with {len(self.rules)} rules")

    def evaluate(self, event_name: str, payload: Mapping[str, Any]) -> List[str]:
        """
        Évalue les règles concernées par l'événement.

        Returns:
            Noms des règles déclenchées (immédiates ou programmées)
        """
        state = self.store.get_state()
        triggered = []
        for rule in self.rules:
            if rule.event_name != event_name:
                continue
            if rule.name in self.fired_rules and not rule.repeatable:
                continue
            if not rule.condition(state, payload):
                continue

            self.fired_rules.add(rule.name)
            triggered.append(rule.name)
            if rule.delay > 0:
                self._schedule(rule, rule.delay)
            else:
                self._fire(rule)
        return triggered

    def _schedule(self, rule: StoryRule, delay: float) -> None:
        pending = PendingBeat(rule.name)

        def run() -> None:
            self._pending = [p for p in self._pending if p is not pending]
            self._fire(rule)

        pending.task = self.scheduler.schedule(delay, run, label=f"story:{rule.name}")
        self._pending.append(pending)
        logger.debug(f"Story rule {rule.name} scheduled in {delay:.1f}s")

    def _fire(self, rule: StoryRule) -> None:
        logger.info(f"Story rule fired: {rule.name}")
        for event_name, payload in rule.emissions:
            self.bus.emit(event_name, dict(payload))

    def pending_beats(self) -> List[Dict[str, Any]]:
        """Beats différés encore en attente, avec leur délai restant."""
        beats = []
        for pending in self._pending:
            remaining = self.scheduler.remaining(pending.task)
            if remaining is not None:
                beats.append({"rule": pending.rule_name, "remaining": remaining})
        return beats

    def restore_pending(self, beats: List[Dict[str, Any]]) -> None:
        for entry in beats:
            rule = self._rules_by_name.get(entry.get("rule"))
            if rule is None:
                logger.warning(f"Unknown pending story rule ignored: {entry}")
                continue
            self._schedule(rule, max(0.0, float(entry.get("remaining", 0.0))))

    def restore_fired(self, rule_names: List[str]) -> None:
        self.fired_rules = {name for name in rule_names if name in self._rules_by_name}

    def teardown(self) -> int:
        """Annule tous les beats différés (déchargement de zone)."""
        cancelled = sum(1 for pending in self._pending if self.scheduler.cancel(pending.task))
        self._pending.clear()
        if cancelled:
            logger.info(f"StoryEngine teardown cancelled {cancelled} pending beats")
        return cancelled

    def reset(self) -> None:
        """Nouvelle partie : annule les beats et oublie les règles déclenchées."""
        self.teardown()
        self.fired_rules.clear()
