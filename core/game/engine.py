"""Hi-Lo grid game engine with state machine."""

import logging
from dataclasses import dataclass
from random import Random
from typing import Callable
from uuid import uuid4

from transitions import Machine, MachineError

from core.cards import Card, Deck
from core.counting import UsedCardCounts
from core.exceptions import InvalidTransition
from core.game.events import EventEmitter, EventType, GameEvent
from core.game.state import GameOutcome, GamePhase
from core.grid import Grid, GridSlot, SlotView
from core.statistics import GroupProbabilities, group_probabilities

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PredictionResult:
    """Outcome of one resolved prediction."""

    row: int
    col: int
    previous_card: Card
    drawn_card: Card
    is_higher: bool
    correct: bool


def is_correct_prediction(current: Card, drawn: Card, is_higher: bool) -> bool:
    """
    Compare a drawn card against the selected one.

    Equal values lose in both directions.
    """
    if is_higher:
        return drawn.value > current.value
    return drawn.value < current.value


class HiLoGame:
    """
    Hi-Lo grid game engine using a state machine.

    This is the core game logic, completely UI-agnostic.
    Communication happens through events and return values only: every
    command returns True when accepted, and a rejected command changes
    nothing.
    """

    # State machine states
    STATES = [p.name.lower() for p in GamePhase]

    # State machine transitions
    TRANSITIONS = [
        {"trigger": "pick_slot", "source": "selecting", "dest": "predicting"},
        {"trigger": "switch_slot", "source": "predicting", "dest": "predicting"},
        {"trigger": "drop_slot", "source": "predicting", "dest": "selecting"},
        {"trigger": "resolve", "source": "predicting", "dest": "selecting"},
        {"trigger": "finish", "source": "selecting", "dest": "finished"},
        # Pause transitions
        {"trigger": "suspend", "source": ["selecting", "predicting"], "dest": "paused"},
        {"trigger": "resume_selecting", "source": "paused", "dest": "selecting"},
        {"trigger": "resume_predicting", "source": "paused", "dest": "predicting"},
        {"trigger": "reset", "source": "*", "dest": "selecting"},
    ]

    def __init__(
        self,
        rng: Random | None = None,
        deck: Deck | None = None,
    ) -> None:
        """
        Initialize a new game and deal the grid.

        Args:
            rng: Random number generator for reproducible games
            deck: Deck to deal the first game from (a fresh shuffled deck if omitted)
        """
        self._rng = rng or Random()
        self.events = EventEmitter()
        self.used_cards = UsedCardCounts()

        # Initialize state machine
        self.machine = Machine(
            model=self,
            states=self.STATES,
            transitions=self.TRANSITIONS,
            initial="selecting",
            auto_transitions=False,
            model_attribute="_machine_state",
        )

        self._deal(deck or Deck(rng=self._rng))

    @property
    def phase(self) -> GamePhase:
        """Get current game phase as enum."""
        return GamePhase[self._machine_state.upper()]  # type: ignore

    def subscribe(
        self,
        handler: Callable[[GameEvent], None],
        event_type: EventType | None = None,
    ) -> None:
        """Subscribe to game events."""
        self.events.subscribe(handler, event_type)

    def unsubscribe(
        self,
        handler: Callable[[GameEvent], None],
        event_type: EventType | None = None,
    ) -> None:
        """Unsubscribe from game events."""
        self.events.unsubscribe(handler, event_type)

    def _fire(self, trigger: str) -> None:
        """Run a state machine trigger, surfacing forbidden ones as InvalidTransition."""
        try:
            getattr(self, trigger)()
        except MachineError as e:
            raise InvalidTransition(trigger, self.phase.name) from e

    def _reject(self, action: str, message: str) -> bool:
        """Report a rejected command without touching any state."""
        logger.debug("Rejected %s: %s", action, message)
        self.events.emit_new(
            EventType.INVALID_ACTION,
            action=action,
            message=message,
            phase=self.phase.name,
        )
        return False

    def _deal(self, deck: Deck) -> None:
        """Deal a fresh grid from the deck."""
        self.deck = deck
        self.used_cards.reset()
        self.grid = Grid.deal(deck)
        self.used_cards.record_all(self.grid.cards)

        self.game_id = uuid4().hex
        self._selected: GridSlot | None = None
        self._pre_pause_phase: GamePhase | None = None
        self._outcome: GameOutcome | None = None
        self._score: int | None = None
        self.last_result: PredictionResult | None = None
        self._refresh_probabilities()
        outcome = self._check_game_end()

        logger.info(
            "Game %s dealt, %d cards left in deck", self.game_id, deck.remaining_count()
        )
        self.events.emit_new(
            EventType.GAME_STARTED,
            game_id=self.game_id,
            deck_remaining=deck.remaining_count(),
        )
        for slot in self.grid:
            self.events.emit_new(
                EventType.CARD_DEALT,
                row=slot.row,
                col=slot.col,
                card=str(slot.card),
            )
        self._emit_probabilities()
        if outcome is not None:
            self._emit_game_end(outcome)

    def _refresh_probabilities(self) -> None:
        """Recompute band probabilities from the current tally."""
        self._probabilities = group_probabilities(
            self.used_cards, self.deck.remaining_count()
        )

    def _emit_probabilities(self) -> None:
        self.events.emit_new(
            EventType.PROBABILITIES_UPDATED,
            **{str(band): value for band, value in self._probabilities.to_dict().items()},
        )

    def _check_game_end(self) -> GameOutcome | None:
        """Finish the game if the deck is exhausted or no slot is active."""
        if self.deck.remaining_count() == 0:
            outcome = GameOutcome.VICTORY
        elif not self.grid.has_active:
            outcome = GameOutcome.DEFEAT
        else:
            return None

        self._fire("finish")
        self._outcome = outcome
        self._score = self.deck.remaining_count()
        logger.info("Game %s finished: %s, score %d", self.game_id, outcome, self._score)
        return outcome

    def _emit_game_end(self, outcome: GameOutcome) -> None:
        event_type = EventType.GAME_WON if outcome == GameOutcome.VICTORY else EventType.GAME_LOST
        self.events.emit_new(event_type, game_id=self.game_id, score=self._score)

    def select_slot(self, row: int, col: int) -> bool:
        """
        Select, switch to, or deselect the slot at (row, col).

        Selecting the already-selected slot deselects it.

        Args:
            row: Grid row (0-2)
            col: Grid column (0-2)

        Returns:
            True if the selection changed
        """
        if not self.phase.is_running:
            return self._reject("select", f"Cannot select while {self.phase}")

        slot = self.grid.get(row, col)
        if slot is None:
            return self._reject("select", f"No slot at ({row}, {col})")
        if not slot.active:
            return self._reject("select", f"Slot ({row}, {col}) is inactive")

        if slot is self._selected:
            return self.deselect()

        previous = self._selected
        self._fire("switch_slot" if self.phase == GamePhase.PREDICTING else "pick_slot")
        self._selected = slot

        self.events.emit_new(
            EventType.SLOT_SELECTED,
            row=row,
            col=col,
            card=str(slot.card),
            previous=previous.position if previous else None,
        )
        return True

    def deselect(self) -> bool:
        """Clear the current selection."""
        if self.phase != GamePhase.PREDICTING or self._selected is None:
            return self._reject("deselect", "No slot selected")

        slot = self._selected
        self._fire("drop_slot")
        self._selected = None

        self.events.emit_new(EventType.SLOT_DESELECTED, row=slot.row, col=slot.col)
        return True

    def predict(self, is_higher: bool) -> bool:
        """
        Predict whether the next card beats the selected one.

        Draws the next card, replaces the selected slot's card with it and
        deactivates the slot on a miss. All state is updated before any
        event goes out.

        Args:
            is_higher: True to call "higher", False to call "lower"

        Returns:
            True if the prediction was resolved
        """
        if self.phase != GamePhase.PREDICTING or self._selected is None:
            return self._reject("predict", f"Cannot predict while {self.phase}")
        if self.deck.remaining_count() == 0:
            return self._reject("predict", "Deck is empty")

        slot = self._selected
        drawn = self.deck.draw()
        self.used_cards.record(drawn)
        previous = slot.replace_card(drawn)
        correct = is_correct_prediction(previous, drawn, is_higher)
        if not correct:
            slot.deactivate()

        self._fire("resolve")
        self._selected = None
        self.last_result = PredictionResult(
            row=slot.row,
            col=slot.col,
            previous_card=previous,
            drawn_card=drawn,
            is_higher=is_higher,
            correct=correct,
        )
        self._refresh_probabilities()
        outcome = self._check_game_end()

        logger.debug(
            "Slot (%d, %d): %s -> %s called %s, %s",
            slot.row,
            slot.col,
            previous,
            drawn,
            "higher" if is_higher else "lower",
            "correct" if correct else "incorrect",
        )
        self.events.emit_new(
            EventType.PREDICTION_CORRECT if correct else EventType.PREDICTION_INCORRECT,
            row=slot.row,
            col=slot.col,
            previous_card=str(previous),
            drawn_card=str(drawn),
            is_higher=is_higher,
            deck_remaining=self.deck.remaining_count(),
        )
        if not correct:
            self.events.emit_new(
                EventType.SLOT_DEACTIVATED,
                row=slot.row,
                col=slot.col,
                active_count=self.grid.active_count,
            )
        self._emit_probabilities()
        if outcome is not None:
            self._emit_game_end(outcome)
        return True

    def pause(self) -> bool:
        """Suspend gameplay, remembering the current phase."""
        if not self.phase.is_running:
            return self._reject("pause", f"Cannot pause while {self.phase}")

        prior = self.phase
        self._fire("suspend")
        self._pre_pause_phase = prior

        self.events.emit_new(EventType.GAME_PAUSED, resume_to=prior.name)
        return True

    def resume(self) -> bool:
        """Return to the phase recorded when the game was paused."""
        if self.phase != GamePhase.PAUSED or self._pre_pause_phase is None:
            return self._reject("resume", "Game is not paused")

        target = self._pre_pause_phase
        self._fire(
            "resume_predicting" if target == GamePhase.PREDICTING else "resume_selecting"
        )
        self._pre_pause_phase = None

        self.events.emit_new(EventType.GAME_RESUMED, phase=target.name)
        return True

    def toggle_pause(self) -> bool:
        """Pause a running game or resume a paused one."""
        if self.phase == GamePhase.PAUSED:
            return self.resume()
        return self.pause()

    def restart(self) -> bool:
        """Start over with a freshly shuffled deck and a new deal."""
        self._fire("reset")
        self._deal(Deck(rng=self._rng))
        return True

    @property
    def outcome(self) -> GameOutcome | None:
        """Return how the game ended, or None while it is still going."""
        return self._outcome

    @property
    def score(self) -> int | None:
        """Return the cards left in the deck when the game ended."""
        return self._score

    @property
    def is_finished(self) -> bool:
        return self.phase == GamePhase.FINISHED

    def remaining_count(self) -> int:
        """Return the number of cards left in the deck."""
        return self.deck.remaining_count()

    @property
    def selected_slot(self) -> GridSlot | None:
        return self._selected

    @property
    def pre_pause_phase(self) -> GamePhase | None:
        return self._pre_pause_phase

    @property
    def active_count(self) -> int:
        return self.grid.active_count

    @property
    def used_counts(self) -> dict[str, int]:
        """Return how many cards of each rank have left the deck."""
        return self.used_cards.as_dict()

    @property
    def probabilities(self) -> GroupProbabilities:
        """Return the band probabilities for the next card."""
        return self._probabilities

    def slot_views(self) -> list[SlotView]:
        """Return a read-only view of all nine slots, row-major."""
        return [
            SlotView(
                row=slot.row,
                col=slot.col,
                card=slot.card,
                active=slot.active,
                is_selected=slot is self._selected,
            )
            for slot in self.grid
        ]

    @property
    def can_select(self) -> bool:
        """Check if a slot can be selected."""
        return self.phase.is_running and self.grid.has_active

    @property
    def can_predict(self) -> bool:
        """Check if a prediction can be made."""
        return (
            self.phase == GamePhase.PREDICTING
            and self._selected is not None
            and self.deck.remaining_count() > 0
        )

    @property
    def can_pause(self) -> bool:
        return self.phase.is_running

    @property
    def can_resume(self) -> bool:
        return self.phase == GamePhase.PAUSED
