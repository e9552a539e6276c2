"""Tests for the Hi-Lo grid game engine."""

import pytest
from random import Random

from hypothesis import given, settings, strategies as st

from conftest import DEFAULT_GRID, call_next, card, command_strategy, play_correctly
from core.exceptions import InvalidTransition
from core.game import (
    EventType,
    GameOutcome,
    GamePhase,
    HiLoGame,
    is_correct_prediction,
)


def _events(game: HiLoGame) -> list[EventType]:
    return [e.event_type for e in game.events.history]


class TestInitialDeal:
    """Tests for a freshly dealt game."""

    def test_deal(self, game):
        """Test nine cards dealt, all active, deck at 43."""
        assert game.phase == GamePhase.SELECTING
        assert game.remaining_count() == 43
        assert game.active_count == 9
        assert all(view.active for view in game.slot_views())
        assert sum(game.used_counts.values()) == 9
        assert game.selected_slot is None
        assert game.outcome is None
        assert game.score is None

    def test_used_counts_match_grid(self, make_game):
        """Test the tally holds exactly the dealt ranks."""
        game = make_game("2H", "2D", "KS", "KH", "KD", "5C", "6C", "7C", "AS")
        counts = game.used_counts
        assert counts["2"] == 2
        assert counts["K"] == 3
        assert counts["A"] == 1
        assert counts["10"] == 0

    def test_slot_views_row_major(self, make_game):
        """Test views come back in grid order with their cards."""
        game = make_game(*DEFAULT_GRID)
        views = game.slot_views()
        assert [(v.row, v.col) for v in views] == [(r, c) for r in range(3) for c in range(3)]
        assert [v.card for v in views] == [card(s) for s in DEFAULT_GRID]
        assert not any(v.is_selected for v in views)

    def test_deal_events(self, game):
        """Test the deal announces the game, each card and the odds."""
        events = _events(game)
        assert events[0] == EventType.GAME_STARTED
        assert events.count(EventType.CARD_DEALT) == 9
        assert events[-1] == EventType.PROBABILITIES_UPDATED

    def test_probability_snapshot_after_deal(self, make_game):
        """Test LOW odds account for the LOW cards on the grid."""
        game = make_game("2H", "3H", "4H", "6H", "7H", "8H", "10H", "JH", "QH")
        probs = game.probabilities
        assert probs.low == pytest.approx((16 - 3) / 43 * 100)
        assert probs.mid == pytest.approx((16 - 3) / 43 * 100)
        assert probs.high == pytest.approx((20 - 3) / 43 * 100)


class TestSelection:
    """Tests for selecting and deselecting slots."""

    def test_select(self, game):
        """Test selecting an active slot starts a prediction."""
        assert game.select_slot(1, 1)
        assert game.phase == GamePhase.PREDICTING
        assert game.selected_slot.position == (1, 1)
        assert [v.is_selected for v in game.slot_views()].count(True) == 1

    def test_select_same_slot_deselects(self, game):
        """Test clicking the selected slot again clears it."""
        game.select_slot(0, 2)
        assert game.select_slot(0, 2)
        assert game.phase == GamePhase.SELECTING
        assert game.selected_slot is None
        assert EventType.SLOT_DESELECTED in _events(game)

    def test_switch_selection(self, game):
        """Test selecting another slot moves the selection."""
        game.select_slot(0, 0)
        assert game.select_slot(2, 1)
        assert game.phase == GamePhase.PREDICTING
        assert game.selected_slot.position == (2, 1)
        last = game.events.last(EventType.SLOT_SELECTED)
        assert last is game.events.history[-1]
        assert last.data["previous"] == (0, 0)

    def test_deselect(self, game):
        """Test explicit deselect."""
        game.select_slot(0, 0)
        assert game.deselect()
        assert game.phase == GamePhase.SELECTING

    def test_deselect_without_selection_rejected(self, game):
        """Test deselect with nothing selected is a no-op."""
        assert not game.deselect()
        assert game.phase == GamePhase.SELECTING

    def test_select_out_of_range_rejected(self, game):
        """Test positions outside the grid are ignored."""
        assert not game.select_slot(3, 0)
        assert not game.select_slot(0, -1)
        assert game.phase == GamePhase.SELECTING
        assert _events(game)[-1] == EventType.INVALID_ACTION

    def test_select_inactive_rejected(self, make_game):
        """Test an inactive slot cannot be selected."""
        game = make_game(*DEFAULT_GRID, "2S")
        game.select_slot(0, 0)  # 2H
        game.predict(is_higher=False)  # 2S ties, slot goes dark
        assert not game.select_slot(0, 0)
        assert game.phase == GamePhase.SELECTING
        assert game.selected_slot is None

    def test_switch_to_inactive_keeps_selection(self, make_game):
        """Test switching to an inactive slot leaves the selection alone."""
        game = make_game(*DEFAULT_GRID, "2S")
        game.select_slot(0, 0)
        game.predict(is_higher=False)
        game.select_slot(1, 1)
        assert not game.select_slot(0, 0)
        assert game.phase == GamePhase.PREDICTING
        assert game.selected_slot.position == (1, 1)


class TestPrediction:
    """Tests for resolving predictions."""

    def test_higher_correct(self, make_game):
        """Test a 10 called higher against an Ace stays active."""
        game = make_game(*DEFAULT_GRID, "AS")
        aces_before = game.used_counts["A"]
        game.select_slot(2, 2)  # 10H
        assert game.predict(is_higher=True)

        slot = game.slot_views()[8]
        assert slot.card == card("AS")
        assert slot.active
        assert game.used_counts["A"] == aces_before + 1
        assert game.last_result.correct
        assert game.last_result.previous_card == card("10H")
        assert game.phase == GamePhase.SELECTING
        assert game.selected_slot is None

    def test_tie_is_incorrect(self, make_game):
        """Test a 2 called lower against another 2 loses."""
        game = make_game(*DEFAULT_GRID, "2S")
        game.select_slot(0, 0)  # 2H
        assert game.predict(is_higher=False)

        slot = game.slot_views()[0]
        assert slot.card == card("2S")
        assert not slot.active
        assert not game.last_result.correct
        assert game.active_count == 8

    def test_tie_called_higher_is_incorrect(self, make_game):
        """Test ties lose in the other direction too."""
        game = make_game(*DEFAULT_GRID, "7S")
        game.select_slot(1, 2)  # 7H
        game.predict(is_higher=True)
        assert not game.last_result.correct

    def test_lower_correct(self, make_game):
        """Test a lower call against a smaller card wins."""
        game = make_game(*DEFAULT_GRID, "3S")
        game.select_slot(2, 0)  # 8H
        game.predict(is_higher=False)
        assert game.last_result.correct
        assert game.slot_views()[6].active

    def test_wrong_direction_is_incorrect(self, make_game):
        """Test a higher call against a smaller card loses."""
        game = make_game(*DEFAULT_GRID, "3S")
        game.select_slot(2, 0)  # 8H
        game.predict(is_higher=True)
        assert not game.last_result.correct
        assert not game.slot_views()[6].active

    def test_predict_without_selection_rejected(self, game):
        """Test predicting with nothing selected changes nothing."""
        remaining = game.remaining_count()
        assert not game.predict(is_higher=True)
        assert game.remaining_count() == remaining
        assert game.last_result is None

    def test_predict_while_paused_rejected(self, game):
        """Test predictions are refused while paused."""
        game.select_slot(0, 0)
        game.pause()
        assert not game.predict(is_higher=True)
        assert game.remaining_count() == 43
        assert game.phase == GamePhase.PAUSED

    def test_probabilities_recomputed(self, make_game):
        """Test a LOW draw lowers the LOW odds on the next snapshot."""
        game = make_game("2H", "3H", "4H", "6H", "7H", "8H", "10H", "JH", "QH", "5S")
        game.select_slot(0, 0)  # 2H
        game.predict(is_higher=True)  # 5S
        assert game.probabilities.low == pytest.approx((16 - 4) / 42 * 100)
        assert game.probabilities.high == pytest.approx((20 - 3) / 42 * 100)

    def test_events_see_finished_state(self, game):
        """Test events go out only after the whole transition applied."""
        play_correctly(game, leave=1)
        seen = []
        game.subscribe(lambda e: seen.append((e.event_type, game.phase)))
        call_next(game)

        resolved = [phase for etype, phase in seen if etype == EventType.PREDICTION_CORRECT]
        assert resolved == [GamePhase.FINISHED]
        assert seen[-1][0] == EventType.GAME_WON

    def test_incorrect_emits_deactivation(self, make_game):
        """Test a miss announces the slot going dark by position."""
        game = make_game(*DEFAULT_GRID, "2S")
        game.select_slot(0, 0)
        game.predict(is_higher=False)
        deactivated = game.events.history_of(EventType.SLOT_DEACTIVATED)
        assert len(deactivated) == 1
        assert (deactivated[0].data["row"], deactivated[0].data["col"]) == (0, 0)
        assert deactivated[0].data["active_count"] == 8

    def test_is_correct_prediction(self):
        """Test the comparison rule directly."""
        assert is_correct_prediction(card("10H"), card("AS"), True)
        assert not is_correct_prediction(card("10H"), card("AS"), False)
        assert is_correct_prediction(card("10H"), card("9S"), False)
        assert not is_correct_prediction(card("10H"), card("10S"), True)
        assert not is_correct_prediction(card("10H"), card("10S"), False)


class TestGameEnd:
    """Tests for victory and defeat."""

    def test_victory_when_deck_runs_out(self, game):
        """Test emptying the deck wins with score 0."""
        play_correctly(game)

        assert game.phase == GamePhase.FINISHED
        assert game.outcome == GameOutcome.VICTORY
        assert game.score == 0
        assert game.is_finished
        assert game.active_count == 9
        assert sum(game.used_counts.values()) == 52
        assert _events(game)[-1] == EventType.GAME_WON

    def test_victory_even_on_final_miss(self, game):
        """Test an empty deck wins even if the last call was wrong."""
        play_correctly(game, leave=1)
        assert game.phase == GamePhase.SELECTING

        call_next(game, correct=False)
        assert game.outcome == GameOutcome.VICTORY
        assert game.score == 0
        assert not game.last_result.correct
        assert game.active_count == 8

    def test_defeat_when_all_slots_inactive(self, make_game):
        """Test losing every slot ends the game with cards left."""
        grid = ("2H", "2D", "2C", "2S", "3H", "3D", "3C", "3S", "4H")
        draws = ("AH", "AD", "AC", "AS", "KH", "KD", "KC", "KS", "QH")
        game = make_game(*grid, *draws)

        for row in range(3):
            for col in range(3):
                assert game.select_slot(row, col)
                assert game.predict(is_higher=False)

        assert game.phase == GamePhase.FINISHED
        assert game.outcome == GameOutcome.DEFEAT
        assert game.score == 34
        assert game.remaining_count() == 34
        assert game.active_count == 0
        assert _events(game)[-1] == EventType.GAME_LOST

    def test_finished_rejects_commands(self, game):
        """Test nothing but restart works after the end."""
        play_correctly(game)

        assert not game.select_slot(0, 0)
        assert not game.predict(is_higher=True)
        assert not game.pause()
        assert not game.resume()
        assert not game.can_select
        assert not game.can_predict
        assert game.phase == GamePhase.FINISHED


class TestPause:
    """Tests for pause and resume."""

    def test_pause_and_resume_selecting(self, game):
        """Test resuming returns to selecting."""
        assert game.pause()
        assert game.phase == GamePhase.PAUSED
        assert game.pre_pause_phase == GamePhase.SELECTING
        assert game.resume()
        assert game.phase == GamePhase.SELECTING
        assert game.pre_pause_phase is None

    def test_pause_and_resume_predicting(self, game):
        """Test resuming keeps the selection and prediction phase."""
        game.select_slot(1, 0)
        game.pause()
        assert game.resume()
        assert game.phase == GamePhase.PREDICTING
        assert game.selected_slot.position == (1, 0)
        assert game.predict(is_higher=True)

    def test_pause_twice(self, game):
        """Test a second pause is refused and keeps the remembered phase."""
        game.select_slot(1, 0)
        assert game.pause()
        assert not game.pause()
        assert game.phase == GamePhase.PAUSED
        assert game.pre_pause_phase == GamePhase.PREDICTING

    def test_select_while_paused_rejected(self, game):
        """Test selection is refused while paused."""
        game.pause()
        assert not game.select_slot(0, 0)
        assert game.selected_slot is None
        assert game.phase == GamePhase.PAUSED

    def test_resume_when_running_rejected(self, game):
        """Test resume needs a paused game."""
        assert not game.resume()
        assert game.phase == GamePhase.SELECTING

    def test_pause_keeps_data(self, game):
        """Test pausing leaves deck, grid and tally untouched."""
        before = (game.remaining_count(), game.slot_views(), game.used_counts)
        game.pause()
        game.resume()
        assert (game.remaining_count(), game.slot_views(), game.used_counts) == before

    def test_toggle_pause(self, game):
        """Test toggling flips between paused and running."""
        assert game.toggle_pause()
        assert game.phase == GamePhase.PAUSED
        assert game.toggle_pause()
        assert game.phase == GamePhase.SELECTING

    def test_flags(self, game):
        """Test the can_* flags follow the phase."""
        assert game.can_select and game.can_pause
        assert not game.can_predict and not game.can_resume
        game.select_slot(0, 0)
        assert game.can_predict
        game.pause()
        assert game.can_resume
        assert not game.can_select and not game.can_predict and not game.can_pause


class TestRestart:
    """Tests for restarting."""

    def test_restart_resets_everything(self, make_game):
        """Test restart deals a clean game."""
        game = make_game(*DEFAULT_GRID, "2S")
        old_id = game.game_id
        game.select_slot(0, 0)
        game.predict(is_higher=False)
        game.select_slot(1, 1)
        game.pause()

        assert game.restart()
        assert game.phase == GamePhase.SELECTING
        assert game.game_id != old_id
        assert game.remaining_count() == 43
        assert game.active_count == 9
        assert sum(game.used_counts.values()) == 9
        assert game.selected_slot is None
        assert game.pre_pause_phase is None
        assert game.last_result is None

    def test_restart_after_finish(self, game):
        """Test a finished game can be restarted."""
        play_correctly(game)
        assert game.phase == GamePhase.FINISHED
        assert game.restart()
        assert game.outcome is None
        assert game.score is None
        assert game.remaining_count() == 43

    def test_restart_keeps_subscribers(self, game):
        """Test subscribers hear the new deal."""
        seen = []
        game.subscribe(lambda e: seen.append(e.event_type), EventType.GAME_STARTED)
        game.restart()
        assert seen == [EventType.GAME_STARTED]

    def test_seeded_games_repeat(self):
        """Test equal seeds deal equal grids."""
        a = HiLoGame(rng=Random(3))
        b = HiLoGame(rng=Random(3))
        assert [v.card for v in a.slot_views()] == [v.card for v in b.slot_views()]


class TestStateMachine:
    """Tests for the phase machine wiring."""

    def test_transitions_use_known_phases(self):
        """Test every trigger moves between phases the game knows."""
        for t in HiLoGame.TRANSITIONS:
            sources = t["source"] if isinstance(t["source"], list) else [t["source"]]
            for source in sources:
                assert source == "*" or source in HiLoGame.STATES, t
            assert t["dest"] in HiLoGame.STATES, t

    def test_finished_left_only_by_reset(self):
        """Test a finished game accepts no trigger but reset."""
        leaving = {
            t["trigger"]
            for t in HiLoGame.TRANSITIONS
            if t["source"] in ("finished", "*")
            or (isinstance(t["source"], list) and "finished" in t["source"])
        }
        assert leaving == {"reset"}

    def test_forbidden_trigger_raises_invalid_transition(self, game):
        """Test the machine refuses a transition its table lacks."""
        with pytest.raises(InvalidTransition):
            game._fire("resolve")
        assert game.phase == GamePhase.SELECTING


class TestInvariants:
    """Property tests over random command sequences."""

    @settings(max_examples=60, deadline=None)
    @given(
        seed=st.integers(min_value=0, max_value=2**32 - 1),
        commands=st.lists(command_strategy(), max_size=120),
    )
    def test_invariants_hold(self, seed, commands):
        """Test the tally, slot activity and selection stay consistent."""
        game = HiLoGame(rng=Random(seed))
        inactive: set[tuple[int, int]] = set()

        for name, args in commands:
            if name == "select":
                game.select_slot(*args)
            elif name == "predict":
                game.predict(*args)
            elif name == "deselect":
                game.deselect()
            elif name == "pause":
                game.pause()
            else:
                game.resume()

            assert sum(game.used_counts.values()) + game.remaining_count() == 52
            assert all(0 <= n <= 4 for n in game.used_counts.values())

            views = game.slot_views()
            now_inactive = {(v.row, v.col) for v in views if not v.active}
            assert inactive <= now_inactive
            inactive = now_inactive

            selected = game.selected_slot
            if selected is not None:
                assert selected.active
            if game.phase == GamePhase.PREDICTING:
                assert selected is not None
            if game.phase == GamePhase.SELECTING:
                assert selected is None
            if game.phase == GamePhase.FINISHED:
                assert game.score == game.remaining_count()
                assert game.remaining_count() == 0 or game.active_count == 0

            probs = game.probabilities
            if game.remaining_count():
                assert probs.low + probs.mid + probs.high == pytest.approx(100.0)
