"""
Unit tests for the turn phase state machine.

Run with: python -m pytest tests/test_turns.py -v
"""

import pytest

from triplanetary.turns import (
    NEXT_PHASE,
    PHASE_BUTTON_LABEL,
    PLOT_PENDING_LABEL,
    GamePhase,
    TurnState,
    advance_phase,
    create_turn_state,
    history_entry,
    next_phase_label,
    next_turn,
)


def advance(state: TurnState, times: int) -> TurnState:
    for _ in range(times):
        state = advance_phase(state)
    return state


class TestTables:
    """The transition and label tables cover every phase."""

    def test_every_phase_has_a_successor(self):
        assert set(NEXT_PHASE) == set(GamePhase)

    def test_every_phase_has_a_label(self):
        assert set(PHASE_BUTTON_LABEL) == set(GamePhase)

    def test_phase_order(self):
        phase = GamePhase.PLOT
        order = [phase]
        for _ in range(4):
            phase = NEXT_PHASE[phase]
            order.append(phase)
        assert order == [
            GamePhase.PLOT, GamePhase.ORDNANCE, GamePhase.MOVEMENT,
            GamePhase.COMBAT, GamePhase.MAINTENANCE,
        ]

    @pytest.mark.parametrize("phase,plotted,expected", [
        (GamePhase.PLOT, True, "Next: Ordnance"),
        (GamePhase.PLOT, False, PLOT_PENDING_LABEL),
        (GamePhase.ORDNANCE, True, "Next: Movement"),
        (GamePhase.MOVEMENT, True, "Next: Combat"),
        (GamePhase.COMBAT, True, "Next: Maintenance"),
        (GamePhase.MAINTENANCE, False, "End Turn"),
    ])
    def test_labels(self, phase, plotted, expected):
        assert next_phase_label(phase, plotted) == expected


class TestAdvancePhase:
    """Tests for phase and player rotation."""

    def test_initial_state(self):
        state = create_turn_state(["p0", "p1"])
        assert state.current_player_index == 0
        assert state.current_phase is GamePhase.PLOT
        assert state.round_number == 1
        assert state.current_player_id == "p0"

    def test_empty_turn_order_rejected(self):
        with pytest.raises(ValueError):
            create_turn_state([])

    def test_same_player_within_turn(self):
        state = advance(create_turn_state(["p0", "p1"]), 4)
        assert state.current_player_index == 0
        assert state.current_phase is GamePhase.MAINTENANCE

    def test_five_advances_pass_to_next_player(self):
        state = advance(create_turn_state(["p0", "p1"]), 5)
        assert state.current_player_index == 1
        assert state.current_phase is GamePhase.PLOT
        assert state.round_number == 1

    def test_ten_advances_start_round_two(self):
        state = advance(create_turn_state(["p0", "p1"]), 10)
        assert state.current_player_index == 0
        assert state.current_phase is GamePhase.PLOT
        assert state.round_number == 2

    def test_single_player_wraps_every_turn(self):
        state = advance(create_turn_state(["solo"]), 5)
        assert state.current_player_index == 0
        assert state.round_number == 2

    def test_three_players(self):
        state = advance(create_turn_state(["a", "b", "c"]), 15)
        assert state.current_player_id == "a"
        assert state.round_number == 2

    def test_original_state_unchanged(self):
        state = create_turn_state(["p0", "p1"])
        advance_phase(state)
        assert state.current_phase is GamePhase.PLOT

    def test_next_turn_skips_to_next_plot(self):
        state = advance(create_turn_state(["p0", "p1"]), 2)
        jumped = next_turn(state)
        assert jumped.current_player_index == 1
        assert jumped.current_phase is GamePhase.PLOT
        assert next_turn(jumped).round_number == 2

    def test_history_entry(self):
        entry = history_entry(advance(create_turn_state(["p0", "p1"]), 6))
        assert entry.player_id == "p1"
        assert entry.phase is GamePhase.ORDNANCE
        assert entry.round_number == 1
