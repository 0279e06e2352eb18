"""Unit tests for the production timeline engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import pytest

from modules.orders.constants import DEFAULT_STAGES
from modules.orders.exceptions import InvalidStageSequence, UnknownStage
from modules.orders.timeline import (
    EntryStatus,
    Stage,
    StageEntry,
    StageSequence,
    StepStatus,
    TimelineState,
    apply_transition,
    build_board,
    compute_progress_percentage,
    describe_timeline,
    filter_visible,
    is_delayed,
    resolve_stage_index,
    start_timeline,
    visible_in_stage,
)

pytestmark = pytest.mark.unit

NOW = datetime(2024, 3, 10, 9, 0, tzinfo=timezone.utc)
DAY = timedelta(days=1)
RETENTION = timedelta(hours=24)

SHIPPED = 6
TERMINAL = 7

@pytest.fixture()
def sequence() -> StageSequence:
    return StageSequence.from_config(DEFAULT_STAGES)

@dataclass
class Card:
    current_stage: Optional[str]
    completed_at: Optional[datetime] = None

# ---------------------------------------------------------------------------
# Stage sequence
# ---------------------------------------------------------------------------

class TestStageSequence:
    def test_builds_default_pipeline_in_order(self, sequence):
        assert len(sequence) == 8
        assert sequence.names == (
            "Order Confirmed",
            "Fabric Purchase",
            "Fabric Cutting",
            "Embroidery/Printing",
            "Stitching",
            "Packing",
            "Shipped",
            "Order Completed",
        )
        assert sequence.first.name == "Order Confirmed"
        assert sequence.terminal.ordinal == TERMINAL

    def test_lookup_is_read_only(self, sequence):
        with pytest.raises(TypeError):
            sequence.lookup["Dyeing"] = 3  # type: ignore[index]

    def test_rejects_empty_pipeline(self):
        with pytest.raises(InvalidStageSequence):
            StageSequence.from_config([])

    def test_rejects_alias_mapping_to_two_ordinals(self):
        with pytest.raises(InvalidStageSequence, match="Delivered"):
            StageSequence.from_config(
                [
                    {"name": "Shipped", "aliases": ["Delivered"]},
                    {"name": "Order Completed", "aliases": ["Delivered"]},
                ]
            )

    def test_rejects_duplicate_canonical_names(self):
        with pytest.raises(InvalidStageSequence):
            StageSequence.from_config(["Stitching", "Stitching"])

    def test_rejects_entry_without_name(self):
        with pytest.raises(InvalidStageSequence, match="missing 'name'"):
            StageSequence.from_config([{"aliases": ["Delivered"]}])

    def test_rejects_non_contiguous_ordinals(self):
        with pytest.raises(InvalidStageSequence):
            StageSequence([Stage("Order Confirmed", 0), Stage("Stitching", 2)])

    def test_invalid_sequence_is_a_value_error(self):
        assert issubclass(InvalidStageSequence, ValueError)

    def test_canonical_name_follows_alias(self, sequence):
        assert sequence.canonical_name("Delivered") == "Shipped"
        assert sequence.canonical_name("Dyeing") is None

# ---------------------------------------------------------------------------
# resolve_stage_index
# ---------------------------------------------------------------------------

class TestResolveStageIndex:
    def test_every_label_resolves_to_its_ordinal(self, sequence):
        for stage in sequence:
            for label in stage.labels:
                assert resolve_stage_index(sequence, label) == stage.ordinal

    @pytest.mark.parametrize(
        "label, ordinal",
        [
            ("Delivered", SHIPPED),
            ("Logistics & Shipping", SHIPPED),
            ("Packing & Quality Control", 5),
        ],
    )
    def test_aliases(self, sequence, label, ordinal):
        assert resolve_stage_index(sequence, label) == ordinal

    @pytest.mark.parametrize(
        "label", ["Dyeing", "stitching", " Stitching", "", None, "Order Delayed"]
    )
    def test_unknown_labels_are_not_found(self, sequence, label):
        assert resolve_stage_index(sequence, label) is None

# ---------------------------------------------------------------------------
# compute_progress_percentage
# ---------------------------------------------------------------------------

class TestProgress:
    @pytest.mark.parametrize(
        "ordinal, expected",
        [(0, 13), (1, 25), (2, 38), (3, 50), (4, 63), (5, 75), (6, 88), (7, 100)],
    )
    def test_rounds_half_up(self, sequence, ordinal, expected):
        assert compute_progress_percentage(sequence, ordinal) == expected

    def test_unset_is_zero(self, sequence):
        assert compute_progress_percentage(sequence, None) == 0

    def test_monotonic_in_ordinal(self, sequence):
        values = [compute_progress_percentage(sequence, k) for k in range(len(sequence))]
        assert values == sorted(values)

    @pytest.mark.parametrize("ordinal", [-1, 8])
    def test_out_of_range_ordinal_raises(self, sequence, ordinal):
        with pytest.raises(ValueError):
            compute_progress_percentage(sequence, ordinal)

# ---------------------------------------------------------------------------
# is_delayed
# ---------------------------------------------------------------------------

class TestIsDelayed:
    def test_no_expected_delivery_is_never_delayed(self):
        assert is_delayed(None, 0, SHIPPED, TERMINAL, NOW) is False

    def test_past_due_before_shipped_is_delayed(self):
        assert is_delayed(NOW - DAY, 4, SHIPPED, TERMINAL, NOW) is True

    def test_future_delivery_is_not_delayed(self):
        assert is_delayed(NOW + DAY, 4, SHIPPED, TERMINAL, NOW) is False

    def test_exactly_now_is_not_delayed(self):
        assert is_delayed(NOW, 0, SHIPPED, TERMINAL, NOW) is False

    @pytest.mark.parametrize("ordinal", [SHIPPED, TERMINAL])
    def test_shipped_or_later_is_not_delayed(self, ordinal):
        assert is_delayed(NOW - 30 * DAY, ordinal, SHIPPED, TERMINAL, NOW) is False

    def test_unset_stage_counts_as_before_shipped(self):
        assert is_delayed(NOW - DAY, None, SHIPPED, TERMINAL, NOW) is True

    def test_terminal_wins_even_when_shipped_comes_later(self):
        assert is_delayed(NOW - DAY, 3, 5, 3, NOW) is False

    def test_bare_date_compares_as_midnight(self):
        assert is_delayed(date(2024, 3, 10), 0, SHIPPED, TERMINAL, NOW) is True
        assert is_delayed(date(2024, 3, 11), 0, SHIPPED, TERMINAL, NOW) is False

# ---------------------------------------------------------------------------
# start_timeline / apply_transition
# ---------------------------------------------------------------------------

class TestStartTimeline:
    def test_new_order_sits_at_first_stage(self, sequence):
        state = start_timeline(sequence, NOW)
        assert state.current_stage == "Order Confirmed"
        assert state.completed_at is None
        assert len(state.history) == 1
        entry = state.history[0]
        assert entry.stage_name == "Order Confirmed"
        assert entry.entered_at == NOW
        assert entry.status == EntryStatus.ACTIVE

    def test_single_stage_pipeline_is_complete_at_once(self):
        sequence = StageSequence.from_config(["Done"])
        assert start_timeline(sequence, NOW).completed_at == NOW

class TestApplyTransition:
    def test_forward_move_closes_previous_entry(self, sequence):
        state = start_timeline(sequence, NOW)
        result = apply_transition(sequence, state, "Stitching", NOW + DAY)

        assert result.changed is True
        assert result.from_stage == "Order Confirmed"
        assert result.to_stage == "Stitching"
        new = result.state
        assert new.current_stage == "Stitching"
        assert [e.status for e in new.history] == [
            EntryStatus.COMPLETED,
            EntryStatus.ACTIVE,
        ]
        assert new.history[0].entered_at == NOW
        assert new.history[0].exited_at == NOW + DAY
        assert new.history[1].entered_at == NOW + DAY
        assert new.completed_at is None

    def test_alias_target_stores_canonical_name(self, sequence):
        state = start_timeline(sequence, NOW)
        result = apply_transition(sequence, state, "Delivered", NOW)
        assert result.state.current_stage == "Shipped"
        assert result.state.history[-1].stage_name == "Shipped"

    def test_same_stage_is_a_noop(self, sequence):
        state = start_timeline(sequence, NOW)
        result = apply_transition(sequence, state, "Order Confirmed", NOW + DAY)
        assert result.changed is False
        assert result.state is state

    def test_alias_of_current_stage_is_a_noop(self, sequence):
        state = apply_transition(
            sequence, start_timeline(sequence, NOW), "Shipped", NOW
        ).state
        result = apply_transition(sequence, state, "Logistics & Shipping", NOW + DAY)
        assert result.changed is False
        assert len(result.state.history) == 2

    def test_unknown_stage_is_rejected_without_touching_state(self, sequence):
        state = start_timeline(sequence, NOW)
        with pytest.raises(UnknownStage) as exc_info:
            apply_transition(sequence, state, "Dyeing", NOW + DAY)
        assert exc_info.value.stage == "Dyeing"
        assert state == start_timeline(sequence, NOW)

    def test_terminal_sets_and_leaving_clears_completed_at(self, sequence):
        state = start_timeline(sequence, NOW)
        done = apply_transition(sequence, state, "Order Completed", NOW + DAY).state
        assert done.completed_at == NOW + DAY

        back = apply_transition(sequence, done, "Packing", NOW + 2 * DAY).state
        assert back.completed_at is None
        assert back.current_stage == "Packing"

    def test_backward_moves_are_allowed(self, sequence):
        state = apply_transition(
            sequence, start_timeline(sequence, NOW), "Stitching", NOW
        ).state
        result = apply_transition(sequence, state, "Fabric Purchase", NOW + DAY)
        assert result.changed is True
        assert result.state.current_stage == "Fabric Purchase"
        assert len(result.state.history) == 3

    def test_round_trip_restores_stage_but_history_grows(self, sequence):
        original = start_timeline(sequence, NOW)
        there = apply_transition(sequence, original, "Packing", NOW + DAY).state
        back = apply_transition(sequence, there, "Order Confirmed", NOW + 2 * DAY).state

        assert back.current_stage == original.current_stage
        assert compute_progress_percentage(
            sequence, sequence.resolve(back.current_stage)
        ) == compute_progress_percentage(
            sequence, sequence.resolve(original.current_stage)
        )
        assert len(back.history) == 3

    def test_entry_times_never_go_backwards(self, sequence):
        state = start_timeline(sequence, NOW)
        result = apply_transition(sequence, state, "Stitching", NOW - timedelta(hours=1))
        assert result.state.history[-1].entered_at == NOW
        assert result.state.history[0].exited_at == NOW

    def test_closes_every_open_entry(self, sequence):

        broken = TimelineState(
            current_stage="Stitching",
            history=(
                StageEntry("Fabric Cutting", NOW),
                StageEntry("Stitching", NOW),
            ),
        )
        result = apply_transition(sequence, broken, "Packing", NOW + DAY)
        assert len(result.state.open_entries) == 1
        assert result.state.open_entries[0].stage_name == "Packing"

    def test_unset_order_can_be_placed(self, sequence):
        result = apply_transition(sequence, TimelineState(), "Fabric Cutting", NOW)
        assert result.changed is True
        assert result.from_stage is None
        assert len(result.state.history) == 1

    def test_end_to_end_pipeline(self, sequence):
        def progress(state):
            return compute_progress_percentage(
                sequence, resolve_stage_index(sequence, state.current_stage)
            )

        state = start_timeline(sequence, NOW)
        assert progress(state) == 13

        state = apply_transition(sequence, state, "Stitching", NOW + DAY).state
        assert progress(state) == 63
        assert len(state.history) == 2
        assert state.history[0].status == EntryStatus.COMPLETED
        assert state.history[1].status == EntryStatus.ACTIVE

        state = apply_transition(sequence, state, "Order Completed", NOW + 2 * DAY).state
        assert progress(state) == 100
        assert state.completed_at == NOW + 2 * DAY

        state = apply_transition(sequence, state, "Packing", NOW + 3 * DAY).state
        assert state.completed_at is None
        assert progress(state) == 75

    def test_completed_at_tracks_terminal_through_any_walk(self, sequence):
        walk = ["Shipped", "Order Completed", "Order Completed", "Stitching",
                "Order Completed", "Delivered", "Order Confirmed"]
        state = start_timeline(sequence, NOW)
        for step, label in enumerate(walk, start=1):
            state = apply_transition(sequence, state, label, NOW + step * DAY).state
            at_terminal = sequence.resolve(state.current_stage) == TERMINAL
            assert (state.completed_at is not None) == at_terminal
            assert len(state.open_entries) == 1

# ---------------------------------------------------------------------------
# Board visibility
# ---------------------------------------------------------------------------

class TestVisibility:
    def test_completed_more_than_window_ago_is_hidden(self, sequence):
        card = Card("Order Completed", NOW - timedelta(hours=25))
        assert visible_in_stage(sequence, card, "Order Completed", NOW, RETENTION) is False

    def test_completed_within_window_is_visible(self, sequence):
        card = Card("Order Completed", NOW - timedelta(hours=23))
        assert visible_in_stage(sequence, card, "Order Completed", NOW, RETENTION) is True

    def test_exactly_at_window_is_still_visible(self, sequence):
        card = Card("Order Completed", NOW - RETENTION)
        assert visible_in_stage(sequence, card, "Order Completed", NOW, RETENTION) is True

    def test_terminal_without_completion_time_is_visible(self, sequence):
        card = Card("Order Completed", None)
        assert visible_in_stage(sequence, card, "Order Completed", NOW, RETENTION) is True

    def test_non_terminal_column_ignores_completion_time(self, sequence):
        card = Card("Stitching", NOW - 10 * DAY)
        assert visible_in_stage(sequence, card, "Stitching", NOW, RETENTION) is True

    def test_alias_stored_stage_matches_canonical_column(self, sequence):
        card = Card("Delivered")
        assert visible_in_stage(sequence, card, "Shipped", NOW, RETENTION) is True
        assert visible_in_stage(sequence, card, "Logistics & Shipping", NOW, RETENTION)

    def test_other_column_is_not_visible(self, sequence):
        assert visible_in_stage(sequence, Card("Stitching"), "Packing", NOW, RETENTION) is False

    def test_unknown_column_is_not_visible(self, sequence):
        assert visible_in_stage(sequence, Card("Stitching"), "Dyeing", NOW, RETENTION) is False

    def test_unset_order_is_in_no_column(self, sequence):
        assert visible_in_stage(sequence, Card(""), "Order Confirmed", NOW, RETENTION) is False
        assert visible_in_stage(sequence, Card(None), "Order Confirmed", NOW, RETENTION) is False

    def test_timeline_state_qualifies_as_board_item(self, sequence):
        state = start_timeline(sequence, NOW)
        assert visible_in_stage(sequence, state, "Order Confirmed", NOW, RETENTION)

    def test_filter_keeps_order_and_does_not_mutate(self, sequence):
        fresh = Card("Order Completed", NOW - timedelta(hours=1))
        stale = Card("Order Completed", NOW - timedelta(hours=48))
        untimed = Card("Order Completed", None)
        orders = [fresh, stale, untimed]

        visible = filter_visible(sequence, orders, "Order Completed", NOW, RETENTION)

        assert visible == [fresh, untimed]
        assert stale.completed_at == NOW - timedelta(hours=48)
        assert orders == [fresh, stale, untimed]

class TestBuildBoard:
    def test_columns_follow_pipeline_order(self, sequence):
        board = build_board(sequence, [], NOW, RETENTION)
        assert list(board) == list(sequence.names)
        assert all(column == [] for column in board.values())

    def test_places_orders_and_drops_unknown(self, sequence):
        a = Card("Stitching")
        b = Card("Delivered")
        c = Card("Order Completed", NOW - timedelta(hours=30))
        d = Card("Dyeing")

        board = build_board(sequence, [a, b, c, d], NOW, RETENTION)

        assert board["Stitching"] == [a]
        assert board["Shipped"] == [b]
        assert board["Order Completed"] == []
        assert sum(len(column) for column in board.values()) == 2

# ---------------------------------------------------------------------------
# describe_timeline
# ---------------------------------------------------------------------------

class TestDescribeTimeline:
    def test_marks_completed_active_and_pending(self, sequence):
        state = start_timeline(sequence, NOW)
        state = apply_transition(sequence, state, "Fabric Cutting", NOW + DAY).state

        steps = describe_timeline(sequence, state)

        assert [s.status for s in steps[:4]] == [
            StepStatus.COMPLETED,
            StepStatus.COMPLETED,
            StepStatus.ACTIVE,
            StepStatus.PENDING,
        ]
        assert steps[0].entered_at == NOW
        assert steps[1].entered_at is None
        assert steps[2].entered_at == NOW + DAY

    def test_unset_order_is_all_pending(self, sequence):
        steps = describe_timeline(sequence, TimelineState())
        assert {s.status for s in steps} == {StepStatus.PENDING}

    def test_history_matched_through_aliases(self, sequence):

        state = TimelineState(
            current_stage="Delivered",
            history=(StageEntry("Delivered", NOW),),
        )
        steps = describe_timeline(sequence, state)
        assert steps[SHIPPED].status == StepStatus.ACTIVE
        assert steps[SHIPPED].entered_at == NOW

    def test_latest_visit_wins(self, sequence):
        state = start_timeline(sequence, NOW)
        state = apply_transition(sequence, state, "Stitching", NOW + DAY).state
        state = apply_transition(sequence, state, "Order Confirmed", NOW + 2 * DAY).state

        steps = describe_timeline(sequence, state)
        assert steps[0].entered_at == NOW + 2 * DAY
        assert steps[0].status == StepStatus.ACTIVE
        assert steps[4].status == StepStatus.PENDING
