"""Production timeline engine.

An order moves through a fixed, ordered pipeline of manufacturing stages
("Order Confirmed" ... "Order Completed").  This module owns that pipeline
and every fact derived from an order's position in it:

- label -> ordinal resolution (canonical names and static aliases);
- progress percentage;
- delay flag;
- stage transitions with their history and completion bookkeeping;
- Kanban board visibility (completed orders drop off after a retention window).

Everything here is pure: no ORM, no settings, no wall clock.  Callers pass
``now`` explicitly and persist the returned ``TimelineState`` themselves.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from types import MappingProxyType
from typing import Any, Optional, Protocol, TypeVar

from modules.orders.exceptions import InvalidStageSequence, UnknownStage


class EntryStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class StepStatus(str, enum.Enum):
    COMPLETED = "completed"
    ACTIVE = "active"
    PENDING = "pending"


# ---------------------------------------------------------------------------
# Stage sequence
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Stage:
    """One step of the pipeline."""

    name: str
    ordinal: int
    aliases: tuple[str, ...] = ()

    @property
    def labels(self) -> tuple[str, ...]:
        return (self.name, *self.aliases)


class StageSequence:
    """Immutable ordered pipeline with a static many-to-one label map.

    Every canonical name and every alias resolves to exactly one ordinal;
    a configuration where a label would resolve to two ordinals is rejected
    at construction time.
    """

    __slots__ = ("_stages", "_lookup")

    def __init__(self, stages: Iterable[Stage]) -> None:
        ordered = tuple(stages)
        if not ordered:
            raise InvalidStageSequence("A stage sequence needs at least one stage.")

        lookup: dict[str, int] = {}
        for position, stage in enumerate(ordered):
            if stage.ordinal != position:
                raise InvalidStageSequence(
                    f"Stage {stage.name!r} has ordinal {stage.ordinal}, "
                    f"expected {position}."
                )
            for label in stage.labels:
                if not label:
                    raise InvalidStageSequence("Stage labels cannot be empty.")
                if label in lookup:
                    raise InvalidStageSequence(
                        f"Label {label!r} maps to ordinals {lookup[label]} "
                        f"and {position}."
                    )
                lookup[label] = position

        self._stages = ordered
        self._lookup = MappingProxyType(lookup)

    @classmethod
    def from_config(cls, entries: Sequence[str | Mapping[str, Any]]) -> StageSequence:
        """Build a sequence from plain names or ``{"name", "aliases"}`` mappings."""
        stages = []
        for ordinal, entry in enumerate(entries):
            if isinstance(entry, str):
                stages.append(Stage(name=entry, ordinal=ordinal))
                continue
            try:
                name = entry["name"]
            except KeyError as exc:
                raise InvalidStageSequence(
                    f"Stage entry #{ordinal} is missing 'name'."
                ) from exc
            aliases = tuple(entry.get("aliases", ()))
            stages.append(Stage(name=name, ordinal=ordinal, aliases=aliases))
        return cls(stages)

    # ------------------------------------------------------------------
    # Container protocol
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._stages)

    def __iter__(self):
        return iter(self._stages)

    def __getitem__(self, ordinal: int) -> Stage:
        return self._stages[ordinal]

    def __repr__(self) -> str:
        return f"StageSequence({[s.name for s in self._stages]!r})"

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def lookup(self) -> Mapping[str, int]:
        return self._lookup

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(stage.name for stage in self._stages)

    @property
    def first(self) -> Stage:
        return self._stages[0]

    @property
    def terminal(self) -> Stage:
        return self._stages[-1]

    def resolve(self, label: Optional[str]) -> Optional[int]:
        if not label:
            return None
        return self._lookup.get(label)

    def canonical_name(self, label: Optional[str]) -> Optional[str]:
        ordinal = self.resolve(label)
        return None if ordinal is None else self._stages[ordinal].name


# ---------------------------------------------------------------------------
# Order timeline state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StageEntry:
    stage_name: str
    entered_at: datetime
    status: EntryStatus = EntryStatus.ACTIVE
    exited_at: Optional[datetime] = None


@dataclass(frozen=True)
class TimelineState:
    """Snapshot of an order's position in the pipeline.

    ``current_stage`` is ``None`` when unset.  ``history`` is append-only;
    only the status of open entries ever changes.
    """

    current_stage: Optional[str] = None
    history: tuple[StageEntry, ...] = ()
    completed_at: Optional[datetime] = None

    @property
    def open_entries(self) -> tuple[StageEntry, ...]:
        return tuple(e for e in self.history if e.status == EntryStatus.ACTIVE)


@dataclass(frozen=True)
class TransitionResult:
    state: TimelineState
    changed: bool
    from_stage: Optional[str]
    to_stage: str


@dataclass(frozen=True)
class TimelineStep:
    name: str
    ordinal: int
    status: StepStatus
    entered_at: Optional[datetime] = field(default=None)


class StagedOrder(Protocol):
    current_stage: Any
    completed_at: Optional[datetime]


O = TypeVar("O", bound=StagedOrder)


# ---------------------------------------------------------------------------
# Derived facts
# ---------------------------------------------------------------------------


def resolve_stage_index(sequence: StageSequence, label: Optional[str]) -> Optional[int]:
    """Return the ordinal for *label*, or ``None`` when it matches no stage.

    Matching is exact and case-sensitive.  Unknown labels are a valid,
    displayable state, so this never raises.
    """
    return sequence.resolve(label)


def compute_progress_percentage(
    sequence: StageSequence, ordinal: Optional[int]
) -> int:
    """Percentage of the pipeline reached, rounded half-up to an integer."""
    if ordinal is None:
        return 0
    total = len(sequence)
    if not 0 <= ordinal < total:
        raise ValueError(f"Ordinal {ordinal} is outside 0..{total - 1}.")
    percentage = Decimal(ordinal + 1) * 100 / Decimal(total)
    return int(percentage.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def is_delayed(
    expected_delivery: Optional[date | datetime],
    current_ordinal: Optional[int],
    shipped_ordinal: int,
    terminal_ordinal: int,
    now: datetime,
) -> bool:
    """Whether the order is past its expected delivery and not yet shipped.

    An unset stage counts as "before Shipped".
    """
    if expected_delivery is None:
        return False
    if current_ordinal is not None and (
        current_ordinal >= shipped_ordinal or current_ordinal >= terminal_ordinal
    ):
        return False
    return _as_datetime(expected_delivery, now) < now


def _as_datetime(value: date | datetime, now: datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min, tzinfo=now.tzinfo)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def start_timeline(sequence: StageSequence, now: datetime) -> TimelineState:
    """Initial state of a newly created order: first stage, one open entry."""
    first = sequence.first.name
    return TimelineState(
        current_stage=first,
        history=(StageEntry(stage_name=first, entered_at=now),),
        completed_at=now if len(sequence) == 1 else None,
    )


def apply_transition(
    sequence: StageSequence,
    state: TimelineState,
    new_stage: str,
    now: datetime,
) -> TransitionResult:
    """Move *state* to *new_stage*.

    Any stage may be targeted, forwards or backwards.  Targeting the stage
    the order already occupies is a no-op.  Raises ``UnknownStage`` when
    *new_stage* resolves to nothing; the input state is never modified.
    """
    target = sequence.resolve(new_stage)
    if target is None:
        raise UnknownStage(new_stage)

    current = sequence.resolve(state.current_stage)
    target_name = sequence[target].name

    if current == target:
        return TransitionResult(
            state=state,
            changed=False,
            from_stage=state.current_stage,
            to_stage=target_name,
        )

    entered_at = now
    if state.history and state.history[-1].entered_at > entered_at:
        entered_at = state.history[-1].entered_at

    closed = tuple(
        replace(entry, status=EntryStatus.COMPLETED, exited_at=entered_at)
        if entry.status == EntryStatus.ACTIVE
        else entry
        for entry in state.history
    )
    history = closed + (StageEntry(stage_name=target_name, entered_at=entered_at),)

    is_terminal = target == sequence.terminal.ordinal
    new_state = TimelineState(
        current_stage=target_name,
        history=history,
        completed_at=entered_at if is_terminal else None,
    )
    return TransitionResult(
        state=new_state,
        changed=True,
        from_stage=state.current_stage,
        to_stage=target_name,
    )


# ---------------------------------------------------------------------------
# Board visibility
# ---------------------------------------------------------------------------


def visible_in_stage(
    sequence: StageSequence,
    order: StagedOrder,
    stage_name: str,
    now: datetime,
    retention: timedelta,
) -> bool:
    """Whether *order* belongs in the *stage_name* column of the live board.

    Terminal-stage orders completed more than *retention* ago are hidden.
    Orders without a completion timestamp are always shown.
    """
    column = sequence.resolve(stage_name)
    if column is None:
        return False
    if sequence.resolve(order.current_stage or None) != column:
        return False
    if column != sequence.terminal.ordinal or order.completed_at is None:
        return True
    return now - order.completed_at <= retention


def filter_visible(
    sequence: StageSequence,
    orders: Iterable[O],
    stage_name: str,
    now: datetime,
    retention: timedelta,
) -> list[O]:
    return [
        order
        for order in orders
        if visible_in_stage(sequence, order, stage_name, now, retention)
    ]


def build_board(
    sequence: StageSequence,
    orders: Iterable[O],
    now: datetime,
    retention: timedelta,
) -> dict[str, list[O]]:
    """Group orders into Kanban columns, keyed by canonical stage name."""
    orders = list(orders)
    return {
        stage.name: filter_visible(sequence, orders, stage.name, now, retention)
        for stage in sequence
    }


def describe_timeline(
    sequence: StageSequence, state: TimelineState
) -> list[TimelineStep]:
    """Per-stage view of the pipeline for the order timeline page."""
    current = sequence.resolve(state.current_stage)
    steps = []
    for stage in sequence:
        if current is None or stage.ordinal > current:
            status = StepStatus.PENDING
        elif stage.ordinal == current:
            status = StepStatus.ACTIVE
        else:
            status = StepStatus.COMPLETED
        entered_at = next(
            (
                entry.entered_at
                for entry in reversed(state.history)
                if sequence.resolve(entry.stage_name) == stage.ordinal
            ),
            None,
        )
        steps.append(
            TimelineStep(
                name=stage.name,
                ordinal=stage.ordinal,
                status=status,
                entered_at=entered_at,
            )
        )
    return steps
