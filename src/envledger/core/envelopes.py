"""
Envelope definitions, recurrence rules and envelope balances.

A recurrence rule answers two questions for any reference date: when was
the envelope last due (on or before the date) and when is it due next
(strictly after the date). Rules are a closed set of immutable variants
resolved once at parse time, so keyword synonyms never reach this module.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional, Union

from .currency import Amount
from .errors import RecurrenceConfigError
from .kinds import EnvelopeKind, FundingPolicy

WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def parse_weekday(word: str) -> Optional[int]:
    """Weekday index (Monday=0) for a full or three-letter weekday name."""
    word = word.lower()
    for idx, name in enumerate(WEEKDAYS):
        if word == name or word == name[:3]:
            return idx
    return None


def _month_index(d: date) -> int:
    return d.year * 12 + d.month - 1


def _day_in_month(month_index: int, day: int) -> date:
    """Date for `day` in the month, clamped to the month's last day."""
    year, month0 = divmod(month_index, 12)
    last = calendar.monthrange(year, month0 + 1)[1]
    return date(year, month0 + 1, min(day, last))


def _check_day(day: int) -> None:
    if not 1 <= day <= 31:
        raise RecurrenceConfigError(f"day of month must be between 1 and 31, got {day}")


def _check_weekday(weekday: int) -> None:
    if not 0 <= weekday <= 6:
        raise RecurrenceConfigError(f"weekday index must be between 0 and 6, got {weekday}")


@dataclass(frozen=True)
class OnceRule:
    """Non-repeating due date (a goal's `by` date)."""

    due: date

    def validate(self) -> None:
        pass

    def next_due(self, ref: date) -> Optional[date]:
        return self.due if self.due > ref else None

    def previous_due(self, ref: date) -> Optional[date]:
        return self.due if self.due <= ref else None

    def describe(self) -> str:
        return f"{self.due:%Y/%m/%d}"


@dataclass(frozen=True)
class MonthlyRule:
    """Due every month on a day of the month."""

    day: int

    def validate(self) -> None:
        _check_day(self.day)

    def next_due(self, ref: date) -> Optional[date]:
        candidate = _day_in_month(_month_index(ref), self.day)
        if candidate > ref:
            return candidate
        return _day_in_month(_month_index(ref) + 1, self.day)

    def previous_due(self, ref: date) -> Optional[date]:
        candidate = _day_in_month(_month_index(ref), self.day)
        if candidate <= ref:
            return candidate
        return _day_in_month(_month_index(ref) - 1, self.day)

    def describe(self) -> str:
        return f"every {_ordinal(self.day)}"


@dataclass(frozen=True)
class BimonthlyRule:
    """Due every other month on a day; the `starting` date fixes which months."""

    day: int
    anchor: date

    def validate(self) -> None:
        _check_day(self.day)

    def _on_phase(self, month_index: int) -> bool:
        return (month_index - _month_index(self.anchor)) % 2 == 0

    def next_due(self, ref: date) -> Optional[date]:
        month = _month_index(ref)
        if not self._on_phase(month):
            month += 1
        candidate = _day_in_month(month, self.day)
        if candidate > ref:
            return candidate
        return _day_in_month(month + 2, self.day)

    def previous_due(self, ref: date) -> Optional[date]:
        month = _month_index(ref)
        if not self._on_phase(month):
            month -= 1
        candidate = _day_in_month(month, self.day)
        if candidate <= ref:
            return candidate
        return _day_in_month(month - 2, self.day)

    def describe(self) -> str:
        return f"every other {_ordinal(self.day)}"


@dataclass(frozen=True)
class WeeklyRule:
    """Due every week on a weekday (Monday=0)."""

    weekday: int

    def validate(self) -> None:
        _check_weekday(self.weekday)

    def next_due(self, ref: date) -> Optional[date]:
        return ref + timedelta(days=(self.weekday - ref.weekday() - 1) % 7 + 1)

    def previous_due(self, ref: date) -> Optional[date]:
        return ref - timedelta(days=(ref.weekday() - self.weekday) % 7)

    def describe(self) -> str:
        return f"every {WEEKDAYS[self.weekday]}"


@dataclass(frozen=True)
class BiweeklyRule:
    """Due every other week on a weekday, in phase with the `starting` date."""

    weekday: int
    anchor: date

    def validate(self) -> None:
        _check_weekday(self.weekday)

    @property
    def base(self) -> date:
        """First occurrence on or after the anchor."""
        return self.anchor + timedelta(days=(self.weekday - self.anchor.weekday()) % 7)

    def next_due(self, ref: date) -> Optional[date]:
        periods = (ref - self.base).days // 14
        return self.base + timedelta(days=14 * (periods + 1))

    def previous_due(self, ref: date) -> Optional[date]:
        periods = (ref - self.base).days // 14
        return self.base + timedelta(days=14 * periods)

    def describe(self) -> str:
        return f"every other {WEEKDAYS[self.weekday]}"


@dataclass(frozen=True)
class AnnualRule:
    """Due every year on the month and day of the `starting` date."""

    month: int
    day: int

    def validate(self) -> None:
        if not 1 <= self.month <= 12:
            raise RecurrenceConfigError(f"month must be between 1 and 12, got {self.month}")
        _check_day(self.day)

    def _in_year(self, year: int) -> date:
        return _day_in_month(year * 12 + self.month - 1, self.day)

    def next_due(self, ref: date) -> Optional[date]:
        candidate = self._in_year(ref.year)
        return candidate if candidate > ref else self._in_year(ref.year + 1)

    def previous_due(self, ref: date) -> Optional[date]:
        candidate = self._in_year(ref.year)
        return candidate if candidate <= ref else self._in_year(ref.year - 1)

    def describe(self) -> str:
        return "every year"


RecurrenceRule = Union[
    OnceRule, MonthlyRule, BimonthlyRule, WeeklyRule, BiweeklyRule, AnnualRule
]


def _ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


@dataclass(frozen=True)
class EnvelopeDefinition:
    """
    Envelope declared under an account.

    Attributes:
        account: Owning account path
        name: Envelope name, unique within the account
        kind: Expense or goal (interchangeable)
        target: Amount to have ready by each due date
        rule: When the target is due
        starting: Optional date before which nothing is funded
        policy: Automatic funding policy
        for_accounts: Category accounts whose postings spend from this envelope
    """

    account: str
    name: str
    kind: EnvelopeKind
    target: Amount
    rule: RecurrenceRule
    starting: Optional[date] = None
    policy: FundingPolicy = FundingPolicy.NONE
    for_accounts: tuple[str, ...] = ()
    line: Optional[int] = field(default=None, compare=False)
    column: Optional[int] = field(default=None, compare=False)

    @property
    def key(self) -> tuple[str, str]:
        return (self.account, self.name)

    def is_repeating(self) -> bool:
        return not isinstance(self.rule, OnceRule)

    def to_journal(self) -> str:
        """Render the envelope block as it appears under its account."""
        header = f"    {self.kind.value} {self.name} due {self.rule.describe()}"
        if self.starting is not None:
            header += f" starting {self.starting:%Y/%m/%d}"
        lines = [header, f"        amount {self.target}"]
        lines += [f"        for {account}" for account in self.for_accounts]
        if self.policy is not FundingPolicy.NONE:
            lines.append(f"        funding {self.policy.value}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return f"{self.account}/{self.name}"


@dataclass
class EnvelopeState:
    """
    Mutable balances of one envelope during a replay.

    Attributes:
        ready: Funded for the due date that has arrived; spendable now
        next: Accruing toward the upcoming due date
        current_due_date: Upcoming due date (None before the first funding
            day, or once a one-off goal has passed)
        period_start: Start of the current accrual period
        funded: Cumulative transfers into `next` during the current period
        started: True once the envelope has been initialised on a replay day
        finished: True once a non-repeating goal has reached its date
    """

    ready: Decimal = Decimal("0")
    next: Decimal = Decimal("0")
    current_due_date: Optional[date] = None
    period_start: Optional[date] = None
    funded: Decimal = Decimal("0")
    started: bool = False
    finished: bool = False

    @property
    def total(self) -> Decimal:
        return self.ready + self.next

    @property
    def committed(self) -> Decimal:
        """Money of the owning account held by this envelope."""
        return max(self.total, Decimal("0"))

    def start(self, definition: EnvelopeDefinition, day: date) -> None:
        """Open the first accrual period on the first funding day."""
        due = definition.rule.next_due(day)
        previous = definition.rule.previous_due(day)
        if definition.starting is not None and (
            previous is None or definition.starting > previous
        ):
            previous = definition.starting
        self.current_due_date = due
        self.period_start = previous if previous is not None else day
        self.started = True
        self.finished = due is None

    def fund(self, amount: Decimal) -> None:
        """Move money from the account into the envelope's `next` bucket."""
        self.next += amount
        self.funded += amount

    def apply(self, amount: Decimal) -> None:
        """
        Apply a signed movement.

        Spending (negative) comes out of `ready` first and the overflow out
        of `next`; funding (positive) accrues in `next`.
        """
        if amount >= 0:
            self.fund(amount)
            return
        self.ready += amount
        if self.ready < 0:
            self.next += self.ready
            self.ready = Decimal("0")

    def rollover(self, definition: EnvelopeDefinition) -> None:
        """
        Cross the current due date.

        Whatever was left in `ready` is released, `next` becomes the new
        `ready` and a fresh accrual period starts at the old due date. An
        overspent `next` carries its deficit into the new period.
        """
        reached = self.current_due_date
        if self.next < 0:
            self.ready = Decimal("0")
        else:
            self.ready = self.next
            self.next = Decimal("0")
        self.funded = Decimal("0")
        self.period_start = reached
        self.current_due_date = definition.rule.next_due(reached)
        if self.current_due_date is None:
            self.finished = True
