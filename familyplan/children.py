"""
Child expense projection module for familyplan.

Purpose
-------
Expands a child-expense template (a named list of age- or event-triggered
expense rules) into absolute-dated milestones for one child, and reports
how much must be saved monthly to meet each one. The timeline engine
withdraws the milestone costs in the month they fall due.

Trigger semantics
-----------------
Each ChildExpenseItem carries a trigger, dispatched once per item:

- age_months : date = birth + trigger_value months
- age_years  : date = birth + trigger_value years
- event      : date supplied externally via `event_dates[item.id]`;
               not derivable from age. Items without a date are reported
               as unscheduled (never placed on the timeline), unless
               `event_age_fallback` resolves them at birth + trigger_value
               years.

Recurring ranges: when `trigger_value_end` is set and the frequency is not
"once", one milestone is generated per period (monthly = 1, quarterly = 3,
yearly = 12 months) from the start of the range to its end, both inclusive.
A yearly item from age 6 to 18 therefore yields 13 milestones, 12 months
apart.

Savings requirement
-------------------
For a milestone m months after the simulation start:

    monthly_saving_needed = total_cost / max(1, m)

Milestones dated before the simulation start are kept (flagged is_past)
but contribute nothing to the required-saving aggregates.

Example
-------
>>> from datetime import date
>>> template = ChildExpenseTemplate(
...     id="std", name="Standard", is_default=True,
...     items=(ChildExpenseItem("tuition", "Tuition", "age_years", 6,
...                             amount=10_000, frequency="yearly",
...                             trigger_value_end=18),),
... )
>>> projector = ChildExpenseProjector(start_date=date(2025, 1, 1))
>>> proj = projector.project(template, date(2026, 1, 1), date(2045, 1, 1))
>>> len(proj.milestones)
13
>>> proj.milestones[0].date, proj.milestones[-1].date
(datetime.date(2032, 1, 1), datetime.date(2044, 1, 1))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, List, Literal, Mapping, Optional, Sequence, Tuple

import pandas as pd

from .constants import FREQUENCY_MONTHS, MONTHS_PER_YEAR
from .exceptions import InvalidParameterError, UnresolvableTriggerError
from .family import FamilyMember
from .utils import add_months, check_non_negative, month_offset, to_datetime_index

logger = logging.getLogger(__name__)

__all__ = [
    "TriggerType",
    "Frequency",
    "ChildExpenseItem",
    "ChildExpenseTemplate",
    "Milestone",
    "ChildProjection",
    "ChildExpenseProjector",
    "select_template",
    "standard_template",
]

TriggerType = Literal["age_months", "age_years", "event"]
Frequency = Literal["once", "monthly", "quarterly", "yearly"]

_TRIGGER_TYPES = ("age_months", "age_years", "event")
_FREQUENCIES = ("once", "monthly", "quarterly", "yearly")


# ---------------------------------------------------------------------------
# Template Specification
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChildExpenseItem:
    """
    One expense rule of a child-expense template.

    Parameters
    ----------
    id : str
        Item identifier (key for externally supplied event dates).
    name : str
        Display name (e.g., "Kindergarten").
    trigger_type : {"age_months", "age_years", "event"}
        How the milestone date is derived.
    trigger_value : float
        Age at which the expense starts, in the trigger's unit. For
        "event" items this is the nominal age in years, only used by the
        age fallback.
    amount : float
        Cost per occurrence (non-negative).
    frequency : {"once", "monthly", "quarterly", "yearly"}, default "once"
    trigger_value_end : float, optional
        Inclusive end of a recurring range, in the trigger's unit.
    sort_order : int, default 0
        Display order within the template.

    Examples
    --------
    >>> daycare = ChildExpenseItem("daycare", "Daycare", "age_years", 1,
    ...                            amount=3_500, frequency="monthly",
    ...                            trigger_value_end=3)
    >>> len(daycare.age_offsets())
    25
    """
    id: str
    name: str
    trigger_type: TriggerType
    trigger_value: float
    amount: float
    frequency: Frequency = "once"
    trigger_value_end: Optional[float] = None
    sort_order: int = 0

    def __post_init__(self):
        """Validate item parameters."""
        if self.trigger_type not in _TRIGGER_TYPES:
            raise InvalidParameterError(
                f"trigger_type must be one of {_TRIGGER_TYPES}, got {self.trigger_type!r}"
            )
        if self.frequency not in _FREQUENCIES:
            raise InvalidParameterError(
                f"frequency must be one of {_FREQUENCIES}, got {self.frequency!r}"
            )
        check_non_negative(f"trigger_value of item {self.name!r}", self.trigger_value)
        check_non_negative(f"amount of item {self.name!r}", self.amount)
        if self.trigger_value_end is not None and self.trigger_value_end < self.trigger_value:
            raise InvalidParameterError(
                f"trigger_value_end ({self.trigger_value_end}) must be >= "
                f"trigger_value ({self.trigger_value}) for item {self.name!r}"
            )

    @property
    def is_recurring(self) -> bool:
        return self.trigger_value_end is not None and self.frequency != "once"

    def age_offsets(self) -> List[int]:
        """
        Month offsets from birth at which this item falls due.

        Only meaningful for age-based triggers; event items raise
        UnresolvableTriggerError since their date is not derivable from age.
        """
        if self.trigger_type == "event":
            raise UnresolvableTriggerError(
                f"event item {self.name!r} has no age-derived date"
            )
        unit = 1 if self.trigger_type == "age_months" else MONTHS_PER_YEAR
        first = int(round(self.trigger_value * unit))
        if not self.is_recurring:
            return [first]
        last = int(round(self.trigger_value_end * unit))
        step = FREQUENCY_MONTHS[self.frequency]
        return list(range(first, last + 1, step))

    def occurrences(self) -> int:
        """Number of milestones this item expands to (1 for event items)."""
        if self.trigger_type == "event":
            return 1
        return len(self.age_offsets())


@dataclass(frozen=True)
class ChildExpenseTemplate:
    """Named, read-only list of child-expense items."""
    id: str
    name: str
    items: Tuple[ChildExpenseItem, ...] = ()
    is_default: bool = False
    description: str = ""

    @property
    def ordered_items(self) -> List[ChildExpenseItem]:
        """Items by (sort_order, trigger_value)."""
        return sorted(self.items, key=lambda it: (it.sort_order, it.trigger_value))

    def estimated_total(self) -> float:
        """Undiscounted, uninflated cost of every occurrence of every item."""
        return float(sum(it.amount * it.occurrences() for it in self.items))


def select_template(
    member: FamilyMember,
    templates: Sequence[ChildExpenseTemplate],
) -> Optional[ChildExpenseTemplate]:
    """
    Template for a child: the assigned one, else the family default.

    Raises
    ------
    InvalidParameterError
        If member.template_id names a template that is not supplied.
    """
    if member.template_id is not None:
        for template in templates:
            if template.id == member.template_id:
                return template
        raise InvalidParameterError(
            f"member {member.id!r} is assigned unknown template {member.template_id!r}"
        )
    for template in templates:
        if template.is_default:
            return template
    return None


# ---------------------------------------------------------------------------
# Projection Output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Milestone:
    """A dated, costed occurrence of a template item for one child."""
    name: str
    item_id: str
    child_id: str
    date: date
    expected_age: float
    months_until: int
    total_cost: float
    monthly_saving_needed: float
    is_past: bool
    frequency: Frequency = "once"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "item_id": self.item_id,
            "child_id": self.child_id,
            "date": self.date.isoformat(),
            "expected_age": self.expected_age,
            "months_until": self.months_until,
            "total_cost": self.total_cost,
            "monthly_saving_needed": self.monthly_saving_needed,
            "is_past": self.is_past,
            "frequency": self.frequency,
        }


@dataclass(frozen=True)
class ChildProjection:
    """
    All milestones of one child over the horizon.

    Attributes
    ----------
    milestones : tuple of Milestone
        Ordered by date (then template order). Past milestones included.
    unscheduled : tuple of ChildExpenseItem
        Event items whose date could not be resolved. They are not on the
        timeline and do not count toward the totals.
    """
    child_id: str
    child_name: str
    birth_date: date
    is_planned: bool
    template_id: str
    milestones: Tuple[Milestone, ...] = ()
    unscheduled: Tuple[ChildExpenseItem, ...] = ()

    @property
    def upcoming(self) -> List[Milestone]:
        return [m for m in self.milestones if not m.is_past]

    @property
    def total_cost(self) -> float:
        """Cost of all milestones not yet passed."""
        return float(sum(m.total_cost for m in self.upcoming))

    @property
    def total_monthly_needed(self) -> float:
        """Sum of monthly_saving_needed over milestones not yet passed."""
        return float(sum(m.monthly_saving_needed for m in self.upcoming))

    def to_dataframe(self) -> pd.DataFrame:
        """Milestones as a DataFrame indexed by milestone date."""
        rows = [m.to_dict() for m in self.milestones]
        columns = [
            "name", "item_id", "expected_age", "months_until", "total_cost",
            "monthly_saving_needed", "is_past", "frequency",
        ]
        df = pd.DataFrame(rows, columns=["date", "child_id"] + columns)
        df.index = to_datetime_index(m.date for m in self.milestones)
        return df[columns]

    def to_dict(self) -> dict:
        return {
            "child_id": self.child_id,
            "child_name": self.child_name,
            "birth_date": self.birth_date.isoformat(),
            "is_planned": self.is_planned,
            "template_id": self.template_id,
            "milestones": [m.to_dict() for m in self.milestones],
            "unscheduled": [
                {"item_id": it.id, "name": it.name, "amount": it.amount}
                for it in self.unscheduled
            ],
            "total_cost": self.total_cost,
            "total_monthly_needed": self.total_monthly_needed,
        }


# ---------------------------------------------------------------------------
# Date resolution (dispatched once per item on trigger_type)
# ---------------------------------------------------------------------------

_Resolver = Callable[[ChildExpenseItem, date, Mapping[str, date], bool], List[date]]


def _resolve_by_age(
    item: ChildExpenseItem,
    birth_date: date,
    event_dates: Mapping[str, date],
    event_age_fallback: bool,
) -> List[date]:
    return [add_months(birth_date, offset) for offset in item.age_offsets()]


def _resolve_event(
    item: ChildExpenseItem,
    birth_date: date,
    event_dates: Mapping[str, date],
    event_age_fallback: bool,
) -> List[date]:
    if item.id in event_dates:
        return [event_dates[item.id]]
    if event_age_fallback:
        return [add_months(birth_date, int(round(item.trigger_value * MONTHS_PER_YEAR)))]
    raise UnresolvableTriggerError(
        f"no date supplied for event item {item.name!r} ({item.id})"
    )


_TRIGGER_RESOLVERS: Dict[str, _Resolver] = {
    "age_months": _resolve_by_age,
    "age_years": _resolve_by_age,
    "event": _resolve_event,
}


# ---------------------------------------------------------------------------
# Projector
# ---------------------------------------------------------------------------

class ChildExpenseProjector:
    """
    Expands child-expense templates into dated milestones.

    Parameters
    ----------
    start_date : datetime.date
        Simulation start; reference for months_until and is_past.

    Examples
    --------
    >>> projector = ChildExpenseProjector(date(2025, 1, 1))
    >>> proj = projector.project(template, birth_date=date(2020, 5, 1),
    ...                          horizon_end=date(2055, 1, 1),
    ...                          child_id="noa", child_name="Noa")
    >>> proj.total_monthly_needed
    """

    def __init__(self, start_date: date):
        self.start_date = start_date

    def project(
        self,
        template: ChildExpenseTemplate,
        birth_date: date,
        horizon_end: date,
        *,
        child_id: str = "",
        child_name: str = "",
        is_planned: bool = False,
        event_dates: Optional[Mapping[str, date]] = None,
        event_age_fallback: bool = False,
    ) -> ChildProjection:
        """
        Milestones of one child for every item of *template*.

        Parameters
        ----------
        template : ChildExpenseTemplate
        birth_date : datetime.date
            Actual or expected birth date used for age triggers.
        horizon_end : datetime.date
            Milestones in a later calendar month are dropped.
        child_id, child_name : str
            Labels carried into the milestones.
        is_planned : bool
            Whether the child is not yet born.
        event_dates : Mapping[str, date], optional
            Externally supplied dates for event items, keyed by item id.
        event_age_fallback : bool, default False
            Resolve undated event items at birth + trigger_value years.

        Returns
        -------
        ChildProjection
        """
        event_dates = event_dates or {}
        horizon_key = (horizon_end.year, horizon_end.month)

        keyed: List[Tuple[date, int, Milestone]] = []
        unscheduled: List[ChildExpenseItem] = []

        for order, item in enumerate(template.ordered_items):
            resolver = _TRIGGER_RESOLVERS[item.trigger_type]
            try:
                dates = resolver(item, birth_date, event_dates, event_age_fallback)
            except UnresolvableTriggerError as e:
                logger.debug("Unscheduled child expense for %s: %s", child_id or child_name, e)
                unscheduled.append(item)
                continue

            for when in dates:
                if (when.year, when.month) > horizon_key:
                    continue
                keyed.append((when, order, self._milestone(item, when, birth_date, child_id)))

        keyed.sort(key=lambda entry: (entry[0], entry[1]))
        return ChildProjection(
            child_id=child_id,
            child_name=child_name,
            birth_date=birth_date,
            is_planned=is_planned,
            template_id=template.id,
            milestones=tuple(m for _, _, m in keyed),
            unscheduled=tuple(unscheduled),
        )

    def project_member(
        self,
        member: FamilyMember,
        templates: Sequence[ChildExpenseTemplate],
        horizon_end: date,
        *,
        event_dates: Optional[Mapping[str, date]] = None,
        event_age_fallback: bool = False,
    ) -> Optional[ChildProjection]:
        """
        Project a child member with its assigned (or default) template.

        Returns None, with a logged warning, when the member has no usable
        birth date or no template applies.
        """
        birth_date = member.reference_birth_date
        if birth_date is None:
            logger.warning(
                "Skipping child %r: neither birth_date nor expected_birth_date is set",
                member.id,
            )
            return None
        template = select_template(member, templates)
        if template is None:
            logger.warning("Skipping child %r: no assigned or default template", member.id)
            return None
        return self.project(
            template,
            birth_date,
            horizon_end,
            child_id=member.id,
            child_name=member.name,
            is_planned=member.is_planned,
            event_dates=event_dates,
            event_age_fallback=event_age_fallback,
        )

    def _milestone(
        self,
        item: ChildExpenseItem,
        when: date,
        birth_date: date,
        child_id: str,
    ) -> Milestone:
        months_until = month_offset(self.start_date, when)
        is_past = when < self.start_date
        saving = 0.0 if is_past else item.amount / max(1, months_until)
        return Milestone(
            name=item.name,
            item_id=item.id,
            child_id=child_id,
            date=when,
            expected_age=round(month_offset(birth_date, when) / MONTHS_PER_YEAR, 2),
            months_until=months_until,
            total_cost=float(item.amount),
            monthly_saving_needed=float(saving),
            is_past=is_past,
            frequency=item.frequency,
        )


# ---------------------------------------------------------------------------
# Built-in template
# ---------------------------------------------------------------------------

def standard_template(template_id: str = "standard") -> ChildExpenseTemplate:
    """
    Default child-expense template seeded for a new family.

    Amounts are in today's money. Event items (coming of age, graduation
    trip, wedding) need a date via `event_dates` or the age fallback.
    """
    items = (
        ChildExpenseItem("birth", "Birth and initial equipment", "age_months", 0,
                         amount=10_000, sort_order=1),
        ChildExpenseItem("first_year", "Monthly expenses (first year)", "age_months", 1,
                         amount=3_000, frequency="monthly", trigger_value_end=12, sort_order=2),
        ChildExpenseItem("daycare", "Daycare", "age_years", 1,
                         amount=3_500, frequency="monthly", trigger_value_end=3, sort_order=3),
        ChildExpenseItem("kindergarten", "Kindergarten", "age_years", 3,
                         amount=1_500, frequency="monthly", trigger_value_end=6, sort_order=4),
        ChildExpenseItem("primary_school", "Primary school", "age_years", 6,
                         amount=1_000, frequency="monthly", trigger_value_end=12, sort_order=5),
        ChildExpenseItem("coming_of_age", "Coming-of-age celebration", "event", 13,
                         amount=15_000, sort_order=6),
        ChildExpenseItem("high_school", "High school", "age_years", 13,
                         amount=1_200, frequency="monthly", trigger_value_end=18, sort_order=7),
        ChildExpenseItem("graduation_trip", "Graduation trip", "event", 18,
                         amount=10_000, sort_order=8),
        ChildExpenseItem("service", "Military / national service", "age_years", 18,
                         amount=500, frequency="monthly", trigger_value_end=21, sort_order=9),
        ChildExpenseItem("degree", "Bachelor's degree", "age_years", 21,
                         amount=3_000, frequency="monthly", trigger_value_end=24, sort_order=10),
        ChildExpenseItem("wedding", "Wedding", "event", 25,
                         amount=250_000, sort_order=11),
    )
    return ChildExpenseTemplate(
        id=template_id,
        name="Standard",
        items=items,
        is_default=True,
        description="Typical costs from birth to wedding",
    )
