"""
Family member snapshots.

A FamilyMember carries what the engine needs from the family store:
member type, birth (or expected birth) date, the assigned child-expense
template and the member's income history.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Literal, Optional, Tuple

from .constants import INCOME_MEMBER_TYPES, MEMBER_TYPES
from .exceptions import InvalidParameterError
from .income import IncomeRecord

__all__ = ["FamilyMember", "MemberType"]

MemberType = Literal["self", "spouse", "child", "planned_child"]


@dataclass(frozen=True)
class FamilyMember:
    """
    One member of the family.

    Parameters
    ----------
    id : str
        Stable member identifier.
    name : str
        Display name (used in milestone event strings).
    member_type : {"self", "spouse", "child", "planned_child"}
    birth_date : datetime.date, optional
        Known birth date.
    expected_birth_date : datetime.date, optional
        Expected birth date for planned children.
    template_id : str, optional
        Child-expense template assigned to this child. When None the
        family's default template applies.
    income_history : tuple of IncomeRecord
        Dated income records for this member.
    """
    id: str
    name: str
    member_type: MemberType
    birth_date: Optional[date] = None
    expected_birth_date: Optional[date] = None
    template_id: Optional[str] = None
    income_history: Tuple[IncomeRecord, ...] = ()

    def __post_init__(self):
        if self.member_type not in MEMBER_TYPES:
            raise InvalidParameterError(
                f"member_type must be one of {MEMBER_TYPES}, got {self.member_type!r}"
            )
        for record in self.income_history:
            if record.member_id != self.id:
                raise InvalidParameterError(
                    f"income record for {record.member_id!r} attached to member {self.id!r}"
                )

    @property
    def is_child(self) -> bool:
        return self.member_type in ("child", "planned_child")

    @property
    def is_planned(self) -> bool:
        return self.member_type == "planned_child"

    @property
    def earns_income(self) -> bool:
        return self.member_type in INCOME_MEMBER_TYPES

    @property
    def reference_birth_date(self) -> Optional[date]:
        """Birth date used for age-based triggers (expected date as fallback)."""
        return self.birth_date or self.expected_birth_date
