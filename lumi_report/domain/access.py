"""Role-based viewer scope applied before reconciliation."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Iterable, Mapping, Sequence

from lumi_report.domain.models import ActualOrderRecord, MarketingActivityRecord
from lumi_report.domain.names import DEFAULT_NORMALIZER
from lumi_report.domain.reconciliation import KeyFn

ROLES: tuple[str, ...] = ("admin", "leader", "user")
EMPLOYEE_EMAIL_KEYS = ("Email", "email", "EMAIL")
EMPLOYEE_TEAM_KEYS = ("Team", "team", "Chi nhánh", "Chi nhanh")


@dataclass(frozen=True)
class Viewer:
    role: str = "user"
    team: str = ""
    email: str = ""

    def __post_init__(self) -> None:
        role = str(self.role or "").strip().lower()
        object.__setattr__(self, "role", role if role in ROLES else "user")
        object.__setattr__(self, "team", str(self.team or "").strip())
        object.__setattr__(self, "email", str(self.email or "").strip().lower())

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def apply_access_scope(
    marketing_records: Sequence[MarketingActivityRecord],
    actual_records: Sequence[ActualOrderRecord],
    viewer: Viewer,
    key_fn: KeyFn = DEFAULT_NORMALIZER,
) -> tuple[list[MarketingActivityRecord], list[ActualOrderRecord]]:
    if viewer.is_admin:
        return list(marketing_records), list(actual_records)

    if viewer.role == "leader":
        allowed = [record for record in marketing_records if viewer.team and record.team.strip() == viewer.team]
    elif viewer.email:
        allowed = [record for record in marketing_records if record.email.strip().lower() == viewer.email]
    else:
        allowed = []

    allowed_names = {key_fn(record.staff_name) for record in allowed}
    orders = [record for record in actual_records if record.staff_name and key_fn(record.staff_name) in allowed_names]
    return allowed, orders


def _first_text(row: Mapping[str, Any], keys: Sequence[str]) -> str:
    for key in keys:
        value = row.get(key)
        if value not in (None, ""):
            return str(value).strip()
    return ""


def resolve_leader_team(viewer: Viewer, employees: Iterable[Mapping[str, Any]]) -> Viewer:
    """Take a leader's team from the staff directory, keeping the given team when not listed."""
    if viewer.role != "leader" or not viewer.email:
        return viewer
    for employee in employees:
        if _first_text(employee, EMPLOYEE_EMAIL_KEYS).lower() != viewer.email:
            continue
        team = _first_text(employee, EMPLOYEE_TEAM_KEYS)
        if team:
            return replace(viewer, team=team)
        break
    return viewer
