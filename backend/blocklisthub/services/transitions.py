"""Indicator state machine as pure functions.

``apply_transition(record, command, ...)`` never touches the store: it returns
the record to persist (if any) together with the audit delta describing the
change, so the whole table below can be tested without I/O.

    command      absent            active                  inactive
    add          -> active CREATE   no-op (already active)  -> active REACTIVATE
    deactivate   not found          -> inactive DEACTIVATE  no-op (already inactive)
    reactivate   not found          no-op (already active)  -> active REACTIVATE
    edit         not found          reason only UPDATE      reason only UPDATE
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from blocklisthub.core.audit import AuditAction
from blocklisthub.core.indicator import Indicator

# Fields whose before/after values are written to the audit log
AUDITED_FIELDS = ("active", "reason")


class Command(str, Enum):
    ADD = "add"
    DEACTIVATE = "deactivate"
    REACTIVATE = "reactivate"
    EDIT = "edit"


class Outcome(str, Enum):
    ADDED = "added"
    REACTIVATED = "reactivated"
    DEACTIVATED = "deactivated"
    UPDATED = "updated"
    ALREADY_ACTIVE = "already_active"
    ALREADY_INACTIVE = "already_inactive"
    NOT_FOUND = "not_found"
    INVALID = "invalid"
    ERROR = "error"


@dataclass(frozen=True)
class Transition:
    outcome: Outcome
    record: Optional[Indicator] = None          # record to persist; None for no-ops
    action: Optional[AuditAction] = None
    prev_value: Optional[dict[str, Any]] = None
    new_value: Optional[dict[str, Any]] = None

    @property
    def mutates(self) -> bool:
        return self.record is not None


def audit_delta(
    before: Indicator, after: Indicator, always: tuple[str, ...] = ()
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Before/after fragments limited to the audited fields that changed."""
    prev: dict[str, Any] = {}
    new: dict[str, Any] = {}
    for name in AUDITED_FIELDS:
        old_val = getattr(before, name)
        new_val = getattr(after, name)
        if old_val != new_val or name in always:
            prev[name] = old_val
            new[name] = new_val
    return prev, new


def _has_text(value: Optional[str]) -> bool:
    return value is not None and bool(value.strip())


def _create(value: str, lookup_key: str, reason: Optional[str], actor_id: int, now: datetime) -> Transition:
    record = Indicator(
        value=value,
        lookup_key=lookup_key,
        reason=reason,
        active=True,
        created_by=actor_id,
        created_at=now,
        updated_at=now,
    )
    return Transition(
        outcome=Outcome.ADDED,
        record=record,
        action=AuditAction.CREATE,
        prev_value=None,
        new_value={"value": value, "reason": reason, "active": True},
    )


def _reactivate(found: Indicator, reason: Optional[str], now: datetime) -> Transition:
    after = replace(
        found,
        active=True,
        reason=reason,
        updated_at=now,
        deactivated_by=None,
        deactivated_at=None,
    )
    prev, new = audit_delta(found, after)
    return Transition(Outcome.REACTIVATED, after, AuditAction.REACTIVATE, prev, new)


def apply_transition(
    found: Optional[Indicator],
    command: Command,
    value: str,
    lookup_key: str,
    reason: Optional[str],
    actor_id: int,
    now: datetime,
) -> Transition:
    """Compute the next state of one indicator for ``command``.

    ``found`` is the current record (``None`` when absent). ``value`` and
    ``lookup_key`` are only used when a new record is created.
    """
    if command is Command.ADD:
        if found is None:
            return _create(value, lookup_key, reason, actor_id, now)
        if found.active:
            return Transition(Outcome.ALREADY_ACTIVE)
        # add on an inactive record replaces the reason, even with none
        return _reactivate(found, reason, now)

    if found is None:
        return Transition(Outcome.NOT_FOUND)

    if command is Command.DEACTIVATE:
        if not found.active:
            return Transition(Outcome.ALREADY_INACTIVE)
        after = replace(
            found,
            active=False,
            reason=reason if _has_text(reason) else found.reason,
            updated_at=now,
            deactivated_by=actor_id,
            deactivated_at=now,
        )
        prev, new = audit_delta(found, after)
        return Transition(Outcome.DEACTIVATED, after, AuditAction.DEACTIVATE, prev, new)

    if command is Command.REACTIVATE:
        if found.active:
            return Transition(Outcome.ALREADY_ACTIVE)
        return _reactivate(found, reason if _has_text(reason) else found.reason, now)

    if command is Command.EDIT:
        after = replace(found, reason=reason, updated_at=now)
        prev, new = audit_delta(found, after, always=("reason",))
        return Transition(Outcome.UPDATED, after, AuditAction.UPDATE, prev, new)

    raise ValueError(f"Unsupported command: {command}")
