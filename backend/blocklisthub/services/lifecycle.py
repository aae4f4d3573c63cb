"""Indicator lifecycle engine — add / deactivate / reactivate / edit / list.

One engine instance serves one indicator kind. It validates the raw value,
resolves the operator, runs the pure state machine from
:mod:`blocklisthub.services.transitions`, persists the result and appends
exactly one audit entry per state change. Every outcome, including store
failures, comes back as a single status line; nothing is raised to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol, Sequence

from blocklisthub.core.audit import AuditEntry
from blocklisthub.core.indicator import DuplicateIndicatorError, Indicator
from blocklisthub.core.kinds import IndicatorKind
from blocklisthub.core.status import StatusMarker
from blocklisthub.services.transitions import (
    Command,
    Outcome,
    Transition,
    apply_transition,
)

logger = logging.getLogger(__name__)


# ── Collaborators ─────────────────────────────────────────────────────


class IndicatorStore(Protocol):
    async def find_by_canonical_value(self, value: str) -> Optional[Indicator]: ...

    async def find_active_ordered(self) -> Sequence[Indicator]: ...

    async def find_all(self) -> Sequence[Indicator]: ...

    async def save(self, indicator: Indicator) -> Indicator: ...


class AuditRecorder(Protocol):
    async def append(self, entry: AuditEntry) -> int: ...


class ActorResolver(Protocol):
    async def resolve_actor(self, slack_user_id: str, team_id: Optional[str] = None) -> int: ...


# ── Results ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class OperationResult:
    outcome: Outcome
    message: str
    indicator: Optional[Indicator] = None
    error: Optional[str] = None

    def __str__(self) -> str:
        return self.message


_ERROR_VERBS = {
    Command.ADD: "adding",
    Command.DEACTIVATE: "deactivating",
    Command.REACTIVATE: "reactivating",
    Command.EDIT: "editing",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LifecycleEngine:
    def __init__(
        self,
        kind: IndicatorKind,
        store: IndicatorStore,
        audit: AuditRecorder,
        operators: ActorResolver,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.kind = kind
        self.store = store
        self.audit = audit
        self.operators = operators
        self.clock = clock

    # ── Public operations ─────────────────────────────────────────────

    async def add(self, slack_user_id: str, team_id: str | None, raw: str, reason: str | None = None) -> str:
        return (await self.execute(Command.ADD, slack_user_id, team_id, raw, reason)).message

    async def deactivate(self, slack_user_id: str, team_id: str | None, raw: str, reason: str | None = None) -> str:
        return (await self.execute(Command.DEACTIVATE, slack_user_id, team_id, raw, reason)).message

    async def reactivate(self, slack_user_id: str, team_id: str | None, raw: str, reason: str | None = None) -> str:
        return (await self.execute(Command.REACTIVATE, slack_user_id, team_id, raw, reason)).message

    async def edit(self, slack_user_id: str, team_id: str | None, raw: str, new_reason: str | None = None) -> str:
        return (await self.execute(Command.EDIT, slack_user_id, team_id, raw, new_reason)).message

    async def list(self, only_active: bool = True, limit: int = 0) -> str:
        """Code block of values ordered by canonical value, truncated to ``limit`` (<= 0: all)."""
        try:
            records = await (self.store.find_active_ordered() if only_active else self.store.find_all())
        except Exception as e:
            logger.error("Error listing %s: %s", self.kind.plural, e, exc_info=True)
            return f"{StatusMarker.ERROR} Error retrieving list: {e}"

        values = sorted(r.value for r in records)
        if limit > 0:
            values = values[:limit]
        if not values:
            return f"_(no {self.kind.plural} found)_"
        return "```\n" + "\n".join(values) + "\n```"

    async def active_values(self) -> list[str]:
        """Active canonical values, ascending. Read failures propagate."""
        records = await self.store.find_active_ordered()
        return sorted(r.value for r in records)

    # ── Engine core ───────────────────────────────────────────────────

    async def execute(
        self,
        command: Command,
        slack_user_id: str,
        team_id: str | None,
        raw: str,
        reason: str | None = None,
    ) -> OperationResult:
        """Validate, resolve the operator, then apply ``command``."""
        canonical = self.kind.normalize(raw)
        if not self.kind.is_valid(canonical):
            return self._invalid(raw)

        try:
            actor_id = await self.operators.resolve_actor(slack_user_id, team_id)
            return await self._apply(command, actor_id, canonical, reason)
        except Exception as e:
            return self._failed(command, canonical, e, slack_user_id)

    async def apply_as(
        self, command: Command, actor_id: int, raw: str, reason: str | None = None
    ) -> OperationResult:
        """Same as :meth:`execute` for an operator that is already resolved."""
        canonical = self.kind.normalize(raw)
        if not self.kind.is_valid(canonical):
            return self._invalid(raw)
        try:
            return await self._apply(command, actor_id, canonical, reason)
        except Exception as e:
            return self._failed(command, canonical, e, actor_id)

    async def _apply(
        self,
        command: Command,
        actor_id: int,
        canonical: str,
        reason: str | None,
        retry_on_conflict: bool = True,
    ) -> OperationResult:
        found = await self.store.find_by_canonical_value(canonical)
        transition = apply_transition(
            found,
            command,
            canonical,
            self.kind.lookup_key(canonical),
            reason,
            actor_id,
            self.clock(),
        )
        if not transition.mutates:
            return OperationResult(transition.outcome, self._message(transition.outcome, canonical), found)

        try:
            saved = await self.store.save(transition.record)
        except DuplicateIndicatorError:
            if not retry_on_conflict:
                raise
            # another writer created the record between lookup and insert
            logger.info("Lost insert race for %s %s, re-reading", self.kind.label, canonical)
            return await self._apply(command, actor_id, canonical, reason, retry_on_conflict=False)

        await self._record(transition, saved, actor_id)
        return OperationResult(transition.outcome, self._message(transition.outcome, canonical), saved)

    async def _record(self, transition: Transition, saved: Indicator, actor_id: int) -> None:
        await self.audit.append(
            AuditEntry(
                ioc_type=self.kind.ioc_type.value,
                indicator_id=saved.id,
                action=transition.action,
                actor_user_id=actor_id,
                prev_value=transition.prev_value,
                new_value=transition.new_value,
            )
        )

    # ── Messages ──────────────────────────────────────────────────────

    def _message(self, outcome: Outcome, value: str) -> str:
        label = self.kind.label
        if outcome is Outcome.ADDED:
            return f"{StatusMarker.SUCCESS} Added `{value}`"
        if outcome is Outcome.REACTIVATED:
            return f"{StatusMarker.SUCCESS} Reactivated `{value}`"
        if outcome is Outcome.DEACTIVATED:
            return f"{StatusMarker.SUCCESS} Deactivated `{value}`"
        if outcome is Outcome.UPDATED:
            return f"{StatusMarker.SUCCESS} Updated `{value}` reason"
        if outcome is Outcome.ALREADY_ACTIVE:
            return f"{StatusMarker.INFO} {label} already active: `{value}`"
        if outcome is Outcome.ALREADY_INACTIVE:
            return f"{StatusMarker.INFO} {label} already inactive: `{value}`"
        if outcome is Outcome.NOT_FOUND:
            return f"{StatusMarker.WARNING} {label} not found: `{value}`"
        raise ValueError(f"No message for outcome {outcome}")

    def _invalid(self, raw: str | None) -> OperationResult:
        return OperationResult(
            Outcome.INVALID, f"{StatusMarker.WARNING} Invalid {self.kind.label}: `{raw or ''}`"
        )

    def _failed(self, command: Command, value: str, exc: Exception, who) -> OperationResult:
        verb = _ERROR_VERBS[command]
        logger.error(
            "Failed %s %s %s by %s: %s", verb, self.kind.label, value, who, exc, exc_info=True
        )
        return OperationResult(
            Outcome.ERROR,
            f"{StatusMarker.ERROR} Error while {verb} `{value}`: {exc}",
            error=str(exc),
        )
