"""Bulk coordinator — applies ``add`` to many indicators in one command.

Items run through the lifecycle engine with a fixed concurrency ceiling.
Each item lands in exactly one bucket; a failing item never aborts its
siblings, and the report lists items in submission order.
"""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field

from blocklisthub.config import settings
from blocklisthub.core.status import StatusMarker
from blocklisthub.services.lifecycle import LifecycleEngine, OperationResult
from blocklisthub.services.transitions import Command, Outcome

logger = logging.getLogger(__name__)

# Report buckets, in display order
BUCKETS: tuple[tuple[Outcome, str], ...] = (
    (Outcome.ADDED, "Added"),
    (Outcome.REACTIVATED, "Reactivated"),
    (Outcome.ALREADY_ACTIVE, "Already active"),
    (Outcome.INVALID, "Invalid"),
    (Outcome.ERROR, "Errors"),
)


def parse_value_list(csv: str | None) -> list[str]:
    """Split a comma-separated list: trim, drop blanks, keep first occurrences."""
    if not csv or not csv.strip():
        return []
    seen: set[str] = set()
    values: list[str] = []
    for token in csv.split(","):
        token = token.strip()
        if token and token not in seen:
            seen.add(token)
            values.append(token)
    return values


@dataclass
class BulkItem:
    value: str
    outcome: Outcome
    detail: str = ""

    @property
    def line(self) -> str:
        if self.outcome is Outcome.ADDED:
            return f"{StatusMarker.SUCCESS} Added `{self.value}`"
        if self.outcome is Outcome.REACTIVATED:
            return f"{StatusMarker.SUCCESS} Reactivated `{self.value}`"
        if self.outcome is Outcome.ALREADY_ACTIVE:
            return f"{StatusMarker.INFO} Already active `{self.value}`"
        if self.outcome is Outcome.INVALID:
            return f"{StatusMarker.WARNING} Invalid `{self.value}`"
        return f"{StatusMarker.ERROR} Error `{self.value}`: {self.detail}"


@dataclass
class BulkReport:
    items: list[BulkItem] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def counts(self) -> Counter:
        return Counter(item.outcome for item in self.items)

    def count(self, outcome: Outcome) -> int:
        return self.counts.get(outcome, 0)

    @property
    def marker(self) -> StatusMarker:
        if self.count(Outcome.ERROR):
            return StatusMarker.ERROR
        if self.count(Outcome.INVALID):
            return StatusMarker.WARNING
        return StatusMarker.SUCCESS

    def render(self) -> str:
        counts = self.counts
        lines = [f"{self.marker} *Bulk result overview*"]
        lines.append(f"• Total requested: {self.total}")
        for outcome, title in BUCKETS:
            lines.append(f"• {title}: {counts.get(outcome, 0)}")
        lines.append("")
        lines.append("*Details:*")
        lines.extend(f"• {item.line}" for item in self.items)
        return "\n".join(lines) + "\n"


class BulkCoordinator:
    def __init__(
        self,
        engine: LifecycleEngine,
        max_items: int | None = None,
        concurrency: int | None = None,
    ):
        self.engine = engine
        self.max_items = max_items if max_items is not None else settings.BULK_MAX_ITEMS
        self.concurrency = concurrency if concurrency is not None else settings.BULK_CONCURRENCY

    def prepare(self, values: list[str]) -> list[str]:
        """Collapse entries that normalize to the same indicator; first one wins."""
        kind = self.engine.kind
        seen: set[str] = set()
        unique: list[str] = []
        for value in values:
            key = kind.dedup_key(value)
            if key not in seen:
                seen.add(key)
                unique.append(value)
        return unique

    async def bulk_add(
        self, slack_user_id: str, team_id: str | None, csv: str | None, reason: str | None = None
    ) -> str:
        values = self.prepare(parse_value_list(csv))
        plural = self.engine.kind.plural

        if not values:
            return f"{StatusMarker.WARNING} No {plural} provided for bulk operation."
        if len(values) > self.max_items:
            return (
                f"{StatusMarker.WARNING} Bulk limit exceeded. "
                f"Max {self.max_items} {plural} allowed per bulk."
            )

        try:
            actor_id = await self.engine.operators.resolve_actor(slack_user_id, team_id)
        except Exception as e:
            logger.error("Bulk add failed for user %s: %s", slack_user_id, e, exc_info=True)
            return f"{StatusMarker.ERROR} Bulk operation failed: {e}"

        report = await self.run(actor_id, values, reason)
        logger.info(
            "Bulk add %s: total=%d %s",
            self.engine.kind.label,
            report.total,
            " ".join(f"{o.value}={n}" for o, n in report.counts.items()),
        )
        return report.render()

    async def run(self, actor_id: int, values: list[str], reason: str | None) -> BulkReport:
        """Apply ``add`` to every value; results come back in input order."""
        sem = asyncio.Semaphore(self.concurrency)

        async def _add_one(value: str) -> BulkItem:
            async with sem:
                try:
                    result: OperationResult = await self.engine.apply_as(
                        Command.ADD, actor_id, value, reason
                    )
                except Exception as e:
                    logger.error("Error handling %s in bulk: %s", value, e, exc_info=True)
                    return BulkItem(value, Outcome.ERROR, str(e))
                return _to_item(value, result)

        items = await asyncio.gather(*[_add_one(v) for v in values])
        return BulkReport(items=list(items))


def _to_item(value: str, result: OperationResult) -> BulkItem:
    if result.outcome is Outcome.ERROR:
        return BulkItem(value, Outcome.ERROR, result.error or result.message)
    if result.outcome in (Outcome.ADDED, Outcome.REACTIVATED, Outcome.ALREADY_ACTIVE, Outcome.INVALID):
        return BulkItem(value, result.outcome)
    return BulkItem(value, Outcome.ERROR, f"unexpected outcome {result.outcome.value}")
