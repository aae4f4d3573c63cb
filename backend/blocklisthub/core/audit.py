from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Any, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blocklisthub.db.models import IocAuditLog

logger = logging.getLogger(__name__)


def _type_name(ioc_type) -> str:
    return getattr(ioc_type, "value", ioc_type)


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DEACTIVATE = "DEACTIVATE"
    REACTIVATE = "REACTIVATE"


@dataclass(frozen=True)
class AuditEntry:
    ioc_type: str
    indicator_id: int
    action: AuditAction
    actor_user_id: Optional[int]
    prev_value: Optional[dict[str, Any]] = None
    new_value: Optional[dict[str, Any]] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class IocAuditRecorder:
    """Append-only writer for the IoC audit trail.

    Failures are not swallowed here: a lost audit entry must surface to the
    caller, which reports it as an error for the command.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def append(self, entry: AuditEntry) -> int:
        """
        Persist one audit entry

        Args:
            entry: The mutation to record (before/after fragments of changed fields only)

        Returns:
            ID of the stored audit row
        """
        async with self._session_factory() as session:
            row = IocAuditLog(
                ioc_type=_type_name(entry.ioc_type),
                indicator_id=entry.indicator_id,
                action=entry.action.value,
                actor_user_id=entry.actor_user_id,
                prev_value=entry.prev_value,
                new_value=entry.new_value,
                created_at=entry.created_at,
            )
            session.add(row)
            await session.commit()

        logger.debug(
            "Audit [%s] for %s#%s by user %s",
            entry.action.value, entry.ioc_type, entry.indicator_id, entry.actor_user_id,
        )
        return row.id

    async def history(self, ioc_type: str, indicator_id: int) -> Sequence[IocAuditLog]:
        """All entries for one indicator, oldest first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(IocAuditLog)
                .where(IocAuditLog.ioc_type == _type_name(ioc_type))
                .where(IocAuditLog.indicator_id == indicator_id)
                .order_by(IocAuditLog.id)
            )
            return result.scalars().all()
