"""Indicator repository — lookup and upsert for the four indicator tables."""

import logging
from typing import Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blocklisthub.core.indicator import DuplicateIndicatorError, Indicator
from blocklisthub.core.kinds import IndicatorKind, IocType
from blocklisthub.db.models import (
    DomainIndicator,
    HashIndicator,
    IndicatorColumns,
    IpAddress,
    UrlIndicator,
)

logger = logging.getLogger(__name__)

MODELS: dict[IocType, type] = {
    IocType.IP: IpAddress,
    IocType.HASH: HashIndicator,
    IocType.DOMAIN: DomainIndicator,
    IocType.URL: UrlIndicator,
}


def _to_indicator(row: IndicatorColumns) -> Indicator:
    return Indicator(
        id=row.id,
        value=row.value,
        lookup_key=row.lookup_key,
        reason=row.reason,
        active=row.active,
        created_by=row.created_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
        deactivated_by=row.deactivated_by,
        deactivated_at=row.deactivated_at,
    )


class IndicatorRepository:
    """Store adapter for one indicator kind.

    Every call opens its own short-lived session, so concurrent bulk
    sub-tasks never share a session. Uniqueness of the lookup key is enforced
    by the table; a losing insert raises :class:`DuplicateIndicatorError`.
    """

    def __init__(self, kind: IndicatorKind, session_factory: async_sessionmaker[AsyncSession]):
        self.kind = kind
        self.model = MODELS[kind.ioc_type]
        self._session_factory = session_factory

    async def find_by_canonical_value(self, value: str) -> Indicator | None:
        key = self.kind.lookup_key(value)
        async with self._session_factory() as session:
            result = await session.execute(
                select(self.model).where(self.model.lookup_key == key)
            )
            row = result.scalar_one_or_none()
            return _to_indicator(row) if row else None

    async def find_active_ordered(self) -> Sequence[Indicator]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(self.model)
                .where(self.model.active.is_(True))
                .order_by(self.model.value.asc())
            )
            return [_to_indicator(r) for r in result.scalars().all()]

    async def find_all(self) -> Sequence[Indicator]:
        async with self._session_factory() as session:
            result = await session.execute(select(self.model).order_by(self.model.value.asc()))
            return [_to_indicator(r) for r in result.scalars().all()]

    async def save(self, indicator: Indicator) -> Indicator:
        """Insert when ``indicator.id`` is unset, otherwise update by id."""
        async with self._session_factory() as session:
            if indicator.id is None:
                row = self.model(
                    value=indicator.value,
                    lookup_key=indicator.lookup_key,
                    reason=indicator.reason,
                    active=indicator.active,
                    created_by=indicator.created_by,
                    created_at=indicator.created_at,
                    updated_at=indicator.updated_at,
                    deactivated_by=indicator.deactivated_by,
                    deactivated_at=indicator.deactivated_at,
                )
                session.add(row)
                try:
                    await session.commit()
                except IntegrityError as exc:
                    await session.rollback()
                    raise DuplicateIndicatorError(indicator.lookup_key) from exc
                return _to_indicator(row)

            await session.execute(
                update(self.model)
                .where(self.model.id == indicator.id)
                .values(
                    reason=indicator.reason,
                    active=indicator.active,
                    updated_at=indicator.updated_at,
                    deactivated_by=indicator.deactivated_by,
                    deactivated_at=indicator.deactivated_at,
                )
            )
            await session.commit()
            return indicator
