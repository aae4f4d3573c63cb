"""SQLAlchemy ORM models for BlocklistHub.

All persistent entities: the four indicator tables, the shared IoC audit log,
Slack operators, and the channel whitelist.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Integer,
    String,
    Text,
    JSON,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from .engine import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Indicators ─────────────────────────────────────────────────────────


class IndicatorColumns:
    """Columns shared by every indicator table.

    ``lookup_key`` is the comparison key used for uniqueness: the packed
    address in hex for IPs, the canonical value for everything else.
    """

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    value: Mapped[str] = mapped_column(String(2048), nullable=False)
    lookup_key: Mapped[str] = mapped_column(String(2048), unique=True, nullable=False, index=True)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    deactivated_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    deactivated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class IpAddress(IndicatorColumns, Base):
    __tablename__ = "ip_addresses"

    __table_args__ = (
        Index("ix_ip_addresses_active_value", "active", "value"),
    )


class HashIndicator(IndicatorColumns, Base):
    __tablename__ = "hash_indicators"

    __table_args__ = (
        Index("ix_hash_indicators_active_value", "active", "value"),
    )


class DomainIndicator(IndicatorColumns, Base):
    __tablename__ = "domain_indicators"

    __table_args__ = (
        Index("ix_domain_indicators_active_value", "active", "value"),
    )


class UrlIndicator(IndicatorColumns, Base):
    __tablename__ = "url_indicators"

    __table_args__ = (
        Index("ix_url_indicators_active_value", "active", "value"),
    )


# ── Audit ──────────────────────────────────────────────────────────────


class IocAuditLog(Base):
    """Append-only before/after record of one indicator mutation."""
    __tablename__ = "ioc_audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ioc_type: Mapped[str] = mapped_column(String(16), nullable=False)  # IP | HASH | DOMAIN | URL
    indicator_id: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[str] = mapped_column(String(16), nullable=False)  # CREATE | UPDATE | DEACTIVATE | REACTIVATE
    actor_user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    prev_value: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    new_value: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        Index("ix_ioc_audit_log_indicator", "ioc_type", "indicator_id"),
    )


# ── Slack ──────────────────────────────────────────────────────────────


class SlackUser(Base):
    __tablename__ = "slack_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    slack_user_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    team_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    real_name: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )


class SlackChannelWhitelist(Base):
    __tablename__ = "slack_channel_whitelist"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    channel_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    channel_name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    team_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )
