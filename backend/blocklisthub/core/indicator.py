"""Plain value object for one indicator record, independent of the ORM."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Indicator:
    value: str
    lookup_key: str
    reason: Optional[str] = None
    active: bool = True
    id: Optional[int] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deactivated_by: Optional[int] = None
    deactivated_at: Optional[datetime] = None


class DuplicateIndicatorError(Exception):
    """Insert rejected because another record already owns the lookup key."""

    def __init__(self, lookup_key: str):
        super().__init__(f"indicator with key {lookup_key!r} already exists")
        self.lookup_key = lookup_key
