"""Indicator kinds and the capability set each one plugs into the engine."""

from dataclasses import dataclass
from enum import Enum
from typing import Callable

from blocklisthub.config import settings
from blocklisthub.services import normalizer


class IocType(str, Enum):
    IP = "IP"
    HASH = "HASH"
    DOMAIN = "DOMAIN"
    URL = "URL"


@dataclass(frozen=True)
class IndicatorKind:
    """Everything that differs between ``/ip``, ``/hash``, ``/domain`` and ``/url``."""

    ioc_type: IocType
    label: str                      # shown in messages: "IP", "HASH", ...
    plural: str                     # "IPs", "hashes", ...
    command: str                    # slash command, e.g. "/ip"
    export_name: str                # published file name, e.g. "ips.txt"
    normalize: Callable[[str | None], str]
    is_valid: Callable[[str | None], bool]
    key: Callable[[str], str]       # canonical value -> uniqueness key
    list_limit: int

    def lookup_key(self, canonical: str) -> str:
        return self.key(canonical)

    def dedup_key(self, raw: str) -> str:
        """Key used to collapse bulk duplicates; invalid tokens stay literal."""
        canonical = self.normalize(raw)
        if self.is_valid(canonical):
            return self.lookup_key(canonical)
        return raw


def _identity(value: str) -> str:
    return value


IP = IndicatorKind(
    ioc_type=IocType.IP,
    label="IP",
    plural="IPs",
    command="/ip",
    export_name="ips.txt",
    normalize=normalizer.normalize_ip,
    is_valid=normalizer.is_valid_ip,
    key=normalizer.ip_lookup_key,
    list_limit=settings.LIST_LIMIT_IP,
)

HASH = IndicatorKind(
    ioc_type=IocType.HASH,
    label="HASH",
    plural="hashes",
    command="/hash",
    export_name="hashes.txt",
    normalize=normalizer.normalize_hash,
    is_valid=normalizer.is_valid_hash,
    key=_identity,
    list_limit=settings.LIST_LIMIT_HASH,
)

DOMAIN = IndicatorKind(
    ioc_type=IocType.DOMAIN,
    label="DOMAIN",
    plural="domains",
    command="/domain",
    export_name="domains.txt",
    normalize=normalizer.normalize_domain,
    is_valid=normalizer.is_valid_domain,
    key=_identity,
    list_limit=settings.LIST_LIMIT_DOMAIN,
)

URL = IndicatorKind(
    ioc_type=IocType.URL,
    label="URL",
    plural="URLs",
    command="/url",
    export_name="urls.txt",
    normalize=normalizer.normalize_url,
    is_valid=normalizer.is_valid_url,
    key=_identity,
    list_limit=settings.LIST_LIMIT_URL,
)

ALL_KINDS: tuple[IndicatorKind, ...] = (IP, HASH, DOMAIN, URL)

KINDS_BY_TYPE: dict[IocType, IndicatorKind] = {k.ioc_type: k for k in ALL_KINDS}
KINDS_BY_COMMAND: dict[str, IndicatorKind] = {k.command: k for k in ALL_KINDS}
