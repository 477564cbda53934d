from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from .sid import SecurityIdentifier, decode_sid
from .utils import build_dc_fqdn, domain_to_base_dn


@dataclass
class ADConfig:
    dc_short: str
    domain: str
    port: int
    use_ssl: bool
    starttls: bool
    bind_username: str
    bind_password: str
    tls_validate: bool = False
    ca_pem: str = ""
    connect_timeout: float = 10.0

    @property
    def host(self) -> str:
        return build_dc_fqdn(self.dc_short, self.domain)

    @property
    def base_dn(self) -> str:
        return domain_to_base_dn(self.domain)

    @property
    def encrypted(self) -> bool:
        return self.use_ssl or self.starttls

    @property
    def bind_principal(self) -> str:
        u = (self.bind_username or "").strip()
        d = (self.domain or "").strip().strip(".")
        if not u:
            return ""
        # UPN or full DN: use as is
        if "@" in u or "=" in u:
            return u
        return f"{u}@{d}" if d else u


class _CaseInsensitiveMap(dict):
    """Read-only view keyed by lower-cased attribute name."""

    def __init__(self, data: Mapping[str, tuple]) -> None:
        super().__init__({k.lower(): v for k, v in data.items()})

    def __getitem__(self, key: str):
        return super().__getitem__(key.lower())

    def get(self, key: str, default=None):
        return super().get(key.lower(), default)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and super().__contains__(key.lower())


@dataclass(frozen=True)
class DirectoryEntry:
    """Snapshot of one search hit."""

    dn: str
    attributes: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    raw_attributes: Mapping[str, tuple[bytes, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", _CaseInsensitiveMap(self.attributes))
        object.__setattr__(self, "raw_attributes", _CaseInsensitiveMap(self.raw_attributes))

    def first(self, name: str, default: str = "") -> str:
        values = self.attributes.get(name) or ()
        return values[0] if values else default

    def first_raw(self, name: str) -> bytes | None:
        values = self.raw_attributes.get(name) or ()
        return values[0] if values else None


# ── Records ──


def _int_or_none(v: str) -> Optional[int]:
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


@dataclass
class ADUser:
    name: str
    dn: str
    sam_account_name: str = ""
    sn: str = ""
    description: str = ""
    object_sid: Optional[bytes] = None
    uid_number: Optional[int] = None

    @property
    def sid(self) -> Optional[SecurityIdentifier]:
        if not self.object_sid:
            return None
        return decode_sid(self.object_sid)

    @classmethod
    def from_entry(cls, entry: DirectoryEntry) -> "ADUser":
        return cls(
            name=entry.first("cn"),
            dn=entry.dn,
            sam_account_name=entry.first("sAMAccountName"),
            sn=entry.first("sn"),
            description=entry.first("description"),
            object_sid=entry.first_raw("objectSid"),
            uid_number=_int_or_none(entry.first("uidNumber")),
        )


@dataclass
class ADGroup:
    name: str
    dn: str
    sam_account_name: str = ""
    description: str = ""
    group_type: Optional[int] = None

    @classmethod
    def from_entry(cls, entry: DirectoryEntry) -> "ADGroup":
        return cls(
            name=entry.first("cn"),
            dn=entry.dn,
            sam_account_name=entry.first("sAMAccountName"),
            description=entry.first("description"),
            group_type=_int_or_none(entry.first("groupType")),
        )


@dataclass
class ADOU:
    name: str
    dn: str
    description: str = ""

    @classmethod
    def from_entry(cls, entry: DirectoryEntry) -> "ADOU":
        return cls(name=entry.first("ou"), dn=entry.dn, description=entry.first("description"))


@dataclass
class ADComputer:
    name: str
    dn: str
    sam_account_name: str = ""
    description: str = ""

    @classmethod
    def from_entry(cls, entry: DirectoryEntry) -> "ADComputer":
        return cls(
            name=entry.first("cn"),
            dn=entry.dn,
            sam_account_name=entry.first("sAMAccountName"),
            description=entry.first("description"),
        )


# ── Create requests ──


class _CreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)
    container: str = Field(..., min_length=1)
    description: str = Field(default="", max_length=1024)

    @field_validator("name", "container", "description", mode="before")
    @classmethod
    def _strip(cls, v: str) -> str:
        return (v or "").strip()


class UserCreateRequest(_CreateRequest):
    given_name: str = Field(default="", max_length=64)
    surname: str = Field(default="", max_length=64)
    email: str = Field(default="", max_length=256)
    password: str = Field(..., min_length=1, repr=False)

    @field_validator("given_name", "surname", "email", mode="before")
    @classmethod
    def _strip_person(cls, v: str) -> str:
        return (v or "").strip()

    @property
    def full_name(self) -> str:
        return f"{self.given_name} {self.surname}".strip() or self.name


GroupScope = Literal["global", "domainlocal", "universal"]
GroupCategory = Literal["security", "distribution"]


class GroupCreateRequest(_CreateRequest):
    scope: GroupScope = Field(default="global")
    category: GroupCategory = Field(default="security")


class OUCreateRequest(_CreateRequest):
    pass


class ComputerCreateRequest(_CreateRequest):
    # sAMAccountName of a computer is limited to 15 chars + "$"
    name: str = Field(..., min_length=1, max_length=15)
