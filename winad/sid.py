"""Security identifier (objectSid) decoding.

Binary layout of a SID:

    offset  size   field
    0       1      revision level
    1       1      sub-authority count (N)
    2       6      identifier authority, big-endian
    8       4*N    sub-authorities, little-endian u32 each

The relative identifier (RID) is the last sub-authority.
"""
from __future__ import annotations

import struct
from dataclasses import dataclass

from .errors import MalformedSIDError
from .utils import UID_OFFSET


@dataclass(frozen=True)
class _SIDLayout:
    header: struct.Struct
    authority_size: int
    sub_authority: struct.Struct
    max_sub_authorities: int

    @property
    def header_size(self) -> int:
        return self.header.size

    def size_for(self, count: int) -> int:
        return self.header.size + self.sub_authority.size * count

    def sub_authorities_struct(self, count: int) -> struct.Struct:
        return struct.Struct(f"<{count}{self.sub_authority.format[-1]}")


# revision (u8), count (u8), authority (6 raw bytes, decoded big-endian)
SID_LAYOUT = _SIDLayout(
    header=struct.Struct("<BB6s"),
    authority_size=6,
    sub_authority=struct.Struct("<I"),
    max_sub_authorities=15,
)


@dataclass(frozen=True)
class SecurityIdentifier:
    revision_level: int
    sub_authority_count: int
    authority: int
    sub_authorities: tuple[int, ...]

    @property
    def rid(self) -> int:
        if not self.sub_authorities:
            raise MalformedSIDError(f"SID {self} has no sub-authorities, cannot derive a RID")
        return self.sub_authorities[-1]

    def __str__(self) -> str:
        s = f"S-{self.revision_level}-{self.authority}"
        return s + "".join(f"-{v}" for v in self.sub_authorities)

    @classmethod
    def parse(cls, text: str) -> "SecurityIdentifier":
        """Parse the textual `S-1-5-21-...` form."""
        parts = (text or "").strip().split("-")
        if len(parts) < 3 or parts[0].upper() != "S":
            raise MalformedSIDError(f"not a SID string: {text!r}")
        try:
            numbers = [int(p) for p in parts[1:]]
        except ValueError as e:
            raise MalformedSIDError(f"not a SID string: {text!r}") from e
        revision, authority, subs = numbers[0], numbers[1], tuple(numbers[2:])
        if len(subs) > SID_LAYOUT.max_sub_authorities:
            raise MalformedSIDError(f"too many sub-authorities in {text!r}")
        if not 0 <= revision <= 0xFF:
            raise MalformedSIDError(f"revision out of range in {text!r}")
        if not 0 <= authority < 1 << (8 * SID_LAYOUT.authority_size):
            raise MalformedSIDError(f"identifier authority out of range in {text!r}")
        if any(not 0 <= v <= 0xFFFFFFFF for v in subs):
            raise MalformedSIDError(f"sub-authority out of range in {text!r}")
        return cls(
            revision_level=revision,
            sub_authority_count=len(subs),
            authority=authority,
            sub_authorities=subs,
        )

    def to_bytes(self) -> bytes:
        header = SID_LAYOUT.header.pack(
            self.revision_level,
            self.sub_authority_count,
            self.authority.to_bytes(SID_LAYOUT.authority_size, "big"),
        )
        subs = SID_LAYOUT.sub_authorities_struct(self.sub_authority_count).pack(*self.sub_authorities)
        return header + subs


def decode_sid(data: bytes) -> SecurityIdentifier:
    """Decode a binary objectSid value.

    Raises MalformedSIDError when the buffer is truncated, carries trailing
    bytes, or announces more sub-authorities than a SID may hold.
    """
    data = bytes(data or b"")
    if len(data) < SID_LAYOUT.header_size:
        raise MalformedSIDError(
            f"SID buffer too short: {len(data)} bytes, header needs {SID_LAYOUT.header_size}"
        )

    revision, count, raw_authority = SID_LAYOUT.header.unpack_from(data, 0)
    if count > SID_LAYOUT.max_sub_authorities:
        raise MalformedSIDError(f"SID announces {count} sub-authorities (max {SID_LAYOUT.max_sub_authorities})")

    expected = SID_LAYOUT.size_for(count)
    if len(data) != expected:
        raise MalformedSIDError(
            f"SID with {count} sub-authorities must be {expected} bytes, got {len(data)}"
        )

    subs = SID_LAYOUT.sub_authorities_struct(count).unpack_from(data, SID_LAYOUT.header_size)
    return SecurityIdentifier(
        revision_level=revision,
        sub_authority_count=count,
        authority=int.from_bytes(raw_authority, "big"),
        sub_authorities=tuple(subs),
    )


def uid_from_sid(data: bytes, offset: int = UID_OFFSET) -> int:
    """Local numeric id derived from a SID: RID + offset."""
    return decode_sid(data).rid + offset
