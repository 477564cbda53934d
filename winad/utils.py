from __future__ import annotations

import ipaddress

from ldap3.core.exceptions import LDAPInvalidDnError
from ldap3.utils.dn import escape_rdn, parse_dn

# userAccountControl bits
UAC_ACCOUNTDISABLE = 0x0002
UAC_NORMAL_ACCOUNT = 0x0200
UAC_WORKSTATION_TRUST_ACCOUNT = 0x1000

# groupType bits
GROUP_TYPE_SCOPE = {
    "global": 0x00000002,
    "domainlocal": 0x00000004,
    "universal": 0x00000008,
}
GROUP_TYPE_SECURITY = 0x80000000

UID_OFFSET = 1000


def escape_ldap_filter_value(value: str) -> str:
    """RFC 4515 escaping for LDAP filter values."""
    out: list[str] = []
    for ch in value:
        if ch == "\\":
            out.append("\\5c")
        elif ch == "*":
            out.append("\\2a")
        elif ch == "(":
            out.append("\\28")
        elif ch == ")":
            out.append("\\29")
        elif ch == "\x00":
            out.append("\\00")
        else:
            out.append(ch)
    return "".join(out)


def domain_to_base_dn(domain: str) -> str:
    domain = (domain or "").strip().strip(".")
    if not domain or "." not in domain:
        return ""
    parts = [p for p in domain.split(".") if p]
    return ",".join([f"dc={p}" for p in parts])


def build_dc_fqdn(dc_short: str, domain: str) -> str:
    dc_short = (dc_short or "").strip()
    domain = (domain or "").strip().strip(".")
    if not dc_short:
        return domain

    try:
        ipaddress.ip_address(dc_short)
        return dc_short
    except ValueError:
        if "." in dc_short:
            return dc_short
        return f"{dc_short}.{domain}" if domain else dc_short


def build_rdn(rdn_attribute: str, name: str) -> str:
    return f"{rdn_attribute}={escape_rdn(name)}"


def build_dn(rdn_attribute: str, name: str, container: str) -> str:
    """Compose `<attr>=<escaped name>,<container>`."""
    return f"{build_rdn(rdn_attribute, name)},{container}"


def _dn_key(dn: str) -> tuple[tuple[str, str], ...] | str:
    try:
        return tuple((attr.lower(), value.lower()) for attr, value, _ in parse_dn(dn, strip=True))
    except LDAPInvalidDnError:
        return (dn or "").strip().lower()


def dn_equal(a: str, b: str) -> bool:
    """Case-insensitive DN comparison (ignores spacing around separators)."""
    return _dn_key(a) == _dn_key(b)


def _split_first_rdn(dn: str) -> tuple[list, list]:
    # a multi-valued RDN spans every AVA up to the first "," separator
    avas = parse_dn(dn, strip=True)
    for i, (_, _, sep) in enumerate(avas):
        if sep != "+":
            return avas[: i + 1], avas[i + 1:]
    return avas, []


def _join_avas(avas: list) -> str:
    last = len(avas) - 1
    return "".join(f"{attr}={value}{sep if i < last else ''}" for i, (attr, value, sep) in enumerate(avas))


def dn_rdn(dn: str) -> str:
    """First RDN of a DN as stored, escapes kept (cn=Doe\\, John,ou=... -> cn=Doe\\, John)."""
    rdn, _ = _split_first_rdn(dn)
    return _join_avas(rdn)


def dn_parent(dn: str) -> str:
    """Return the container part of a DN ("" for a single-component DN)."""
    _, parent = _split_first_rdn(dn)
    return _join_avas(parent)


def encode_ad_password(password: str) -> bytes:
    """AD expects unicodePwd as the quoted password in UTF-16-LE."""
    return f'"{password}"'.encode("utf-16-le")


def group_type_value(scope: str, category: str) -> int:
    """groupType as the signed 32-bit integer AD stores."""
    value = GROUP_TYPE_SCOPE.get(scope, GROUP_TYPE_SCOPE["global"])
    if category == "security":
        value |= GROUP_TYPE_SECURITY
    if value >= 2**31:
        value -= 2**32
    return value
