import pytest

from winad.models import ADConfig, DirectoryEntry
from winad.utils import (
    build_dn,
    dn_equal,
    dn_parent,
    dn_rdn,
    domain_to_base_dn,
    encode_ad_password,
    escape_ldap_filter_value,
    group_type_value,
)


def test_escape_ldap_filter_value():
    assert escape_ldap_filter_value("a*b(c)\\d") == "a\\2ab\\28c\\29\\5cd"


def test_domain_to_base_dn():
    assert domain_to_base_dn("example.com") == "dc=example,dc=com"
    assert domain_to_base_dn("corp.example.com.") == "dc=corp,dc=example,dc=com"
    assert domain_to_base_dn("localhost") == ""


def test_build_dn_escapes_the_name():
    assert build_dn("cn", "jdoe", "ou=People,dc=example,dc=com") == "cn=jdoe,ou=People,dc=example,dc=com"
    assert build_dn("cn", "Doe, John", "dc=example,dc=com") == "cn=Doe\\, John,dc=example,dc=com"


@pytest.mark.parametrize(
    "a, b, equal",
    [
        ("cn=jdoe,ou=People,dc=example,dc=com", "CN=JDoe,OU=people,DC=Example,DC=COM", True),
        ("cn=jdoe, ou=People, dc=example, dc=com", "cn=jdoe,ou=People,dc=example,dc=com", True),
        ("cn=jdoe,ou=People,dc=example,dc=com", "cn=jdoe,ou=Staff,dc=example,dc=com", False),
        ("ou=Sales,dc=example,dc=com", "cn=Sales,dc=example,dc=com", False),
    ],
)
def test_dn_equal(a, b, equal):
    assert dn_equal(a, b) is equal


def test_dn_parts():
    dn = "cn=Doe\\, John,ou=People,dc=example,dc=com"
    assert dn_rdn(dn) == "cn=Doe\\, John"
    assert dn_parent(dn) == "ou=People,dc=example,dc=com"
    assert dn_parent("dc=com") == ""


@pytest.mark.parametrize(
    "dn, rdn, parent",
    [
        ("cn=jdoe, ou=People, dc=example, dc=com", "cn=jdoe", "ou=People,dc=example,dc=com"),
        ("cn=a+sn=b,ou=People,dc=example,dc=com", "cn=a+sn=b", "ou=People,dc=example,dc=com"),
        ("cn=a\\2Cb,dc=example,dc=com", "cn=a\\2Cb", "dc=example,dc=com"),
        ("ou=a\\=b,dc=example,dc=com", "ou=a\\=b", "dc=example,dc=com"),
    ],
)
def test_dn_split_keeps_escapes(dn, rdn, parent):
    assert dn_rdn(dn) == rdn
    assert dn_parent(dn) == parent


def test_encode_ad_password():
    assert encode_ad_password("Pa55") == '"Pa55"'.encode("utf-16-le")


def test_group_type_is_signed():
    assert group_type_value("global", "security") == -2147483646
    assert group_type_value("universal", "distribution") == 8
    assert group_type_value("domainlocal", "security") == -2147483644


@pytest.mark.parametrize(
    "username, principal",
    [
        ("svc-ad", "svc-ad@example.com"),
        ("svc-ad@other.org", "svc-ad@other.org"),
        ("cn=svc-ad,ou=Service,dc=example,dc=com", "cn=svc-ad,ou=Service,dc=example,dc=com"),
    ],
)
def test_bind_principal(username, principal):
    cfg = ADConfig(
        dc_short="dc01", domain="example.com", port=636, use_ssl=True, starttls=False,
        bind_username=username, bind_password="x",
    )
    assert cfg.bind_principal == principal
    assert cfg.host == "dc01.example.com"


def test_directory_entry_attribute_names_are_case_insensitive():
    entry = DirectoryEntry(
        dn="cn=jdoe,dc=example,dc=com",
        attributes={"sAMAccountName": ("jdoe",)},
        raw_attributes={"objectSid": (b"\x01",)},
    )
    assert entry.first("samaccountname") == "jdoe"
    assert entry.first("mail") == ""
    assert entry.first_raw("OBJECTSID") == b"\x01"
