import struct

import pytest
from ldap3 import MOCK_SYNC, NONE, Server

from winad import ADClient, ADConfig

DOMAIN_DN = "dc=example,dc=com"
ADMIN_DN = f"cn=admin,{DOMAIN_DN}"
ADMIN_PASSWORD = "secret"


@pytest.fixture
def jdoe_sid() -> bytes:
    """objectSid S-1-5-21-2-3-4-1105 as stored by AD."""
    subs = (21, 2, 3, 4, 1105)
    return (
        bytes([1, len(subs)])
        + (5).to_bytes(6, "big")
        + struct.pack(f"<{len(subs)}I", *subs)
    )


@pytest.fixture
def cfg():
    return ADConfig(
        dc_short="dc01",
        domain="example.com",
        port=389,
        use_ssl=False,
        starttls=False,
        bind_username=ADMIN_DN,
        bind_password=ADMIN_PASSWORD,
    )


@pytest.fixture
def ad(cfg):
    """ADClient bound to an in-memory ldap3 directory holding only the domain root."""
    client = ADClient(cfg, server=Server("dc01.example.com", get_info=NONE), client_strategy=MOCK_SYNC)
    conn = client.transport.open()
    conn.strategy.add_entry(DOMAIN_DN, {"objectClass": ["top", "domain"], "dc": "example"})
    conn.strategy.add_entry(ADMIN_DN, {"objectClass": ["person"], "userPassword": ADMIN_PASSWORD, "sn": "admin"})
    client.transport.bind()
    yield client
    client.close()


@pytest.fixture
def add_entry(ad):
    def _add(dn, attributes):
        ad.transport.connection.strategy.add_entry(dn, attributes)
        return dn

    return _add
