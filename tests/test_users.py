from unittest.mock import MagicMock, call

import pytest

from winad import (
    ConflictError,
    InsecureSessionError,
    ProvisioningError,
    TransportError,
    UserCreateRequest,
)
from winad.models import DirectoryEntry
from winad.repository import ObjectRepository
from winad.services import UserService
from winad.transport import Transport
from winad.utils import encode_ad_password

PEOPLE = "ou=People,dc=example,dc=com"
JDOE_DN = f"cn=jdoe,{PEOPLE}"
GROUP_DN = "cn=Admins,ou=Groups,dc=example,dc=com"


@pytest.fixture
def transport():
    t = MagicMock(spec=Transport)
    t.encrypted = True
    return t


@pytest.fixture
def users(transport):
    return UserService(ObjectRepository(transport, domain="example.com", domain_dn="dc=example,dc=com"))


@pytest.fixture
def request_jdoe():
    return UserCreateRequest(
        name="jdoe", container=PEOPLE, given_name="John", surname="Doe",
        email="jdoe@example.com", password="S3cret!pw",
    )


def _entry(dn, sid=None):
    raw = {"objectSid": (sid,)} if sid else {}
    return DirectoryEntry(dn=dn, attributes={"cn": ("jdoe",), "sAMAccountName": ("jdoe",)}, raw_attributes=raw)


def test_create_user_runs_post_create_steps_in_order(users, transport, request_jdoe, jdoe_sid):
    transport.search.side_effect = [[], [_entry(JDOE_DN, jdoe_sid)]]

    result = users.create_user(request_jdoe)

    assert result.created is True
    assert result.dn == JDOE_DN

    dn, object_classes, attrs = transport.add.call_args.args
    assert dn == JDOE_DN
    assert "user" in object_classes
    assert attrs["userAccountControl"] == ["514"]
    assert attrs["userPrincipalName"] == ["jdoe@example.com"]
    assert attrs["displayName"] == ["John Doe"]
    assert attrs["sn"] == ["Doe"]
    assert attrs["mail"] == ["jdoe@example.com"]
    assert "unicodePwd" not in attrs

    assert transport.modify.call_args_list == [
        call(JDOE_DN, add=None, replace={"unicodePwd": [encode_ad_password("S3cret!pw")]}, delete=None),
        call(JDOE_DN, add=None, replace={"userAccountControl": ["512"]}, delete=None),
        call(JDOE_DN, add=None, replace={"uidNumber": ["2105"]}, delete=None),
    ]


def test_create_user_needs_encrypted_session(users, transport, request_jdoe):
    transport.encrypted = False
    transport.search.return_value = []

    with pytest.raises(InsecureSessionError):
        users.create_user(request_jdoe)

    transport.add.assert_not_called()


def test_existing_user_over_plain_session_is_accepted(users, transport, request_jdoe):
    transport.encrypted = False
    transport.search.return_value = [_entry(JDOE_DN)]

    result = users.create_user(request_jdoe)

    assert result.created is False
    transport.add.assert_not_called()
    transport.modify.assert_not_called()


def test_failed_password_step_leaves_entry_in_place(users, transport, request_jdoe):
    transport.search.return_value = []
    transport.modify.side_effect = TransportError("modify", JDOE_DN, "unwillingToPerform", 53)

    with pytest.raises(ProvisioningError) as exc:
        users.create_user(request_jdoe)

    assert exc.value.step == "password"
    assert exc.value.dn == JDOE_DN
    assert isinstance(exc.value.__cause__, TransportError)
    transport.add.assert_called_once()
    assert transport.modify.call_count == 1
    transport.delete.assert_not_called()


def test_missing_sid_fails_uid_step(users, transport, request_jdoe):
    transport.search.side_effect = [[], [_entry(JDOE_DN)]]

    with pytest.raises(ProvisioningError) as exc:
        users.create_user(request_jdoe)

    assert exc.value.step == "uidNumber"
    assert transport.modify.call_count == 2
    transport.delete.assert_not_called()


def test_existing_user_is_left_untouched(users, transport, request_jdoe):
    transport.search.return_value = [_entry("CN=jdoe,OU=People,DC=example,DC=com")]

    result = users.create_user(request_jdoe)

    assert result.created is False
    transport.add.assert_not_called()
    transport.modify.assert_not_called()


def test_user_elsewhere_conflicts(users, transport, request_jdoe):
    transport.search.return_value = [_entry("cn=jdoe,ou=Archive,ou=People,dc=example,dc=com")]

    with pytest.raises(ConflictError):
        users.create_user(request_jdoe)

    transport.add.assert_not_called()


def test_add_member(users, transport):
    users.add_user_to_group(JDOE_DN, GROUP_DN)

    transport.modify.assert_called_once_with(GROUP_DN, add={"member": [JDOE_DN]}, replace=None, delete=None)


def test_add_existing_member_is_accepted(users, transport):
    transport.modify.side_effect = TransportError("modify", GROUP_DN, "attributeOrValueExists", 20)

    users.add_user_to_group(JDOE_DN, GROUP_DN)


def test_remove_non_member_is_accepted(users, transport):
    transport.modify.side_effect = TransportError("modify", GROUP_DN, "noSuchAttribute", 16)

    users.remove_user_from_group(JDOE_DN, GROUP_DN)

    transport.modify.assert_called_once_with(GROUP_DN, add=None, replace=None, delete={"member": [JDOE_DN]})


def test_refused_removal_from_primary_group_propagates(users, transport):
    transport.modify.side_effect = TransportError(
        "modify", "cn=Domain Users,cn=Users,dc=example,dc=com",
        "unwillingToPerform (00000529: SvcErr: DSID-031A1254, problem 5003 (WILL_NOT_PERFORM), data 0)", 53,
    )

    with pytest.raises(TransportError) as exc:
        users.remove_user_from_group(JDOE_DN, "cn=Domain Users,cn=Users,dc=example,dc=com")
    assert exc.value.code == 53


def test_other_membership_errors_propagate(users, transport):
    transport.modify.side_effect = TransportError("modify", GROUP_DN, "insufficientAccessRights", 50)

    with pytest.raises(TransportError):
        users.add_user_to_group(JDOE_DN, GROUP_DN)


def test_user_description_is_not_reapplied(users, transport, request_jdoe):
    transport.search.return_value = [_entry(JDOE_DN)]

    users.create_user(request_jdoe.model_copy(update={"description": "changed"}))

    transport.modify.assert_not_called()


def test_lookup_filter_excludes_computers(users, transport):
    transport.search.return_value = []

    assert users.get_user("jdoe", PEOPLE) is None

    base, search_filter = transport.search.call_args.args[:2]
    assert base == PEOPLE
    assert search_filter == "(&(objectClass=user)(!(objectClass=computer))(cn=jdoe))"
