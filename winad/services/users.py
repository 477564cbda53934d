from __future__ import annotations

import logging
from typing import Optional

from ..errors import ADError, InsecureSessionError, ProvisioningError, TransportError
from ..models import ADUser, UserCreateRequest
from ..reconciler import CreateResult, EntityKind, Reconciler
from ..repository import AttributeMap, ObjectRepository
from ..utils import (
    UAC_ACCOUNTDISABLE,
    UAC_NORMAL_ACCOUNT,
    UID_OFFSET,
    dn_equal,
    encode_ad_password,
)

log = logging.getLogger(__name__)


def _user_attributes(req: UserCreateRequest, domain: str) -> AttributeMap:
    attrs: dict[str, list[str]] = {
        "cn": [req.name],
        "sAMAccountName": [req.name],
        "displayName": [req.full_name],
        # Created disabled; enabled only once a password is set.
        "userAccountControl": [str(UAC_NORMAL_ACCOUNT | UAC_ACCOUNTDISABLE)],
        # never expires
        "accountExpires": ["0"],
    }
    dom = (domain or "").strip().strip(".")
    if dom:
        attrs["userPrincipalName"] = [f"{req.name}@{dom}"]
    if req.given_name:
        attrs["givenName"] = [req.given_name]
    if req.surname:
        attrs["sn"] = [req.surname]
    if req.email:
        attrs["mail"] = [req.email]
    if req.description:
        attrs["description"] = [req.description]
    return attrs


USER_KIND: EntityKind[ADUser] = EntityKind(
    label="user",
    rdn_attribute="cn",
    object_classes=("top", "person", "organizationalPerson", "user"),
    lookup_attributes=("name", "cn", "sAMAccountName", "description", "sn", "objectSid", "uidNumber"),
    # computers are objectClass=user as well
    filter_template="(&(objectClass=user)(!(objectClass=computer))(cn={name}))",
    build_attributes=_user_attributes,
    from_entry=ADUser.from_entry,
    supports_description_update=False,
)


class UserService:
    def __init__(self, repo: ObjectRepository) -> None:
        self.repo = repo
        self.reconciler = Reconciler(repo, USER_KIND)

    def get_user(self, name: str, base_ou: str) -> Optional[ADUser]:
        return self.reconciler.get(name, base_ou)

    def create_user(self, request: UserCreateRequest) -> CreateResult:
        """Create a user, set its password, enable it and assign uidNumber.

        An already existing user with the same DN is left untouched. The
        post-create steps run in order (password, enable, uidNumber) and the
        first failure raises ProvisioningError; the new entry is NOT removed
        and stays disabled if the password or enable step failed.

        Adding a new user needs LDAPS or StartTLS (InsecureSessionError);
        an existing one is accepted over any session.
        """
        log.info("Creating user %s in %s", request.name, request.container)
        result = self.reconciler.create(request, before_add=self._require_encrypted_session)
        if not result.created:
            return result

        dn = result.dn
        self._post_create_step("password", dn, lambda: self.repo.update(
            dn, changed={"unicodePwd": [encode_ad_password(request.password)]},
        ))
        self._post_create_step("enable", dn, lambda: self.repo.update(
            dn, changed={"userAccountControl": [str(UAC_NORMAL_ACCOUNT)]},
        ))
        uid = self._post_create_step("uidNumber", dn, lambda: self._assign_uid(request, dn))
        log.info("User %s created with uidNumber %d", dn, uid)
        return result

    def _require_encrypted_session(self) -> None:
        if not self.repo.transport.encrypted:
            raise InsecureSessionError("setting unicodePwd requires LDAPS or StartTLS")

    def _post_create_step(self, step: str, dn: str, action):
        try:
            return action()
        except ADError as e:
            log.error("User %s: step '%s' failed, account left partially configured: %s", dn, step, e)
            raise ProvisioningError(step, dn, str(e)) from e

    def _assign_uid(self, request: UserCreateRequest, dn: str) -> int:
        user = self.reconciler.get(request.name, request.container)
        if user is None or not dn_equal(user.dn, dn):
            raise TransportError("search", dn, "created user could not be read back")
        sid = user.sid
        if sid is None:
            raise TransportError("search", dn, "created user has no objectSid")
        uid = sid.rid + UID_OFFSET
        log.debug("User %s has SID %s, uidNumber %d", dn, sid, uid)
        self.repo.update(dn, changed={"uidNumber": [str(uid)]})
        return uid

    def move_user(self, name: str, base_ou: str, new_ou: str) -> str:
        return self.reconciler.move(name, base_ou, new_ou)

    def rename_user(self, name: str, base_ou: str, new_name: str) -> str:
        return self.reconciler.rename(name, base_ou, new_name)

    def update_description(self, name: str, base_ou: str, description: str) -> str:
        return self.reconciler.update_description(name, base_ou, description)

    def delete_user(self, dn: str) -> None:
        self.reconciler.delete(dn)

    def add_user_to_group(self, user_dn: str, group_dn: str) -> None:
        try:
            self.repo.update(group_dn, added={"member": [user_dn]})
        except TransportError as e:
            # AD returns "attributeOrValueExists" when already in group.
            if "attributeorvalueexists" in (e.description or "").lower():
                log.info("%s is already a member of %s", user_dn, group_dn)
                return
            raise

    def remove_user_from_group(self, user_dn: str, group_dn: str) -> None:
        try:
            self.repo.update(group_dn, removed={"member": [user_dn]})
        except TransportError as e:
            # If not a member, AD returns "noSuchAttribute".
            if "nosuchattribute" in (e.description or "").lower():
                log.info("%s is not a member of %s", user_dn, group_dn)
                return
            raise
