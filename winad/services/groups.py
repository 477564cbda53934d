from __future__ import annotations

from typing import Optional

from ..models import ADGroup, GroupCreateRequest
from ..reconciler import CreateResult, EntityKind, Reconciler
from ..repository import AttributeMap, ObjectRepository
from ..utils import group_type_value

# instanceType: writable on this DC
INSTANCE_TYPE_WRITE = 0x00000004


def _group_attributes(req: GroupCreateRequest, domain: str) -> AttributeMap:
    attrs: dict[str, list[str]] = {
        "cn": [req.name],
        "sAMAccountName": [req.name],
        "instanceType": [str(INSTANCE_TYPE_WRITE)],
        "groupType": [str(group_type_value(req.scope, req.category))],
    }
    if req.description:
        attrs["description"] = [req.description]
    return attrs


GROUP_KIND: EntityKind[ADGroup] = EntityKind(
    label="group",
    rdn_attribute="cn",
    object_classes=("top", "group"),
    lookup_attributes=("name", "cn", "sAMAccountName", "description", "groupType"),
    filter_template="(&(objectClass=group)(cn={name}))",
    build_attributes=_group_attributes,
    from_entry=ADGroup.from_entry,
)


class GroupService:
    def __init__(self, repo: ObjectRepository) -> None:
        self.repo = repo
        self.reconciler = Reconciler(repo, GROUP_KIND)

    def get_group(self, name: str, base_ou: str) -> Optional[ADGroup]:
        return self.reconciler.get(name, base_ou)

    def create_group(self, request: GroupCreateRequest) -> CreateResult:
        """Create a security or distribution group.

        Scope and category only apply to new groups; an existing group with
        the same DN just gets its description re-applied.
        """
        return self.reconciler.create(request)

    def move_group(self, name: str, base_ou: str, new_ou: str) -> str:
        return self.reconciler.move(name, base_ou, new_ou)

    def rename_group(self, name: str, base_ou: str, new_name: str) -> str:
        return self.reconciler.rename(name, base_ou, new_name)

    def update_description(self, name: str, base_ou: str, description: str) -> str:
        return self.reconciler.update_description(name, base_ou, description)

    def delete_group(self, dn: str) -> None:
        self.reconciler.delete(dn)
