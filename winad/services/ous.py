from __future__ import annotations

from typing import Optional

from ..models import ADOU, OUCreateRequest
from ..reconciler import CreateResult, EntityKind, Reconciler
from ..repository import AttributeMap, ObjectRepository


def _ou_attributes(req: OUCreateRequest, domain: str) -> AttributeMap:
    attrs: dict[str, list[str]] = {"ou": [req.name]}
    if req.description:
        attrs["description"] = [req.description]
    return attrs


OU_KIND: EntityKind[ADOU] = EntityKind(
    label="ou",
    rdn_attribute="ou",
    object_classes=("top", "organizationalUnit"),
    lookup_attributes=("name", "ou", "description"),
    filter_template="(&(objectClass=organizationalUnit)(ou={name}))",
    build_attributes=_ou_attributes,
    from_entry=ADOU.from_entry,
)


class OUService:
    def __init__(self, repo: ObjectRepository) -> None:
        self.repo = repo
        self.reconciler = Reconciler(repo, OU_KIND)

    def get_ou(self, name: str, base_ou: str) -> Optional[ADOU]:
        return self.reconciler.get(name, base_ou)

    def create_ou(self, request: OUCreateRequest) -> CreateResult:
        return self.reconciler.create(request)

    def move_ou(self, name: str, base_ou: str, new_ou: str) -> str:
        return self.reconciler.move(name, base_ou, new_ou)

    def rename_ou(self, name: str, base_ou: str, new_name: str) -> str:
        return self.reconciler.rename(name, base_ou, new_name)

    def update_description(self, name: str, base_ou: str, description: str) -> str:
        return self.reconciler.update_description(name, base_ou, description)

    def delete_ou(self, dn: str) -> None:
        self.reconciler.delete(dn)
