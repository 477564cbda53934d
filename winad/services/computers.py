from __future__ import annotations

from typing import Optional

from ..models import ADComputer, ComputerCreateRequest
from ..reconciler import CreateResult, EntityKind, Reconciler
from ..repository import AttributeMap, ObjectRepository
from ..utils import UAC_WORKSTATION_TRUST_ACCOUNT


def _computer_attributes(req: ComputerCreateRequest, domain: str) -> AttributeMap:
    attrs: dict[str, list[str]] = {
        "cn": [req.name],
        "sAMAccountName": [f"{req.name}$"],
        "userAccountControl": [str(UAC_WORKSTATION_TRUST_ACCOUNT)],
    }
    if req.description:
        attrs["description"] = [req.description]
    return attrs


# Computer names are unique per domain, so lookups start at the domain root
# and a computer in any other OU counts as a conflict.
COMPUTER_KIND: EntityKind[ADComputer] = EntityKind(
    label="computer",
    rdn_attribute="cn",
    object_classes=("computer",),
    lookup_attributes=("cn", "sAMAccountName", "description"),
    filter_template="(&(objectClass=computer)(cn={name}))",
    build_attributes=_computer_attributes,
    from_entry=ADComputer.from_entry,
    search_from_domain_root=True,
)


class ComputerService:
    def __init__(self, repo: ObjectRepository) -> None:
        self.repo = repo
        self.reconciler = Reconciler(repo, COMPUTER_KIND)

    def get_computer(self, name: str, base_ou: str = "") -> Optional[ADComputer]:
        return self.reconciler.get(name, base_ou or self.repo.domain_dn)

    def create_computer(self, request: ComputerCreateRequest) -> CreateResult:
        return self.reconciler.create(request)

    def move_computer(self, name: str, base_ou: str, new_ou: str) -> str:
        return self.reconciler.move(name, base_ou, new_ou)

    def rename_computer(self, name: str, base_ou: str, new_name: str) -> str:
        return self.reconciler.rename(name, base_ou, new_name)

    def update_description(self, name: str, base_ou: str, description: str) -> str:
        return self.reconciler.update_description(name, base_ou, description)

    def delete_computer(self, dn: str) -> None:
        self.reconciler.delete(dn)
