from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional, Sequence

from .models import DirectoryEntry
from .transport import AttributeValues, Transport

log = logging.getLogger(__name__)

AttributeMap = Mapping[str, AttributeValues]


class ObjectRepository:
    """Generic directory objects on top of a borrowed Transport session.

    Every entity lookup funnels through `search`, so "not found",
    "found once" and "found many" mean the same thing for every kind.
    """

    def __init__(self, transport: Transport, domain: str = "", domain_dn: str = "") -> None:
        self.transport = transport
        self.domain = domain
        self.domain_dn = domain_dn

    def search(
        self,
        search_filter: str,
        base_dn: str,
        attributes: Optional[Iterable[str]] = None,
        scope: str = "subtree",
        size_limit: int = 0,
    ) -> list[DirectoryEntry]:
        log.debug("search base=%s filter=%s", base_dn, search_filter)
        return self.transport.search(base_dn, search_filter, attributes, scope=scope, size_limit=size_limit)

    def get(self, dn: str, attributes: Optional[Iterable[str]] = None) -> Optional[DirectoryEntry]:
        entries = self.search("(objectClass=*)", dn, attributes, scope="base")
        return entries[0] if entries else None

    def children(self, dn: str) -> list[DirectoryEntry]:
        """Up to two entries of the subtree of `dn`, the entry itself included.

        Enough to tell a leaf from a container without reading the subtree.
        """
        return self.search("(objectClass=*)", dn, ["objectClass"], size_limit=2)

    def create(self, dn: str, object_classes: Sequence[str], attributes: AttributeMap) -> None:
        log.info("Creating %s (%s)", dn, ", ".join(object_classes))
        self.transport.add(dn, object_classes, attributes)

    def update(
        self,
        dn: str,
        added: Optional[AttributeMap] = None,
        changed: Optional[AttributeMap] = None,
        removed: Optional[AttributeMap] = None,
    ) -> None:
        if not (added or changed or removed):
            return
        names = sorted({*(added or {}), *(changed or {}), *(removed or {})})
        log.info("Updating %s: %s", dn, ", ".join(names))
        self.transport.modify(dn, add=added, replace=changed, delete=removed)

    def move(self, dn: str, new_rdn: str, new_container: Optional[str] = None) -> None:
        if new_container:
            log.info("Moving %s to %s,%s", dn, new_rdn, new_container)
        else:
            log.info("Renaming %s to %s", dn, new_rdn)
        self.transport.modify_dn(dn, new_rdn, delete_old_rdn=True, new_superior=new_container or None)

    def delete(self, dn: str) -> None:
        log.info("Deleting %s", dn)
        self.transport.delete(dn)
