"""Idempotent create / move / rename / delete shared by every entity kind.

A kind plugs in through `EntityKind`: how to find it, how to build it, and
whether an existing entry gets its description re-applied on create.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar

from .errors import AmbiguousResultError, ConflictError, HasChildrenError, NotFoundError
from .models import DirectoryEntry
from .repository import AttributeMap, ObjectRepository
from .utils import build_dn, build_rdn, dn_equal, dn_parent, dn_rdn, escape_ldap_filter_value

log = logging.getLogger(__name__)

R = TypeVar("R")


@dataclass(frozen=True)
class EntityKind(Generic[R]):
    label: str
    rdn_attribute: str
    object_classes: Sequence[str]
    lookup_attributes: Sequence[str]
    filter_template: str
    build_attributes: Callable[[Any, str], AttributeMap]
    from_entry: Callable[[DirectoryEntry], R]
    supports_description_update: bool = True
    search_from_domain_root: bool = False

    def build_filter(self, name: str) -> str:
        return self.filter_template.format(name=escape_ldap_filter_value(name))


@dataclass(frozen=True)
class CreateResult:
    dn: str
    created: bool


class Reconciler(Generic[R]):
    def __init__(self, repo: ObjectRepository, kind: EntityKind[R]) -> None:
        self.repo = repo
        self.kind = kind

    def dn_for(self, name: str, container: str) -> str:
        return build_dn(self.kind.rdn_attribute, name, container)

    def _lookup(self, name: str, base: str) -> Optional[DirectoryEntry]:
        search_base = self.repo.domain_dn if self.kind.search_from_domain_root and self.repo.domain_dn else base
        entries = self.repo.search(self.kind.build_filter(name), search_base, self.kind.lookup_attributes)
        if not entries:
            return None
        if len(entries) > 1:
            raise AmbiguousResultError(self.kind.label, name, search_base, [e.dn for e in entries])
        return entries[0]

    def get(self, name: str, base: str) -> Optional[R]:
        log.debug("Looking up %s %r under %s", self.kind.label, name, base)
        entry = self._lookup(name, base)
        return self.kind.from_entry(entry) if entry is not None else None

    def _require(self, name: str, base: str) -> DirectoryEntry:
        entry = self._lookup(name, base)
        if entry is None:
            raise NotFoundError(self.kind.label, name, base)
        return entry

    def create(self, request: Any, before_add: Optional[Callable[[], None]] = None) -> CreateResult:
        """Create `request` unless it already exists.

        `before_add` runs only when a new entry is about to be added.
        """
        target = self.dn_for(request.name, request.container)
        existing = self._lookup(request.name, request.container)

        if existing is not None:
            if not dn_equal(existing.dn, target):
                log.warning("%s %r exists as %s, refusing to create %s", self.kind.label, request.name, existing.dn, target)
                raise ConflictError(self.kind.label, request.name, existing.dn, target)
            if self.kind.supports_description_update:
                log.info("%s %s already exists, updating description", self.kind.label, existing.dn)
                self._set_description(existing.dn, request.description)
            else:
                log.info("%s %s already exists, nothing to do", self.kind.label, existing.dn)
            return CreateResult(dn=existing.dn, created=False)

        if before_add is not None:
            before_add()
        attributes = self.kind.build_attributes(request, self.repo.domain)
        self.repo.create(target, self.kind.object_classes, attributes)
        return CreateResult(dn=target, created=True)

    def move(self, name: str, base: str, new_container: str) -> str:
        entry = self._require(name, base)
        # keep the RDN exactly as stored
        rdn = dn_rdn(entry.dn)
        target = f"{rdn},{new_container}"
        if dn_equal(entry.dn, target):
            log.info("%s %s is already under %s", self.kind.label, entry.dn, new_container)
            return entry.dn

        self.repo.move(entry.dn, rdn, new_container)
        return target

    def rename(self, name: str, base: str, new_name: str) -> str:
        entry = self._require(name, base)
        target = self.dn_for(new_name, dn_parent(entry.dn))
        if dn_equal(entry.dn, target):
            log.info("%s %s already carries the name %r", self.kind.label, entry.dn, new_name)
            return entry.dn

        clash = self._lookup(new_name, base)
        if clash is not None and not dn_equal(clash.dn, entry.dn):
            raise ConflictError(self.kind.label, new_name, clash.dn, target)

        self.repo.move(entry.dn, build_rdn(self.kind.rdn_attribute, new_name))
        return target

    def update_description(self, name: str, base: str, text: str) -> str:
        entry = self._require(name, base)
        self._set_description(entry.dn, text)
        return entry.dn

    def _set_description(self, dn: str, text: str) -> None:
        if text:
            self.repo.update(dn, changed={"description": [text]})
        else:
            # replace with no values clears the attribute
            self.repo.update(dn, changed={"description": []})

    def delete(self, dn: str) -> None:
        objects = self.repo.children(dn)
        if objects:
            if len(objects) > 1 or not dn_equal(objects[0].dn, dn):
                child = next((o.dn for o in objects if not dn_equal(o.dn, dn)), objects[0].dn)
                log.warning("Refusing to delete %s: it has child items", dn)
                raise HasChildrenError(dn, child)
        self.repo.delete(dn)

