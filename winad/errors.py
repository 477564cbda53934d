from __future__ import annotations


class ADError(Exception):
    """Base class for every error raised by winad."""


class ConfigurationError(ADError):
    pass


class ADConnectionError(ADError):
    pass


class ADAuthenticationError(ADError):
    pass


class InsecureSessionError(ADError):
    pass


class TransportError(ADError):
    """An LDAP operation failed on the server or on the socket."""

    def __init__(self, operation: str, dn: str, description: str, code: int | None = None) -> None:
        self.operation = operation
        self.dn = dn
        self.description = description
        self.code = code
        super().__init__(f"{operation} {dn}: {description}")


class AmbiguousResultError(ADError):
    def __init__(self, kind: str, name: str, base: str, dns: list[str]) -> None:
        self.kind = kind
        self.name = name
        self.base = base
        self.dns = dns
        super().__init__(
            f"more than one {kind} object named {name!r} under {base}: {', '.join(dns)}"
        )


class ConflictError(ADError):
    """An object with the same name lives somewhere other than requested."""

    def __init__(self, kind: str, name: str, existing_dn: str, requested_dn: str) -> None:
        self.kind = kind
        self.name = name
        self.existing_dn = existing_dn
        self.requested_dn = requested_dn
        super().__init__(
            f"{kind} object {name!r} already exists as {existing_dn} (requested {requested_dn})"
        )


class NotFoundError(ADError):
    def __init__(self, kind: str, name: str, base: str) -> None:
        self.kind = kind
        self.name = name
        self.base = base
        super().__init__(f"{kind} object {name!r} does not exist under {base}")


class HasChildrenError(ADError):
    def __init__(self, dn: str, child_dn: str) -> None:
        self.dn = dn
        self.child_dn = child_dn
        super().__init__(f"refusing to delete {dn}: it has child items ({child_dn})")


class ProvisioningError(ADError):
    """A post-create step of user creation failed.

    The entry at `dn` exists but is left as the server saw it after the last
    successful step (typically disabled, possibly without a password or
    uidNumber). Nothing is rolled back; the caller decides whether to delete it.
    """

    def __init__(self, step: str, dn: str, reason: str) -> None:
        self.step = step
        self.dn = dn
        self.reason = reason
        super().__init__(f"user {dn} was created but step '{step}' failed: {reason}")


class MalformedSIDError(ADError, ValueError):
    pass
