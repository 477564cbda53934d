"""Active Directory (LDAP) client: idempotent management of users, groups,
organizational units and computers, plus objectSid decoding.

Public API:
    - ADClient, ADConfig
    - the create requests and entity records
    - decode_sid, SecurityIdentifier
    - the error taxonomy in winad.errors
"""

from .client import ADClient
from .errors import (
    ADAuthenticationError,
    ADConnectionError,
    ADError,
    AmbiguousResultError,
    ConfigurationError,
    ConflictError,
    HasChildrenError,
    InsecureSessionError,
    MalformedSIDError,
    NotFoundError,
    ProvisioningError,
    TransportError,
)
from .models import (
    ADComputer,
    ADConfig,
    ADGroup,
    ADOU,
    ADUser,
    ComputerCreateRequest,
    DirectoryEntry,
    GroupCreateRequest,
    OUCreateRequest,
    UserCreateRequest,
)
from .reconciler import CreateResult
from .sid import SecurityIdentifier, decode_sid, uid_from_sid

__all__ = [
    "ADClient",
    "ADConfig",
    "ADComputer",
    "ADGroup",
    "ADOU",
    "ADUser",
    "ComputerCreateRequest",
    "CreateResult",
    "DirectoryEntry",
    "GroupCreateRequest",
    "OUCreateRequest",
    "UserCreateRequest",
    "SecurityIdentifier",
    "decode_sid",
    "uid_from_sid",
    "ADError",
    "ADAuthenticationError",
    "ADConnectionError",
    "AmbiguousResultError",
    "ConfigurationError",
    "ConflictError",
    "HasChildrenError",
    "InsecureSessionError",
    "MalformedSIDError",
    "NotFoundError",
    "ProvisioningError",
    "TransportError",
]
