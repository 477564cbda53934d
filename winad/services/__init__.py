"""Per-kind directory services.

Each service composes a Reconciler over the shared ObjectRepository:
    from winad.services import UserService, GroupService, OUService, ComputerService
"""

from .computers import COMPUTER_KIND, ComputerService
from .groups import GROUP_KIND, GroupService
from .ous import OU_KIND, OUService
from .users import USER_KIND, UserService

__all__ = [
    "COMPUTER_KIND",
    "GROUP_KIND",
    "OU_KIND",
    "USER_KIND",
    "ComputerService",
    "GroupService",
    "OUService",
    "UserService",
]
