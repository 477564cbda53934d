from __future__ import annotations

import logging
from typing import Optional

from ldap3 import SYNC, Server

from .errors import ConfigurationError
from .models import ADConfig
from .repository import ObjectRepository
from .services import ComputerService, GroupService, OUService, UserService
from .transport import Transport

log = logging.getLogger(__name__)


class ADClient:
    """Entry point: owns one Transport session, lends it to the services.

    Usage:
        with ADClient(cfg) as ad:
            ad.ous.create_ou(OUCreateRequest(name="People", container=ad.domain_dn))
    """

    def __init__(
        self,
        cfg: ADConfig,
        *,
        server: Optional[Server] = None,
        client_strategy: str = SYNC,
    ) -> None:
        if not cfg.domain:
            raise ConfigurationError("no AD domain configured")
        if not cfg.bind_principal:
            raise ConfigurationError("no bind user configured")

        self.cfg = cfg
        self.transport = Transport(cfg, server=server, client_strategy=client_strategy)
        self.repository = ObjectRepository(self.transport, domain=cfg.domain, domain_dn=cfg.base_dn)
        self.users = UserService(self.repository)
        self.groups = GroupService(self.repository)
        self.ous = OUService(self.repository)
        self.computers = ComputerService(self.repository)

    @classmethod
    def from_env(cls) -> "ADClient":
        from .settings import get_env

        return cls(get_env().to_config())

    @property
    def domain_dn(self) -> str:
        return self.cfg.base_dn

    def connect(self) -> "ADClient":
        self.transport.open()
        try:
            self.transport.bind()
        except Exception:
            self.transport.close()
            raise
        return self

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> "ADClient":
        return self.connect()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
