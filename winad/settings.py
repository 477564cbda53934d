from __future__ import annotations

import re
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import ADConfig

ADConnMode = Literal["ldaps", "starttls", "plain"]

_DEFAULT_PORTS = {"ldaps": 636, "starttls": 389, "plain": 389}


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    dc_short: str = Field("", alias="AD_DC", max_length=255)
    domain: str = Field(..., alias="AD_DOMAIN", max_length=255)
    conn_mode: ADConnMode = Field("ldaps", alias="AD_CONN_MODE")
    port: Optional[int] = Field(None, alias="AD_PORT", ge=1, le=65535)

    bind_username: str = Field(..., alias="AD_BIND_USERNAME", max_length=512)
    bind_password: str = Field(..., alias="AD_BIND_PASSWORD")

    tls_validate: bool = Field(False, alias="AD_TLS_VALIDATE")
    ca_pem: str = Field("", alias="AD_CA_PEM")
    connect_timeout: float = Field(10.0, alias="AD_CONNECT_TIMEOUT", gt=0)

    log_level: str = Field("INFO", alias="AD_LOG_LEVEL")

    @field_validator("dc_short", "domain", "bind_username")
    @classmethod
    def _strip(cls, v: str) -> str:
        return (v or "").strip()

    @field_validator("domain")
    @classmethod
    def _validate_domain(cls, v: str) -> str:
        s = (v or "").strip().lower()
        if not s:
            raise ValueError("AD domain must not be empty.")
        if s[-1] in ".,;":
            raise ValueError("Domain name must not end with a dot, comma or semicolon.")
        labels = s.split(".")
        for lab in labels:
            if not lab:
                raise ValueError("Invalid domain name: empty label between dots.")
            if len(lab) > 63:
                raise ValueError(f"Invalid domain name: label '{lab}' is too long (max 63).")
            if not re.fullmatch(r"[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?", lab):
                raise ValueError(f"Invalid domain name: bad characters in label '{lab}'.")
        if len(s) > 253:
            raise ValueError("Invalid domain name: too long (max 253).")
        return s

    def to_config(self) -> ADConfig:
        return ADConfig(
            dc_short=self.dc_short,
            domain=self.domain,
            port=self.port or _DEFAULT_PORTS[self.conn_mode],
            use_ssl=self.conn_mode == "ldaps",
            starttls=self.conn_mode == "starttls",
            bind_username=self.bind_username,
            bind_password=self.bind_password,
            tls_validate=self.tls_validate,
            ca_pem=self.ca_pem,
            connect_timeout=self.connect_timeout,
        )


@lru_cache(maxsize=1)
def get_env() -> EnvSettings:
    return EnvSettings()
