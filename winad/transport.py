from __future__ import annotations

import hashlib
import logging
import os
import ssl
import tempfile
from typing import Any, Iterable, Mapping, Sequence

from ldap3 import (
    ALL,
    BASE,
    LEVEL,
    MODIFY_ADD,
    MODIFY_DELETE,
    MODIFY_REPLACE,
    SUBTREE,
    SYNC,
    Connection,
    Server,
    Tls,
)
from ldap3.core.exceptions import LDAPException

from .errors import ADAuthenticationError, ADConnectionError, TransportError
from .models import ADConfig, DirectoryEntry

log = logging.getLogger(__name__)

RESULT_SUCCESS = 0
RESULT_SIZE_LIMIT_EXCEEDED = 4
RESULT_NO_SUCH_OBJECT = 32

SCOPES = {"base": BASE, "level": LEVEL, "subtree": SUBTREE}

AttributeValues = Sequence[Any]


def _as_values(v: Any) -> list[Any]:
    if v is None:
        return []
    if isinstance(v, (list, tuple)):
        return list(v)
    return [v]


def _to_text(v: Any) -> str:
    if isinstance(v, (bytes, bytearray)):
        return bytes(v).decode("utf-8", errors="replace")
    return str(v)


def _to_raw(v: Any) -> bytes:
    if isinstance(v, (bytes, bytearray)):
        return bytes(v)
    return str(v).encode("utf-8")


class Transport:
    """One ldap3 session to a domain controller.

    Not thread-safe: use one Transport per thread.
    """

    @staticmethod
    def _normalize_pem(pem: str) -> str:
        """Normalize PEM text (strip outer whitespace and normalize line endings)."""
        data = (pem or "").strip()
        data = data.replace("\r\n", "\n").replace("\r", "\n")
        return data

    @staticmethod
    def _ensure_ca_file(pem: str) -> str:
        """Materialize CA PEM into a stable file path.

        ldap3.Tls takes ca_certs_file; the file name carries a content hash so
        several processes reuse the same file.
        """
        data = Transport._normalize_pem(pem)
        if not data:
            return ""

        if "-----BEGIN CERTIFICATE-----" not in data or "-----END CERTIFICATE-----" not in data:
            raise ADConnectionError("CA PEM does not look like a certificate (expected a BEGIN/END CERTIFICATE block)")

        h = hashlib.sha256(data.encode("utf-8")).hexdigest()[:16]
        path = os.path.join(tempfile.gettempdir(), f"winad_ca_{h}.pem")

        if os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                if f.read().strip() == data:
                    return path

        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(data + "\n")
            os.chmod(path, 0o600)
        except OSError as e:
            raise ADConnectionError(f"cannot write CA file {path}: {e}") from e
        return path

    def __init__(
        self,
        cfg: ADConfig,
        *,
        server: Server | None = None,
        client_strategy: str = SYNC,
    ) -> None:
        self.cfg = cfg
        self.client_strategy = client_strategy
        self.server = server if server is not None else self._build_server(cfg)
        self.connection: Connection | None = None

    @classmethod
    def _build_server(cls, cfg: ADConfig) -> Server:
        tls_kwargs: dict[str, Any] = {
            "validate": ssl.CERT_REQUIRED if cfg.tls_validate else ssl.CERT_NONE,
        }
        # Apply custom CA only when verification is enabled.
        ca_pem = cls._normalize_pem(cfg.ca_pem or "")
        if cfg.tls_validate and ca_pem:
            tls_kwargs["ca_certs_file"] = cls._ensure_ca_file(ca_pem)

        return Server(
            host=cfg.host,
            port=cfg.port,
            use_ssl=cfg.use_ssl,
            get_info=ALL,
            tls=Tls(**tls_kwargs),
            connect_timeout=cfg.connect_timeout,
        )

    @property
    def encrypted(self) -> bool:
        if self.connection is not None and self.connection.tls_started:
            return True
        return bool(self.server.ssl) or self.cfg.starttls

    # ── Session ──

    def open(self) -> Connection:
        if not self.cfg.host:
            raise ADConnectionError("no domain controller host configured")
        log.info("Connecting to %s:%d (ssl=%s, starttls=%s)", self.cfg.host, self.cfg.port, self.cfg.use_ssl, self.cfg.starttls)

        conn = Connection(
            self.server,
            user=self.cfg.bind_principal,
            password=self.cfg.bind_password,
            auto_bind=False,
            client_strategy=self.client_strategy,
            raise_exceptions=False,
        )
        try:
            conn.open()
            if self.cfg.starttls:
                conn.start_tls()
        except LDAPException as e:
            raise ADConnectionError(f"cannot connect to {self.cfg.host}:{self.cfg.port}: {e}") from e
        self.connection = conn
        return conn

    def bind(self) -> None:
        conn = self._require_connection("bind", self.cfg.bind_principal)
        log.info("Authenticating %s", self.cfg.bind_principal)
        try:
            ok = bool(conn.bind())
        except LDAPException as e:
            raise ADConnectionError(f"bind as {self.cfg.bind_principal} failed: {e}") from e
        if not ok:
            res = dict(conn.result or {})
            raise ADAuthenticationError(
                f"bind as {self.cfg.bind_principal} rejected: {res.get('description') or 'unknown error'}"
            )
        log.info("Connected to %s:%d", self.cfg.host, self.cfg.port)

    def close(self) -> None:
        conn, self.connection = self.connection, None
        if conn is None:
            return
        try:
            conn.unbind()
        except LDAPException as e:
            log.warning("unbind from %s failed: %s", self.cfg.host, e)

    # ── Operations ──

    def _require_connection(self, operation: str, dn: str) -> Connection:
        if self.connection is None:
            raise TransportError(operation, dn, "session is not open")
        return self.connection

    def _failure(self, operation: str, dn: str) -> TransportError:
        res = dict(self.connection.result or {}) if self.connection else {}
        desc = res.get("description") or res.get("message") or "unknown error"
        message = res.get("message")
        if message and message != desc:
            desc = f"{desc} ({message})"
        return TransportError(operation, dn, desc, res.get("result"))

    def search(
        self,
        base_dn: str,
        search_filter: str,
        attributes: Iterable[str] | None = None,
        scope: str = "subtree",
        size_limit: int = 0,
    ) -> list[DirectoryEntry]:
        """Search and decode entries.

        A missing base yields no entries. With `size_limit` set, a truncated
        result (sizeLimitExceeded) returns the entries that came back.
        """
        conn = self._require_connection("search", base_dn)
        attrs = list(attributes) if attributes else ["objectClass"]
        try:
            conn.search(
                search_base=base_dn,
                search_filter=search_filter,
                search_scope=SCOPES[scope],
                attributes=attrs,
                size_limit=size_limit,
            )
        except LDAPException as e:
            raise TransportError("search", base_dn, str(e)) from e

        code = (conn.result or {}).get("result")
        if code == RESULT_NO_SUCH_OBJECT:
            return []
        truncated = code == RESULT_SIZE_LIMIT_EXCEEDED and size_limit > 0 and bool(conn.response)
        if code != RESULT_SUCCESS and not truncated:
            raise self._failure("search", base_dn)

        entries: list[DirectoryEntry] = []
        for item in conn.response or []:
            if item.get("type") != "searchResEntry":
                continue
            raw = item.get("raw_attributes") or {}
            decoded = item.get("attributes") or {}
            entries.append(
                DirectoryEntry(
                    dn=str(item.get("dn") or ""),
                    attributes={k: tuple(_to_text(v) for v in _as_values(vals)) for k, vals in decoded.items()},
                    raw_attributes={k: tuple(_to_raw(v) for v in _as_values(vals)) for k, vals in raw.items()},
                )
            )
        return entries

    def add(self, dn: str, object_classes: Sequence[str], attributes: Mapping[str, AttributeValues]) -> None:
        conn = self._require_connection("add", dn)
        try:
            ok = bool(conn.add(dn, object_class=list(object_classes), attributes=dict(attributes)))
        except LDAPException as e:
            raise TransportError("add", dn, str(e)) from e
        if not ok:
            raise self._failure("add", dn)

    def modify(
        self,
        dn: str,
        add: Mapping[str, AttributeValues] | None = None,
        replace: Mapping[str, AttributeValues] | None = None,
        delete: Mapping[str, AttributeValues] | None = None,
    ) -> None:
        changes: dict[str, list[tuple[str, list[Any]]]] = {}
        for op, attrs in ((MODIFY_ADD, add), (MODIFY_REPLACE, replace), (MODIFY_DELETE, delete)):
            for name, values in (attrs or {}).items():
                changes.setdefault(name, []).append((op, list(values)))
        if not changes:
            return

        conn = self._require_connection("modify", dn)
        try:
            ok = bool(conn.modify(dn, changes))
        except LDAPException as e:
            raise TransportError("modify", dn, str(e)) from e
        if not ok:
            raise self._failure("modify", dn)

    def modify_dn(self, dn: str, new_rdn: str, delete_old_rdn: bool = True, new_superior: str | None = None) -> None:
        conn = self._require_connection("modify_dn", dn)
        try:
            ok = bool(conn.modify_dn(dn, new_rdn, delete_old_dn=delete_old_rdn, new_superior=new_superior))
        except LDAPException as e:
            raise TransportError("modify_dn", dn, str(e)) from e
        if not ok:
            raise self._failure("modify_dn", dn)

    def delete(self, dn: str) -> None:
        conn = self._require_connection("delete", dn)
        try:
            ok = bool(conn.delete(dn))
        except LDAPException as e:
            raise TransportError("delete", dn, str(e)) from e
        if not ok:
            raise self._failure("delete", dn)
