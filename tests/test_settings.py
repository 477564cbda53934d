import logging

import pytest
from pydantic import ValidationError

from winad import ADClient, ADConfig, ConfigurationError
from winad.log_config import setup_logging
from winad.settings import EnvSettings


@pytest.fixture
def ad_env(monkeypatch):
    monkeypatch.setenv("AD_DC", " dc01 ")
    monkeypatch.setenv("AD_DOMAIN", "Example.COM")
    monkeypatch.setenv("AD_BIND_USERNAME", "svc-ad")
    monkeypatch.setenv("AD_BIND_PASSWORD", "pw")
    return monkeypatch


def test_defaults_to_ldaps(ad_env):
    cfg = EnvSettings(_env_file=None).to_config()

    assert cfg.host == "dc01.example.com"
    assert cfg.port == 636
    assert cfg.use_ssl is True
    assert cfg.starttls is False
    assert cfg.bind_principal == "svc-ad@example.com"
    assert cfg.base_dn == "dc=example,dc=com"


def test_starttls_mode(ad_env):
    ad_env.setenv("AD_CONN_MODE", "starttls")
    ad_env.setenv("AD_TLS_VALIDATE", "true")

    cfg = EnvSettings(_env_file=None).to_config()

    assert cfg.port == 389
    assert cfg.use_ssl is False
    assert cfg.starttls is True
    assert cfg.encrypted is True
    assert cfg.tls_validate is True


def test_explicit_port_wins(ad_env):
    ad_env.setenv("AD_CONN_MODE", "plain")
    ad_env.setenv("AD_PORT", "3268")

    cfg = EnvSettings(_env_file=None).to_config()

    assert cfg.port == 3268
    assert cfg.encrypted is False


@pytest.mark.parametrize("domain", ["", "example.com.", "bad_label.com", "a..b"])
def test_invalid_domain_is_rejected(ad_env, domain):
    ad_env.setenv("AD_DOMAIN", domain)
    with pytest.raises(ValidationError):
        EnvSettings(_env_file=None)


def test_unknown_conn_mode_is_rejected(ad_env):
    ad_env.setenv("AD_CONN_MODE", "ssl")
    with pytest.raises(ValidationError):
        EnvSettings(_env_file=None)


def test_client_requires_domain_and_bind_user():
    cfg = ADConfig(
        dc_short="dc01", domain="", port=636, use_ssl=True, starttls=False,
        bind_username="svc-ad", bind_password="pw",
    )
    with pytest.raises(ConfigurationError):
        ADClient(cfg)

    cfg.domain = "example.com"
    cfg.bind_username = ""
    with pytest.raises(ConfigurationError):
        ADClient(cfg)


def test_setup_logging_writes_file(tmp_path):
    root = logging.getLogger()
    saved_level, saved_handlers = root.level, list(root.handlers)
    try:
        setup_logging("debug", log_dir=str(tmp_path))
        setup_logging("info", log_dir=str(tmp_path))
        logging.getLogger("winad.test").info("hello")

        assert logging.getLogger("ldap3").level == logging.WARNING
        for h in root.handlers:
            h.flush()
        assert "hello" in (tmp_path / "winad.log").read_text(encoding="utf-8")
        # reconfiguring replaces our handlers instead of stacking them
        ours = [h for h in root.handlers if h not in saved_handlers]
        assert len(ours) == 2
    finally:
        for h in list(root.handlers):
            if h not in saved_handlers:
                root.removeHandler(h)
                h.close()
        root.setLevel(saved_level)
