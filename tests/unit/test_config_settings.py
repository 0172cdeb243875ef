import pytest

from provisioner.config import settings
from provisioner.config.settings import load_settings
from tests.fakes import make_config

TENANT = "11111111-1111-1111-1111-111111111111"
CLIENT = "22222222-2222-2222-2222-222222222222"


def base_env(**extra):
    env = {"AZURE_TENANT_ID": TENANT, "AZURE_CLIENT_ID": CLIENT, "AZURE_CLIENT_SECRET": "s3cr3t"}
    env.update(extra)
    return env


def test_load_settings_defaults():
    cfg = load_settings(base_env())

    assert cfg.tenant_id == TENANT
    assert cfg.client_id == CLIENT
    assert cfg.client_secret == "s3cr3t"
    assert cfg.environment == "dev"
    assert cfg.application_prefix == "myapp"
    assert cfg.display_prefix == "myapp-dev"
    assert cfg.generate_secrets is True
    assert cfg.enable_cross_permissions is True
    assert cfg.principal_create_attempts == 5
    assert cfg.principal_create_delay == 5.0
    assert cfg.authorization_initial_delay == 10.0
    assert cfg.authorization_attempts == 3
    assert cfg.authorization_retry_delay == 2.0
    assert cfg.graph_base_url == "https://graph.microsoft.com/v1.0"


def test_load_settings_overrides():
    cfg = load_settings(base_env(
        PROVISION_ENVIRONMENT="PROD",
        APPLICATION_PREFIX="contoso",
        GENERATE_SECRETS="false",
        ENABLE_CROSS_PERMISSIONS="0",
        PRINCIPAL_CREATE_ATTEMPTS="8",
        AUTHORIZATION_INITIAL_DELAY="0",
        GRAPH_BASE_URL="https://graph.microsoft.us/v1.0/",
        AUDIT_LOG_DIR="/var/log/provisioner",
        AUDIT_LOG_SIGNING_KEY="sign",
    ))

    assert cfg.environment == "prod"
    assert cfg.application_prefix == "contoso"
    assert cfg.generate_secrets is False
    assert cfg.enable_cross_permissions is False
    assert cfg.principal_create_attempts == 8
    assert cfg.authorization_initial_delay == 0.0
    assert cfg.graph_base_url == "https://graph.microsoft.us/v1.0"
    assert cfg.audit_log_dir == "/var/log/provisioner"
    assert cfg.audit_log_signing_key == "sign"


@pytest.mark.parametrize("missing", ["AZURE_TENANT_ID", "AZURE_CLIENT_ID"])
def test_missing_required_variable(missing):
    env = base_env()
    del env[missing]

    with pytest.raises(RuntimeError, match=missing):
        load_settings(env)


@pytest.mark.parametrize("env", [
    {"AZURE_TENANT_ID": "not-a-guid"},
    {"PROVISION_ENVIRONMENT": "staging"},
    {"APPLICATION_PREFIX": "has-dash"},
    {"PRINCIPAL_CREATE_ATTEMPTS": "many"},
    {"GRANT_SPACING_DELAY": "-1"},
])
def test_invalid_values_raise(env):
    with pytest.raises(RuntimeError):
        load_settings(base_env(**env))


def test_secret_file_takes_precedence(_isolate_run_secrets):
    (_isolate_run_secrets / "azure_client_secret").write_text("from-file\n")

    cfg = load_settings(base_env())

    assert cfg.client_secret == "from-file"


def test_missing_secret_still_loads(capsys):
    env = base_env()
    del env["AZURE_CLIENT_SECRET"]

    cfg = load_settings(env)

    assert cfg.client_secret == ""
    assert "AZURE_CLIENT_SECRET not set" in capsys.readouterr().out


def test_client_secret_resolved_prefers_config_value():
    assert make_config(client_secret="from-config").client_secret_resolved == "from-config"


def test_dashed_docker_secret_is_loaded(_isolate_run_secrets):
    (_isolate_run_secrets / "azure-client-secret").write_text("dashed\n")
    env = base_env()
    del env["AZURE_CLIENT_SECRET"]

    assert load_settings(env).client_secret_resolved == "dashed"


def test_client_secret_resolved_ignores_late_environment(monkeypatch, _isolate_run_secrets):
    cfg = make_config(client_secret="")
    monkeypatch.setenv("AZURE_CLIENT_SECRET", "set-after-startup")
    (_isolate_run_secrets / "azure_client_secret").write_text("mounted-after-startup\n")

    with pytest.raises(ValueError, match="AZURE_CLIENT_SECRET"):
        cfg.client_secret_resolved


def test_client_secret_resolved_raises_when_absent():
    with pytest.raises(ValueError, match="AZURE_CLIENT_SECRET"):
        make_config(client_secret="").client_secret_resolved


def test_load_secret_from_file_env_fallback(capsys):
    value = settings._load_secret_from_file("missing_secret", "MY_SECRET", {"MY_SECRET": "v"})

    assert value == "v"
    assert "Loaded MY_SECRET from environment" in capsys.readouterr().out
