"""Gunicorn configuration file with secret loading for the provisioner API.

Run with:
    gunicorn -c gunicorn.conf.py

Secret Loading Priority (post_fork hook):
1. /run/secrets (Docker secrets - cached from Azure Key Vault or mounted locally)
   → Read by provisioner.config.settings at app creation; nothing to do here

2. Azure Key Vault direct access (fallback)
   → Only triggered if /run/secrets is empty AND AZURE_USE_KEYVAULT=true
   → Requires live Azure authentication (DefaultAzureCredential)
"""
import os
from pathlib import Path

wsgi_app = "provisioner.flask_app:create_app()"
bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.environ.get("GUNICORN_WORKERS", "2"))
# A run waits on directory eventual consistency; keep workers alive through it
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "600"))
loglevel = os.environ.get("LOG_LEVEL", "info")
# provisioner.* loggers propagate to root; give root gunicorn's console handler
logconfig_dict = {"root": {"level": loglevel.upper(), "handlers": ["console"]}}


def post_fork(server, worker):
    """
    Called just after a worker has been forked.

    Priority for secret loading:
    1. /run/secrets (Docker secrets)
    2. Azure Key Vault direct access
    """
    secrets_dir = Path("/run/secrets")
    if secrets_dir.exists() and secrets_dir.is_dir():
        secret_files = list(secrets_dir.glob("*"))
        if secret_files:
            worker.log.info(f"Found {len(secret_files)} secrets in /run/secrets (using cached secrets)")
            return

    use_kv = os.environ.get("AZURE_USE_KEYVAULT", "false").lower() == "true"
    if not use_kv:
        worker.log.info("Skipping Azure Key Vault direct access (AZURE_USE_KEYVAULT=false)")
        return

    try:
        from azure.identity import DefaultAzureCredential
        from azure.keyvault.secrets import SecretClient
    except ImportError:
        worker.log.error("Azure Key Vault requested but azure-keyvault-secrets not installed (pip install .[server])")
        return

    vault_name = os.environ.get("AZURE_KEY_VAULT_NAME")
    if not vault_name:
        worker.log.error("AZURE_KEY_VAULT_NAME required when AZURE_USE_KEYVAULT=true")
        return

    vault_uri = f"https://{vault_name}.vault.azure.net"
    credential = DefaultAzureCredential()
    secret_client = SecretClient(vault_url=vault_uri, credential=credential)

    # Map environment variables to Key Vault secret names
    secret_mapping = {
        "AZURE_CLIENT_SECRET": os.environ.get("AZURE_SECRET_CLIENT_SECRET", "provisioner-client-secret"),
        "AUDIT_LOG_SIGNING_KEY": os.environ.get("AZURE_SECRET_AUDIT_LOG_SIGNING_KEY", "audit-log-signing-key"),
    }

    for env_name, secret_name in secret_mapping.items():
        if os.environ.get(env_name):  # Skip if already set
            continue
        secret_name = secret_name.strip()
        if not secret_name:
            continue
        try:
            secret = secret_client.get_secret(secret_name)
            os.environ[env_name] = secret.value
            worker.log.info(f"Loaded secret '{secret_name}' into {env_name}")
        except Exception as exc:
            worker.log.error(f"Failed to load secret '{secret_name}': {exc}")

    worker.log.info("Azure Key Vault secrets loaded")
