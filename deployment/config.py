import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from .exceptions import ConfigurationError

TRUE_VALUES = ("1", "true", "yes", "on")


def _int_env(name: str, default: Optional[int] = None) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


@dataclass
class MigrationConfig:
    """Runtime settings for a migration run, read from the environment."""

    rpc_url: str = "http://localhost:8545"
    private_key: Optional[str] = None
    chain_id: Optional[int] = None
    build_dir: str = "build/contracts"
    migrations_dir: str = "migrations"
    deployment_file: str = "deployment.json"
    artifact_map: Optional[str] = None
    gas_limit: int = 6000000
    gas_price: Optional[int] = None
    tx_timeout: int = 300
    poa_chain: bool = True
    log_file: str = "migrations.log"

    # Alerting
    slack_webhook: Optional[str] = None
    smtp_server: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    notification_email: Optional[str] = None

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "MigrationConfig":
        # Search from the working directory, not from this installed package.
        load_dotenv(dotenv_path or find_dotenv(usecwd=True))

        private_key = os.getenv("PRIVATE_KEY")
        if not private_key:
            raise ConfigurationError("PRIVATE_KEY not found in environment")

        return cls(
            rpc_url=os.getenv("RPC_URL", "http://localhost:8545"),
            private_key=private_key,
            chain_id=_int_env("CHAIN_ID"),
            build_dir=os.getenv("BUILD_DIR", "build/contracts"),
            migrations_dir=os.getenv("MIGRATIONS_DIR", "migrations"),
            deployment_file=os.getenv("DEPLOYMENT_FILE", "deployment.json"),
            artifact_map=os.getenv("ARTIFACT_MAP") or None,
            gas_limit=_int_env("GAS_LIMIT", 6000000),
            gas_price=_int_env("GAS_PRICE"),
            tx_timeout=_int_env("TX_TIMEOUT", 300),
            poa_chain=os.getenv("POA_CHAIN", "true").lower() in TRUE_VALUES,
            log_file=os.getenv("LOG_FILE", "migrations.log"),
            slack_webhook=os.getenv("SLACK_WEBHOOK") or None,
            smtp_server=os.getenv("SMTP_SERVER", "smtp.gmail.com"),
            smtp_port=_int_env("SMTP_PORT", 587),
            smtp_username=os.getenv("SMTP_USERNAME"),
            smtp_password=os.getenv("SMTP_PASSWORD"),
            notification_email=os.getenv("NOTIFICATION_EMAIL"),
        )
