"""Project constants and settings loaded from the environment / .env file."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigError

DEFAULT_RPC_ENDPOINT = "https://api.shelbynet.shelby.xyz/shelby"
DEFAULT_CONFIG_PATH = Path.home() / ".shelby" / "config.yaml"

CLI_DOCS_URL = "https://docs.shelby.xyz/tools/cli"
API_KEY_DOCS_URL = "https://geomi.dev"
APT_FAUCET_URL = "https://aptos.dev/network/faucet"
SHELBY_FAUCET_URL = "https://docs.shelby.xyz/apis/faucet/shelbyusd"
SHELBY_TICKER = "ShelbyUSD"

# Shared quickstart key; empty means requests go out unauthenticated and are
# subject to the anonymous rate limit.
DEFAULT_API_KEY = os.getenv("SHELBY_DEFAULT_API_KEY", "")

ENV_FILE = ".env"
LAST_UPLOAD_FILE = ".last_upload"
ASSETS_DIR = "assets"
DOWNLOADS_DIR = "downloads"
ACCOUNTS_FILE = "config.jsonl"
PROGRESS_FILE = "progress.json"


@dataclass
class Settings:
    account_address: Optional[str] = None
    account_private_key: Optional[str] = None
    account_name: Optional[str] = None
    api_key: Optional[str] = None
    rpc_endpoint: str = DEFAULT_RPC_ENDPOINT
    context_name: Optional[str] = None
    network_name: Optional[str] = None
    cli_config_path: Path = DEFAULT_CONFIG_PATH
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # Settings attribute -> environment variable, for error messages.
    ENV_NAMES = {
        "account_address": "SHELBY_ACCOUNT_ADDRESS",
        "account_private_key": "SHELBY_ACCOUNT_PRIVATE_KEY",
        "api_key": "SHELBY_API_KEY",
        "rpc_endpoint": "SHELBY_RPC_ENDPOINT",
    }

    @classmethod
    def from_env(cls, env_file: Optional[str] = ENV_FILE) -> "Settings":
        """Read settings from os.environ after merging the .env file (existing vars win)."""
        if env_file:
            load_dotenv(env_file)
        rpc = os.getenv("SHELBY_RPC_ENDPOINT") or os.getenv("SHELBY_RPC") or DEFAULT_RPC_ENDPOINT
        return cls(
            account_address=os.getenv("SHELBY_ACCOUNT_ADDRESS") or None,
            account_private_key=os.getenv("SHELBY_ACCOUNT_PRIVATE_KEY") or None,
            account_name=os.getenv("SHELBY_ACCOUNT_NAME") or None,
            api_key=os.getenv("SHELBY_API_KEY") or None,
            rpc_endpoint=rpc.rstrip("/"),
            context_name=os.getenv("SHELBY_CONTEXT_NAME") or None,
            network_name=os.getenv("SHELBY_NETWORK_NAME") or None,
            cli_config_path=Path(os.getenv("SHELBY_CONFIG_PATH") or DEFAULT_CONFIG_PATH).expanduser(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_file=os.getenv("LOG_FILE") or None,
        )

    def require(self, *fields: str) -> None:
        """Raise ConfigError for the first unset field."""
        for field in fields:
            if not getattr(self, field):
                env_name = self.ENV_NAMES.get(field, field.upper())
                raise ConfigError(f"{env_name} is not set in {ENV_FILE}")
