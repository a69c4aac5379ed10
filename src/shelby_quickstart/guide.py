"""Interactive setup: pick an account and context from the Shelby CLI config and write .env."""
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import yaml
from rich.console import Console
from rich.prompt import Confirm, Prompt

from .config import CLI_DOCS_URL, DEFAULT_API_KEY, ENV_FILE
from .errors import ConfigError

# confirm(message, default) -> bool
ConfirmFn = Callable[[str, bool], bool]
# choose(message, [(label, value), ...], default_value) -> value
ChooseFn = Callable[[str, List[Tuple[str, str]], Optional[str]], str]
# ask(message, default) -> str
AskFn = Callable[[str, Optional[str]], str]

NETWORK_FIELDS = ("name", "fullnode", "faucet", "indexer", "pepper", "prover")


@dataclass
class AccountSettings:
    account_name: str
    address: str
    private_key: str


@dataclass
class ContextSettings:
    context_name: str
    network: Dict[str, str] = field(default_factory=dict)
    rpc: str = ""


@dataclass
class EnvSettings:
    account: AccountSettings
    context: ContextSettings
    api_key: str


def truncate(value: str, head: int = 6, tail: int = 4) -> str:
    """Shorten a long address for display: 0x1234...abcd."""
    if len(value) <= head + tail + 3:
        return value
    return f"{value[:head]}...{value[-tail:]}"


# ----------------------- Prompt defaults (rich) -----------------------

def rich_confirm(message: str, default: bool) -> bool:
    return Confirm.ask(message, default=default)


def rich_choose(message: str, choices: List[Tuple[str, str]], default: Optional[str] = None) -> str:
    console = Console()
    console.print(message)
    default_number = None
    for number, (label, value) in enumerate(choices, start=1):
        console.print(f"  [cyan]{number}[/cyan]) {label}")
        if value == default:
            default_number = str(number)
    numbers = [str(n) for n in range(1, len(choices) + 1)]
    picked = Prompt.ask("Enter a number", choices=numbers, default=default_number or numbers[0])
    return choices[int(picked) - 1][1]


def rich_ask(message: str, default: Optional[str] = None) -> str:
    if default is None:
        return Prompt.ask(message)
    return Prompt.ask(message, default=default)


# ----------------------- Steps -----------------------

def env_check(config_path: Union[str, Path], which: Callable[[str], Optional[str]] = shutil.which) -> Dict[str, Any]:
    """Make sure the Shelby CLI is installed and its config file is readable.

    :raises ConfigError: With an instruction for the user when something is missing.
    :return: The parsed CLI config.
    """
    if not which("shelby"):
        raise ConfigError(f"Shelby CLI not found in PATH. Please install the Shelby CLI\n See: {CLI_DOCS_URL}")
    path = Path(config_path).expanduser()
    if not path.exists():
        raise ConfigError(
            f"Shelby CLI config not found. Please run `shelby init` to initialize Shelby CLI.\n See: {CLI_DOCS_URL}")
    try:
        config = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(
            f"Shelby CLI config file {path} is invalid.\n"
            f"Please fix, or delete the file and run `shelby init` again.\n See: {CLI_DOCS_URL}") from e
    if not isinstance(config, dict):
        raise ConfigError(
            f"Shelby CLI config file {path} is invalid.\n"
            f"Please fix, or delete the file and run `shelby init` again.\n See: {CLI_DOCS_URL}")
    return config


def _account(accounts: Dict[str, Any], name: str) -> AccountSettings:
    entry = accounts[name] or {}
    return AccountSettings(account_name=name, address=entry.get("address", ""),
                           private_key=entry.get("private_key", ""))


def select_account(config: Dict[str, Any], confirm: ConfirmFn = rich_confirm,
                   choose: ChooseFn = rich_choose, on_found: Optional[Callable[[str], None]] = None
                   ) -> Optional[AccountSettings]:
    """Pick the account to write into .env.

    A single account is used without asking; otherwise the default account is
    offered first, then the full list.
    """
    accounts = config.get("accounts") or {}
    names = list(accounts)
    if not names:
        return None
    if len(names) == 1:
        if on_found:
            on_found(names[0])
        return _account(accounts, names[0])
    default = config.get("default_account")
    if default in accounts:
        address = (accounts[default] or {}).get("address", "")
        if confirm(f'Use default account "{default}" ({truncate(address)}) from Shelby CLI config?', True):
            return _account(accounts, default)
    choices = [(f"{name} ({truncate((accounts[name] or {}).get('address', ''))})", name) for name in names]
    selected = choose("Which account do you want to use?", choices, default)
    return _account(accounts, selected)


def _context(contexts: Dict[str, Any], name: str) -> ContextSettings:
    entry = contexts[name] or {}
    network = entry.get("aptos_network") or {}
    if not isinstance(network, dict):
        network = {"name": str(network)}
    return ContextSettings(context_name=name,
                           network={k: str(v) for k, v in network.items() if v is not None},
                           rpc=entry.get("shelby_rpc_endpoint", "") or "")


def select_context(config: Dict[str, Any], confirm: ConfirmFn = rich_confirm,
                   choose: ChooseFn = rich_choose) -> Optional[ContextSettings]:
    contexts = config.get("contexts") or {}
    names = list(contexts)
    if not names:
        return None
    default = config.get("default_context")
    if default in contexts:
        if confirm(f"Would you like to use default {default} context from Shelby config?", True):
            return _context(contexts, default)
    selected = choose("Which Shelby context would you like to use?", [(name, name) for name in names], default)
    return _context(contexts, selected)


def prompt_api_key(confirm: ConfirmFn = rich_confirm, ask: AskFn = rich_ask,
                   on_skip: Optional[Callable[[], None]] = None) -> str:
    """Ask for the user's API key; without one, the shared default key is used."""
    if not confirm("Do you have an API key yet? (optional)", False):
        if on_skip:
            on_skip()
        return DEFAULT_API_KEY
    return ask("Please enter your API key", None).strip()


def render_env(settings: EnvSettings) -> str:
    network = settings.context.network
    lines = [
        f"SHELBY_ACCOUNT_NAME={settings.account.account_name}",
        f"SHELBY_ACCOUNT_ADDRESS={settings.account.address}",
        f"SHELBY_ACCOUNT_PRIVATE_KEY={settings.account.private_key}",
        f"SHELBY_CONTEXT_NAME={settings.context.context_name}",
        f"SHELBY_API_KEY={settings.api_key}",
        f"SHELBY_RPC_ENDPOINT={settings.context.rpc}",
    ]
    for name in NETWORK_FIELDS:
        env_name = "SHELBY_NETWORK_NAME" if name == "name" else f"SHELBY_{name.upper()}"
        lines.append(f"{env_name}={network.get(name, '')}")
    return "\n".join(lines) + "\n"


def write_env_file(settings: EnvSettings, path: Union[str, Path] = ENV_FILE) -> Optional[OSError]:
    """Write the .env file; returns the error instead of raising so the caller can explain it."""
    try:
        Path(path).write_text(render_env(settings), encoding="utf-8")
        return None
    except OSError as e:
        return e
