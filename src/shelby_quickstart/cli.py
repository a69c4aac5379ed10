"""Command-line entry points: setup wizard, upload/list/download, and the batch uploader."""
import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.filesize import decimal
from typing_extensions import Annotated

from . import __version__
from .accounts import convert_csv_to_jsonl
from .client import ShelbyClient
from .config import (
    ACCOUNTS_FILE,
    API_KEY_DOCS_URL,
    APT_FAUCET_URL,
    ASSETS_DIR,
    CLI_DOCS_URL,
    DEFAULT_API_KEY,
    DOWNLOADS_DIR,
    PROGRESS_FILE,
    SHELBY_FAUCET_URL,
    SHELBY_TICKER,
    Settings,
)
from .driver import BatchUploadDriver, DriverConfig, sdk_upload
from .errors import (
    AccountsFileError,
    ConfigError,
    UploadErrorKind,
    classify_upload_error,
    funding_token_for,
    is_not_found,
    is_rate_limited,
    is_server_error,
)
from .expiration import EXPIRATION_CHOICES, expiration_micros, find_expiration, format_duration
from .guide import (
    EnvSettings,
    env_check,
    prompt_api_key,
    rich_ask,
    rich_choose,
    select_account,
    select_context,
    truncate,
    write_env_file,
)
from .logging_utils import configure_logging
from .payload import PlaceholderImageSource, RetryPolicy, SyntheticPayloadSource
from .progress import get_last_upload, set_last_upload
from .signer import derive_signer

app = typer.Typer(help="Shelby quickstart - upload, list and download blobs on the Shelby network.")
console = Console()
err_console = Console(stderr=True)

CANCELLED = (KeyboardInterrupt, EOFError)


def _version_callback(value: bool):
    if value:
        typer.echo(f"shelby-quickstart {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[Optional[bool], typer.Option("--version", callback=_version_callback, is_eager=True,
                                                    help="Show version and exit.")] = None,
):
    """Shelby quickstart scripts."""


def _load_settings(*required: str) -> Settings:
    settings = Settings.from_env()
    try:
        settings.require(*required)
    except ConfigError as e:
        err_console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(1)
    return settings


def _cmd(command: str) -> str:
    return f"[black on magenta] {command} [/black on magenta]"


def _faucet_url(token: str, address: str) -> str:
    base = APT_FAUCET_URL if token == "APT" else SHELBY_FAUCET_URL
    return f"{base}?address={address}"


# ----------------------- config -----------------------

@app.command("config")
def config_command(
    env_file: Annotated[Path, typer.Option("--env-file", help="Where to write the settings.")] = Path(".env"),
):
    """Pick an account and context from the Shelby CLI config and write a .env file."""
    settings = Settings.from_env(env_file=None)
    try:
        cli_config = env_check(settings.cli_config_path)
    except ConfigError as e:
        err_console.print(f"[bold]{e}[/bold]")
        raise typer.Exit(1)

    try:
        account = select_account(
            cli_config,
            on_found=lambda name: console.print(
                f"[green]✔[/green] [bold]Found profile for [cyan]{name}[/cyan] in Shelby CLI config[/bold]"),
        )
        if account is None:
            err_console.print(
                f"[bold]No accounts found in: [cyan]{settings.cli_config_path}[/cyan]\n"
                f"Please run {_cmd('shelby account create')} and try again.\n See: {CLI_DOCS_URL}[/bold]")
            raise typer.Exit(1)
        context = select_context(cli_config)
        if context is None:
            err_console.print(
                f"No contexts found in Shelby config. Please create one with {_cmd('shelby context create')} "
                f"or use default settings.\n See: {CLI_DOCS_URL}")
            raise typer.Exit(1)
        api_key = prompt_api_key(on_skip=lambda: console.print(
            "\nPlease consider obtaining an API key after completing this quickstart guide."
            f"\nCreate an account for free at: [cyan]{API_KEY_DOCS_URL}[/cyan]\n"))
    except CANCELLED:
        err_console.print("[bold]Configuration canceled. No file written.[/bold]")
        raise typer.Exit(1)

    error = write_env_file(EnvSettings(account=account, context=context, api_key=api_key), env_file)
    if error:
        err_console.print(f"[bold]An error occurred while writing the [cyan]{env_file}[/cyan] file:[/bold]")
        err_console.print(str(error))
        raise typer.Exit(1)
    console.print(
        f"[bold]Created [cyan]{env_file}[/cyan] file with selected account settings. Next:\n\n"
        "1) Ensure your account is funded...\n"
        f"[cyan]{SHELBY_TICKER}[/cyan] faucet: [cyan]{_faucet_url(SHELBY_TICKER, account.address)}[/cyan]\n"
        f"[cyan]APT[/cyan] faucet: [cyan]{_faucet_url('APT', account.address)}[/cyan]\n\n"
        f"2) Then use {_cmd('shelby-quickstart upload')} to upload a few blobs to Shelby.[/bold]\n")


# ----------------------- upload -----------------------

def _asset_files(root: Path) -> List[Path]:
    if not root.is_dir():
        return []
    return sorted(p for p in root.rglob("*")
                  if p.is_file() and not any(part.startswith(".") for part in p.relative_to(root).parts))


def _pick_file(root: Path) -> Path:
    files = _asset_files(root)
    if not files:
        return Path(rich_ask("Path of the file to upload", None)).expanduser()
    choices = [(str(p.relative_to(root)), str(p)) for p in files]
    return Path(rich_choose(f"Select a file to upload. Sample assets in [cyan]{root}[/cyan]:", choices, None))


def _report_upload_error(e: Exception, address: str) -> None:
    kind = classify_upload_error(e)
    if kind is UploadErrorKind.ALREADY_EXISTS:
        console.print("[bold]This blob has already been uploaded. Try uploading something else?[/bold]")
        return
    token = funding_token_for(e, SHELBY_TICKER)
    if token:
        console.print(
            f"[bold]You don't have enough [cyan]{token}[/cyan] to "
            f"{'pay for the transaction fee' if token == 'APT' else 'upload this blob'}. Visit the faucet:[/bold]\n"
            f"[cyan]{_faucet_url(token, address)}[/cyan]")
        return
    if kind is UploadErrorKind.INSUFFICIENT_BALANCE:
        console.print(f"[bold]Insufficient balance for {address}.[/bold]")
        return
    if is_server_error(e):
        err_console.print("[bold red]A server error occurred (500). Please try again later or contact support.[/bold red]")
        raise typer.Exit(1)
    err_console.print(f"[bold]Unexpected error:\n{e}[/bold]")
    raise typer.Exit(1)


@app.command()
def upload(
    file: Annotated[Optional[Path], typer.Argument(help="File to upload; prompts with the assets folder when omitted.")] = None,
    name: Annotated[Optional[str], typer.Option("--name", "-n", help="Blob name on Shelby.")] = None,
    expires: Annotated[Optional[str], typer.Option("--expires", "-e",
                                                   help="Lifetime: " + ", ".join(c.label for c in EXPIRATION_CHOICES))] = None,
    assets: Annotated[Path, typer.Option("--assets", help="Folder offered when no file is given.")] = Path(ASSETS_DIR),
):
    """Upload a file as a blob owned by the account in .env."""
    settings = _load_settings("account_address", "account_private_key")
    try:
        signer = derive_signer(settings.account_private_key)
    except ValueError as e:
        err_console.print(f"[bold red]SHELBY_ACCOUNT_PRIVATE_KEY is invalid: {e}[/bold red]")
        raise typer.Exit(1)

    try:
        if file is None:
            console.print("[bold]Welcome to the Shelby Blob Uploader![/bold]")
            file = _pick_file(assets)
            console.print(f"[bold]You selected:[/bold] [cyan]{file}[/cyan]")
        if not file.is_file():
            err_console.print(f"[bold red]File not found: {file}[/bold red]")
            raise typer.Exit(1)
        blob_name = name or rich_ask("What would you like to name this blob on Shelby?", file.name)
        if expires:
            choice = find_expiration(expires)
        else:
            label = rich_choose("How long should the blob be stored?",
                                [(c.label, c.label) for c in EXPIRATION_CHOICES], None)
            choice = find_expiration(label)
    except CANCELLED:
        err_console.print("[bold]Upload canceled. No funds were spent.[/bold]")
        raise typer.Exit(1)
    except ValueError as e:
        err_console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(1)

    client = ShelbyClient(api_key=settings.api_key, rpc_endpoint=settings.rpc_endpoint)
    try:
        with console.status(f"[bold]Storing [cyan]{file}[/cyan] on Shelby as [cyan]{blob_name}[/cyan] "
                            f"for [cyan]{format_duration(choice.micros)}[/cyan]...[/bold]"):
            client.upload_blob(signer, blob_name, expiration_micros(choice), file_path=file)
    except Exception as e:
        _report_upload_error(e, settings.account_address)
        return

    console.print(f"[green]✔[/green] [bold]Uploaded [cyan]{blob_name}[/cyan] successfully![/bold]\n")
    console.print(f"Full blob name: [cyan]{settings.account_address}[/cyan]/[cyan]{blob_name}[/cyan]")
    set_last_upload(blob_name)
    console.print(f"[bold]Next: Use {_cmd('shelby-quickstart list')} to see the blobs you have uploaded.[/bold]\n")


# ----------------------- list -----------------------

@app.command("list")
def list_command(
    address: Annotated[Optional[str], typer.Argument(help="Account whose blobs to list; defaults to .env.")] = None,
):
    """List the blobs stored for an account."""
    settings = _load_settings() if address else _load_settings("account_address")
    address = address or settings.account_address
    client = ShelbyClient(api_key=settings.api_key, rpc_endpoint=settings.rpc_endpoint)
    try:
        blobs = client.list_blobs(address)
    except Exception as e:
        if is_rate_limited(e):
            err_console.print("[bold red]Rate limit exceeded (429).[/bold red]")
        else:
            err_console.print(f"Unexpected error: {e}")
            err_console.print("---")
            err_console.print("[bold]Please report this issue.[/bold]")
        raise typer.Exit(1)

    console.print(f"[bold]Current blobs for [cyan]{truncate(address)}[/cyan]:[/bold]\n")
    if not blobs:
        console.print("(none)")
    for blob in blobs:
        expiry = blob.expires_at.strftime("%Y-%m-%d %H:%M:%S")
        console.print(f"· [cyan]{blob.name}[/cyan] - [yellow]{decimal(blob.size)}[/yellow], expiring: [cyan]{expiry}[/cyan]")
    console.print(f"\n[bold]Next: Use {_cmd('shelby-quickstart download')} to pull a blob back down from Shelby.[/bold]\n")


# ----------------------- download -----------------------

@app.command()
def download(
    name: Annotated[Optional[str], typer.Argument(help="Blob name; defaults to the last upload.")] = None,
    out_dir: Annotated[Path, typer.Option("--out-dir", "-o", help="Download folder.")] = Path(DOWNLOADS_DIR),
):
    """Download one of the account's blobs to disk."""
    settings = _load_settings("account_address")
    try:
        blob_name = name or rich_ask("What is the name of the blob you would like to download?", get_last_upload())
    except CANCELLED:
        err_console.print("[bold]Download canceled. No files written.[/bold]")
        raise typer.Exit(1)
    if not blob_name:
        err_console.print("[bold]No blob name provided. Exiting.[/bold]")
        raise typer.Exit(1)

    out_path = out_dir / blob_name
    client = ShelbyClient(api_key=settings.api_key, rpc_endpoint=settings.rpc_endpoint)
    address = settings.account_address
    try:
        with console.status(f"[bold]Downloading [cyan]{truncate(address)}[/cyan]/[cyan]{blob_name}[/cyan] from Shelby...[/bold]"):
            result = client.download_blob(address, blob_name, out_path)
    except Exception as e:
        if is_not_found(e):
            err_console.print(
                "[bold]Blob not found. Did storage expire?\n\n"
                f"Use {_cmd('shelby-quickstart list')} to see your current blobs or "
                f"{_cmd('shelby-quickstart upload')} to upload a new one.[/bold]\n")
            raise typer.Exit(1)
        if is_rate_limited(e):
            err_console.print("[bold red]Rate limit exceeded (429).[/bold red]")
            if (settings.api_key or "") == DEFAULT_API_KEY:
                err_console.print(
                    "[bold]\nYou're using the default API key, which is subject to strict rate limits."
                    f"\nYou can get your own API key for free! More info: [cyan]{API_KEY_DOCS_URL}[/cyan][/bold]")
            return
        if is_server_error(e):
            err_console.print(
                "[bold red]A server error occurred (500). Please try again later or contact support.[/bold red]")
            raise typer.Exit(1)
        err_console.print(f"[bold]Unexpected error:\n{e}[/bold]")
        raise typer.Exit(1)

    console.print(f"[green]✔[/green] [bold]Blob [cyan]{address}[/cyan]/[cyan]{blob_name}[/cyan] downloaded successfully![/bold]\n")
    console.print(f"[bold]Saved to:[/bold] [cyan]{result.path}[/cyan]")
    if result.content_length:
        console.print(f"[bold]Blob size:[/bold] [yellow]{decimal(result.content_length)}[/yellow]")
    console.print("\n[bold]Congratulations! You know how to use Shelby![/bold]\n")


# ----------------------- quickstart -----------------------

@app.command()
def quickstart(
    file: Annotated[Path, typer.Argument(help="File to upload.")] = Path(ASSETS_DIR) / "whitepaper.pdf",
    name: Annotated[Optional[str], typer.Option("--name", "-n", help="Blob name; defaults to the file name.")] = None,
    expires: Annotated[str, typer.Option("--expires", "-e", help="Blob lifetime.")] = "1 hour",
):
    """Upload a file, list the account's blobs, then download the file again."""
    settings = _load_settings("account_address", "account_private_key", "api_key")
    try:
        signer = derive_signer(settings.account_private_key)
        choice = find_expiration(expires)
    except ValueError as e:
        err_console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(1)
    blob_name = name or file.name
    client = ShelbyClient(api_key=settings.api_key, rpc_endpoint=settings.rpc_endpoint)
    address = settings.account_address

    console.print(f"*** Uploading {blob_name} to Shelby...")
    try:
        client.upload_blob(signer, blob_name, expiration_micros(choice), file_path=file)
    except Exception as e:
        kind = classify_upload_error(e)
        if kind is UploadErrorKind.ALREADY_EXISTS:
            err_console.print("*** This blob has already been uploaded.")
            return
        token = funding_token_for(e, SHELBY_TICKER)
        if token == "APT":
            err_console.print("*** Not enough APT to pay for transaction fee.")
            return
        if token:
            err_console.print(f"*** Not enough {SHELBY_TICKER} tokens to pay for blob storage.")
            return
        if is_server_error(e):
            err_console.print("*** Server error occurred.")
            raise typer.Exit(1)
        err_console.print(f"Unexpected error:\n {e}")
        raise typer.Exit(1)
    console.print(f"*** Uploaded {blob_name} successfully.")

    try:
        console.print("*** Listing blobs stored on Shelby for this account...")
        for blob in client.list_blobs(address):
            expiry = blob.expires_at.strftime("%Y-%m-%d %H:%M:%S")
            console.print(f"· {blob.name} - {decimal(blob.size)}, expiring: {expiry}")

        console.print("*** Downloading the blob from Shelby...")
        result = client.download_blob(address, blob_name, Path(DOWNLOADS_DIR) / blob_name)
    except Exception as e:
        err_console.print(f"Unexpected error:\n {e}")
        raise typer.Exit(1)
    console.print(f"*** Downloaded {blob_name} successfully.")
    console.print(f"*** Saved the blob to {result.path}")


# ----------------------- batch -----------------------

@app.command()
def batch(
    accounts: Annotated[Path, typer.Option("--accounts", "-a", help="Account list (one JSON object per line).")] = Path(ACCOUNTS_FILE),
    progress: Annotated[Path, typer.Option("--progress", "-p", help="Checkpoint file.")] = Path(PROGRESS_FILE),
    temp_dir: Annotated[Path, typer.Option("--temp-dir", help="Where sample files are written before upload.")] = Path(ASSETS_DIR),
    images: Annotated[bool, typer.Option("--images/--synthetic",
                                         help="Download placeholder images or generate small files locally.")] = True,
    max_attempts: Annotated[int, typer.Option("--max-attempts", min=1, help="Image download tries before using the built-in image.")] = 5,
    fetch_timeout: Annotated[float, typer.Option("--fetch-timeout", help="Seconds allowed per image download try.")] = 10.0,
):
    """Upload 1-3 sample blobs for every account in the list, resuming from the checkpoint."""
    settings = Settings.from_env()
    configure_logging(settings.log_level, settings.log_file)

    config = DriverConfig(accounts_file=accounts, progress_file=progress, temp_dir=temp_dir)
    if images:
        try:
            policy = RetryPolicy(max_attempts=max_attempts, per_attempt_timeout=fetch_timeout)
        except ValueError as e:
            err_console.print(f"[bold red]Invalid retry settings: {e}[/bold red]")
            raise typer.Exit(1)
        source = PlaceholderImageSource(temp_dir, policy)
    else:
        source = SyntheticPayloadSource(temp_dir)
    driver = BatchUploadDriver(config, source, sdk_upload(settings.rpc_endpoint))
    try:
        summary = asyncio.run(driver.run())
    except AccountsFileError as e:
        err_console.print(f"[bold red]Fatal error: {e}[/bold red]")
        raise typer.Exit(1)
    console.print(f"[bold]Processed {summary.accounts} accounts, {summary.succeeded}/{summary.uploads} uploads succeeded.[/bold]")


@app.command("import-accounts")
def import_accounts(
    source: Annotated[Path, typer.Argument(help="CSV export with apiKey, address and privateKey columns.")],
    out: Annotated[Path, typer.Option("--out", "-o", help="Account list to write.")] = Path(ACCOUNTS_FILE),
):
    """Convert a spreadsheet export into the batch uploader's account list."""
    if not source.is_file():
        err_console.print(f"[bold red]File not found: {source}[/bold red]")
        raise typer.Exit(1)
    count = convert_csv_to_jsonl(source, out)
    console.print(f"[green]✔[/green] Wrote {count} accounts to [cyan]{out}[/cyan]")
