"""Batch uploader: walks the account list and uploads a few sample blobs per account.

Progress is checkpointed after each account, so an interrupted run resumes at
the first account that had not finished. An account that was mid-way when the
process stopped is processed again from the start.
"""
import asyncio
import logging
import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Protocol, Sequence, Tuple

from rich.filesize import decimal

from .accounts import AccountRecord, load_accounts
from .async_client import AsyncShelbyClient
from .config import DEFAULT_RPC_ENDPOINT
from .errors import UploadErrorKind, classify_upload_error
from .expiration import EXPIRATION_CHOICES, ExpirationChoice, choose_expiration, expiration_micros
from .payload import remove_quietly
from .progress import Checkpoint
from .signer import derive_signer, normalize_address, signer_address

logger = logging.getLogger(__name__)

# (account, signer, data, blob_name, expiration_micros) -> awaitable
UploadFn = Callable[[AccountRecord, Any, bytes, str, int], Awaitable[Any]]


class PayloadSource(Protocol):
    async def acquire(self) -> Path:
        ...


@dataclass
class DriverConfig:
    accounts_file: Path
    progress_file: Path
    temp_dir: Path
    expiration_choices: Sequence[ExpirationChoice] = EXPIRATION_CHOICES
    uploads_per_account: Tuple[int, int] = (1, 3)
    upload_delay: Tuple[float, float] = (1.0, 3.0)
    account_delay: Tuple[float, float] = (3.0, 8.0)

    def __post_init__(self):
        self.accounts_file = Path(self.accounts_file)
        self.progress_file = Path(self.progress_file)
        self.temp_dir = Path(self.temp_dir)
        low, high = self.uploads_per_account
        if low < 1 or high < low:
            raise ValueError("uploads_per_account must be a (min, max) range with min >= 1")
        if not self.expiration_choices:
            raise ValueError("At least one expiration choice is required")


@dataclass
class BatchSummary:
    accounts: int = 0
    uploads: int = 0
    succeeded: int = 0
    already_exists: int = 0
    insufficient_balance: int = 0
    failed: int = 0
    start_index: int = 0
    processed_indices: list = field(default_factory=list)


def sdk_upload(rpc_endpoint: str = DEFAULT_RPC_ENDPOINT, timeout: Optional[float] = None) -> UploadFn:
    """Upload function backed by AsyncShelbyClient, using each account's own API key."""
    async def upload(account: AccountRecord, signer, data: bytes, blob_name: str, expiration: int):
        kwargs = {"timeout": timeout} if timeout else {}
        client = AsyncShelbyClient(api_key=account.api_key, rpc_endpoint=rpc_endpoint, **kwargs)
        return await client.upload_blob(signer, blob_name, expiration, data=data)
    return upload


class BatchUploadDriver:
    def __init__(
        self,
        config: DriverConfig,
        payload_source: PayloadSource,
        upload: UploadFn,
        signer_factory: Callable[[str], Any] = derive_signer,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self.payload_source = payload_source
        self.upload = upload
        self.signer_factory = signer_factory
        self.sleep = sleep
        self.rng = rng or random.Random()
        self.checkpoint = Checkpoint(config.progress_file)

    async def run(self) -> BatchSummary:
        """Process every account from the checkpoint onwards.

        :raises AccountsFileError: If the account list is missing or malformed; nothing is uploaded then.
        :return: Counters for the accounts processed in this run.
        """
        accounts = load_accounts(self.config.accounts_file)
        start = self.checkpoint.load()
        total = len(accounts)
        summary = BatchSummary(start_index=start)
        logger.info("Loaded %d accounts from %s", total, self.config.accounts_file)
        logger.info("Starting from index %d (%d total)", start, total)

        for index in range(start, total):
            account = accounts[index]
            logger.info("[%d/%d] Processing address: %s", index + 1, total, account.address)
            await self._process_account(account, summary)
            summary.accounts += 1
            summary.processed_indices.append(index)
            self.checkpoint.save(index + 1)

        logger.info("All uploads completed: %d succeeded, %d already uploaded, %d short of funds, %d failed",
                    summary.succeeded, summary.already_exists, summary.insufficient_balance, summary.failed)
        return summary

    async def _process_account(self, account: AccountRecord, summary: BatchSummary) -> None:
        try:
            signer = self.signer_factory(account.private_key)
        except ValueError as e:
            logger.error("Skipping %s: cannot load private key (%s)", account.address, e)
            summary.failed += 1
            return
        self._check_address(account, signer)

        low, high = self.config.uploads_per_account
        for _ in range(self.rng.randint(low, high)):
            await self._upload_one(account, signer, summary)
            delay = self.rng.uniform(*self.config.upload_delay)
            logger.info("Waiting %.1fs before next upload...", delay)
            await self.sleep(delay)

        logger.info("Finished uploads for %s", account.address)
        delay = self.rng.uniform(*self.config.account_delay)
        logger.info("Waiting %.1fs before next account...", delay)
        await self.sleep(delay)

    def _check_address(self, account: AccountRecord, signer) -> None:
        derived = signer_address(signer)
        try:
            expected = normalize_address(account.address)
        except ValueError:
            logger.warning("Account address %r is not valid; uploads go to %s", account.address, derived)
            return
        if derived != expected:
            logger.warning("Private key for %s derives address %s", account.address, derived)

    async def _upload_one(self, account: AccountRecord, signer, summary: BatchSummary) -> None:
        path = await self.payload_source.acquire()
        summary.uploads += 1
        try:
            data = path.read_bytes()
            blob_name = path.name
            choice = choose_expiration(self.rng, self.config.expiration_choices)
            expiration = expiration_micros(choice)
            logger.info("Uploading %s (%s), expiration: %s", blob_name, decimal(len(data)), choice.label)
            await self.upload(account, signer, data, blob_name, expiration)
        except Exception as e:  # any per-upload failure is reported and the batch continues
            self._report_failure(account, path.name, e, summary)
        else:
            summary.succeeded += 1
            logger.info("Uploaded %s successfully -> %s", blob_name, account.address)
        finally:
            remove_quietly(path)

    def _report_failure(self, account: AccountRecord, blob_name: str, error: Exception, summary: BatchSummary) -> None:
        kind = classify_upload_error(error)
        if kind is UploadErrorKind.ALREADY_EXISTS:
            summary.already_exists += 1
            logger.warning("%s already uploaded.", blob_name)
        elif kind is UploadErrorKind.INSUFFICIENT_BALANCE:
            summary.insufficient_balance += 1
            logger.warning("Insufficient balance for %s.", account.address)
        else:
            summary.failed += 1
            logger.error("Upload failed for %s: %s", account.address, error)
