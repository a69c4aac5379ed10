"""Batch upload with checkpointing

Uploads a few generated files for every account in config.jsonl. Stop it at
any time; the next run picks up at the first account that had not finished.
"""
import asyncio
import random

from shelby_quickstart import BatchUploadDriver, DriverConfig
from shelby_quickstart.config import Settings
from shelby_quickstart.driver import sdk_upload
from shelby_quickstart.expiration import find_expiration
from shelby_quickstart.logging_utils import configure_logging
from shelby_quickstart.payload import PlaceholderImageSource, RetryPolicy, SyntheticPayloadSource

USE_IMAGES = False  # True downloads placeholder images instead


async def main():
    settings = Settings.from_env()
    configure_logging(settings.log_level, settings.log_file)

    config = DriverConfig(
        accounts_file='config.jsonl',
        progress_file='progress.json',
        temp_dir='assets',
        # Short lifetimes only, so test blobs clean themselves up
        expiration_choices=[find_expiration('1 hour'), find_expiration('1 day')],
        uploads_per_account=(1, 2),
    )
    rng = random.Random()
    if USE_IMAGES:
        source = PlaceholderImageSource(config.temp_dir, RetryPolicy(max_attempts=3, per_attempt_timeout=5), rng=rng)
    else:
        source = SyntheticPayloadSource(config.temp_dir, rng=rng)

    driver = BatchUploadDriver(config, source, sdk_upload(settings.rpc_endpoint), rng=rng)
    summary = await driver.run()

    print("\n=== Summary ===")
    print(f"Accounts processed: {summary.accounts} (started at index {summary.start_index})")
    print(f"Uploads: {summary.succeeded}/{summary.uploads} succeeded")
    print(f"Already uploaded: {summary.already_exists}")
    print(f"Insufficient balance: {summary.insufficient_balance}")
    print(f"Other failures: {summary.failed}")


if __name__ == '__main__':
    asyncio.run(main())
