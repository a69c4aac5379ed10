"""Async example: upload several blobs concurrently

AsyncShelbyClient speaks the same protocol as ShelbyClient; with asyncio.gather
the uploads overlap instead of running one after another.
"""
import asyncio
import time

from shelby_quickstart import AsyncShelbyClient
from shelby_quickstart.config import Settings
from shelby_quickstart.expiration import expiration_micros, find_expiration
from shelby_quickstart.signer import derive_signer

COUNT = 3


async def main():
    settings = Settings.from_env()
    settings.require('account_address', 'account_private_key')
    signer = derive_signer(settings.account_private_key)
    client = AsyncShelbyClient(api_key=settings.api_key, rpc_endpoint=settings.rpc_endpoint)
    expiration = expiration_micros(find_expiration('1 hour'))

    print(f"=== Async upload of {COUNT} blobs ===\n")
    start_time = time.time()
    results = await asyncio.gather(
        *(client.upload_blob(signer, f'async_{i}.txt', expiration, data=f'blob number {i}'.encode())
          for i in range(COUNT)),
        return_exceptions=True,
    )
    elapsed = time.time() - start_time

    for i, result in enumerate(results):
        if isinstance(result, Exception):
            print(f"✗ async_{i}.txt: {result}")
        else:
            print(f"✓ async_{i}.txt")
    print(f"\nCompleted in {elapsed:.2f} seconds")

    blobs = await client.list_blobs(settings.account_address)
    print(f"Account now holds {len(blobs)} blobs")


if __name__ == '__main__':
    asyncio.run(main())
