"""Utility: Error handling patterns

Shows how upload and download failures surface and how to tell them apart.
"""
from shelby_quickstart import ShelbyClient, ShelbyError, UploadErrorKind, classify_upload_error
from shelby_quickstart.config import SHELBY_TICKER, Settings
from shelby_quickstart.errors import NotFound, TooManyRequests, funding_token_for
from shelby_quickstart.expiration import expiration_micros, find_expiration
from shelby_quickstart.signer import derive_signer

settings = Settings.from_env()
settings.require('account_address', 'account_private_key')
signer = derive_signer(settings.account_private_key)
client = ShelbyClient(api_key=settings.api_key, rpc_endpoint=settings.rpc_endpoint)

print("=== Error Scenario 1: Uploading the same blob twice ===")
data = b'duplicate me'
expiration = expiration_micros(find_expiration('1 minute'))
for attempt in (1, 2):
    try:
        client.upload_blob(signer, 'duplicate.txt', expiration, data=data)
        print(f"Attempt {attempt}: uploaded")
    except ShelbyError as e:
        kind = classify_upload_error(e)
        if kind is UploadErrorKind.ALREADY_EXISTS:
            print(f"Attempt {attempt}: already uploaded, nothing to do")
        elif kind is UploadErrorKind.INSUFFICIENT_BALANCE:
            token = funding_token_for(e, SHELBY_TICKER) or SHELBY_TICKER
            print(f"Attempt {attempt}: not enough {token}, visit the faucet")
        else:
            print(f"Attempt {attempt}: {e}")

print("\n=== Error Scenario 2: Blob Not Found ===")
try:
    client.download_blob(settings.account_address, 'no-such-blob.bin', 'downloads/no-such-blob.bin')
except NotFound as e:
    print(f"Not found (HTTP {e.status_code}): {e.reason}")

print("\n=== Error Scenario 3: Anonymous client hits the rate limit ===")
anon_client = ShelbyClient(rpc_endpoint=settings.rpc_endpoint)
try:
    for _ in range(20):
        anon_client.list_blobs(settings.account_address)
    print("No rate limit hit")
except TooManyRequests as e:
    print(f"Rate limited: {e}")

print("\n=== Error Scenario 4: Unreachable RPC ===")
broken_client = ShelbyClient(rpc_endpoint='https://invalid.rpc.local', timeout=5)
try:
    broken_client.list_blobs(settings.account_address)
except ShelbyError as e:
    print(f"Shelby error: {e}")
except Exception as e:
    print(f"Connection error: {type(e).__name__}: {e}")
