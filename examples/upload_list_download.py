"""Upload, list, and download a blob

Walks through the three basic calls against the Shelby RPC using the
account stored in .env (run `shelby-quickstart config` first).
"""
from pathlib import Path

from shelby_quickstart import ShelbyClient
from shelby_quickstart.config import Settings
from shelby_quickstart.expiration import expiration_micros, find_expiration
from shelby_quickstart.signer import derive_signer

settings = Settings.from_env()
settings.require('account_address', 'account_private_key')

signer = derive_signer(settings.account_private_key)
client = ShelbyClient(api_key=settings.api_key, rpc_endpoint=settings.rpc_endpoint)

print("=== PUT /v1/blobs/<account>/<name> (upload blob) ===")
data = b'Hello Shelby! This blob was uploaded from Python.'
blob_name = 'hello.txt'
expiration = expiration_micros(find_expiration('1 hour'))
result = client.upload_blob(signer, blob_name, expiration, data=data, mime_type='text/plain')
print("Upload successful!")
print(f"Blob: {settings.account_address}/{result.get('name', blob_name)}")

print("\n=== GET /v1/accounts/<account>/blobs (list blobs) ===")
blobs = client.list_blobs(settings.account_address)
print(f"Account {settings.account_address[:10]}... has {len(blobs)} blobs")
for blob in blobs:
    print(f"  {blob.name} ({blob.size} bytes), expires {blob.expires_at:%Y-%m-%d %H:%M}")

print("\n=== GET /v1/blobs/<account>/<name> (download blob) ===")
download = client.download_blob(settings.account_address, blob_name, Path('downloads') / blob_name)
print(f"Saved to {download.path}")
assert download.path.read_bytes() == data
