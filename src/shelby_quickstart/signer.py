"""Account keys: turning stored private keys into aptos-sdk signers and signing uploads."""
import base64
import json
import time

from aptos_sdk.account import Account

AIP80_PREFIX = "ed25519-priv-"


def normalize_private_key(value: str) -> str:
    """Accept AIP-80 (ed25519-priv-0x...), 0x-prefixed or bare hex keys and return 0x-hex.

    :raises ValueError: If the key is not 32 bytes of hex.
    """
    key = value.strip()
    if key.startswith(AIP80_PREFIX):
        key = key[len(AIP80_PREFIX):]
    if key.lower().startswith("0x"):
        key = key[2:]
    if len(key) != 64:
        raise ValueError("Private key must be 32 bytes of hex (optionally ed25519-priv-0x prefixed)")
    try:
        bytes.fromhex(key)
    except ValueError:
        raise ValueError("Private key is not valid hex")
    return "0x" + key.lower()


def derive_signer(private_key: str) -> Account:
    """Load an Ed25519 account from a stored private key."""
    return Account.load_key(normalize_private_key(private_key))


def normalize_address(address: str) -> str:
    """Return the long form of an account address: 0x + 64 lower-case hex chars."""
    value = address.strip().lower()
    if value.startswith("0x"):
        value = value[2:]
    if not value or len(value) > 64:
        raise ValueError(f"Invalid account address: {address!r}")
    int(value, 16)
    return "0x" + value.rjust(64, "0")


def signer_address(signer: Account) -> str:
    return normalize_address(str(signer.address()))


def build_upload_authorization(signer: Account, blob_name: str, sha256: str, expiration_micros: int) -> str:
    """Build the signed authorization document sent with an upload.

    The signature covers account, blob name, content hash and expiration so the
    server can reject replays against another blob or a longer lifetime.

    :return: base64 of the JSON document.
    """
    address = signer_address(signer)
    created_at = int(time.time())
    message = f"shelby-upload:{address}/{blob_name}:{sha256}:{expiration_micros}:{created_at}"
    signature = signer.sign(message.encode())
    doc = {
        "account": address,
        "blob_name": blob_name,
        "sha256": sha256,
        "expiration_micros": expiration_micros,
        "created_at": created_at,
        "public_key": str(signer.public_key()),
        "signature": "0x" + signature.data().hex(),
    }
    return base64.b64encode(json.dumps(doc).encode()).decode()
