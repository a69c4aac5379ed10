"""Test configuration and shared fixtures."""
import json
import random

import pytest
from aptos_sdk.account import Account

from shelby_quickstart.accounts import AccountRecord
from shelby_quickstart.utils.png_utils import create_minimal_png

SHELBY_ENV_VARS = (
    'SHELBY_ACCOUNT_ADDRESS',
    'SHELBY_ACCOUNT_PRIVATE_KEY',
    'SHELBY_ACCOUNT_NAME',
    'SHELBY_API_KEY',
    'SHELBY_RPC_ENDPOINT',
    'SHELBY_RPC',
    'SHELBY_CONTEXT_NAME',
    'SHELBY_NETWORK_NAME',
    'SHELBY_CONFIG_PATH',
    'LOG_FILE',
)

RPC = 'https://rpc.test/shelby'


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run every test in an empty directory without Shelby variables from the developer's shell."""
    for name in SHELBY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def signer():
    return Account.generate()


@pytest.fixture
def private_key_hex(signer):
    return signer.private_key.hex()


@pytest.fixture
def test_image():
    """Generate a small test PNG image."""
    return create_minimal_png(32, 32)


@pytest.fixture
def rng():
    return random.Random(1234)


def make_accounts(count):
    return [
        AccountRecord(api_key=f'key-{i}', address=f'0x{i + 1:064x}', private_key=f'ed25519-priv-0x{i + 1:064x}')
        for i in range(count)
    ]


@pytest.fixture
def accounts_file(tmp_path):
    """Factory writing an account list and returning its path."""
    def write(accounts):
        path = tmp_path / 'config.jsonl'
        with open(path, 'w') as f:
            for account in accounts:
                f.write(account.to_json() + '\n')
        return path
    return write


@pytest.fixture
def checkpoint_file(tmp_path):
    def write(content):
        path = tmp_path / 'progress.json'
        path.write_text(content if isinstance(content, str) else json.dumps(content))
        return path
    return write
