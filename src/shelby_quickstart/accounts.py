"""Account list used by the batch uploader: one JSON object per line."""
import csv
import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Union

from .errors import AccountsFileError
from .signer import AIP80_PREFIX

REQUIRED_FIELDS = ("apiKey", "address", "privateKey")


@dataclass(frozen=True)
class AccountRecord:
    api_key: str
    address: str
    private_key: str

    def to_json(self) -> str:
        return json.dumps({"apiKey": self.api_key, "address": self.address, "privateKey": self.private_key})


def parse_account_line(line: str, line_number: int) -> AccountRecord:
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise AccountsFileError(f"line {line_number}: invalid JSON ({e.msg})", line_number) from e
    if not isinstance(data, dict):
        raise AccountsFileError(f"line {line_number}: expected a JSON object", line_number)
    missing = [field for field in REQUIRED_FIELDS if not data.get(field)]
    if missing:
        raise AccountsFileError(f"line {line_number}: missing {', '.join(missing)}", line_number)
    return AccountRecord(
        api_key=str(data["apiKey"]),
        address=str(data["address"]),
        private_key=str(data["privateKey"]),
    )


def load_accounts(path: Union[str, Path]) -> List[AccountRecord]:
    """Read every account from a newline-delimited JSON file.

    The whole file is validated before anything is returned, so a bad line
    stops a batch before its first upload.

    :raises AccountsFileError: If the file is missing or a line is not a complete account object.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise AccountsFileError(f"Account list not found: {path}") from e
    accounts = []
    for number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        accounts.append(parse_account_line(line, number))
    return accounts


def write_accounts(path: Union[str, Path], accounts: List[AccountRecord]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        for account in accounts:
            f.write(account.to_json() + "\n")


def convert_csv_to_jsonl(src: Union[str, Path], dest: Union[str, Path]) -> int:
    """Convert a spreadsheet export (apiKey,address,privateKey columns) into an account list.

    Rows without an apiKey are skipped. Raw hex keys get the ed25519-priv- prefix.

    :return: Number of accounts written.
    """
    accounts = []
    with open(src, newline="", encoding="utf-8-sig") as f:
        for row in csv.DictReader(f):
            api_key = (row.get("apiKey") or "").strip()
            if not api_key:
                continue
            private_key = (row.get("privateKey") or "").strip()
            if private_key and not private_key.startswith(AIP80_PREFIX):
                private_key = AIP80_PREFIX + private_key
            accounts.append(AccountRecord(
                api_key=api_key,
                address=(row.get("address") or "").strip(),
                private_key=private_key,
            ))
    write_accounts(dest, accounts)
    return len(accounts)
