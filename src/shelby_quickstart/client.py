import hashlib
import mimetypes
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Dict, Any, Union
from urllib.parse import quote

import requests
from aptos_sdk.account import Account

from .config import DEFAULT_RPC_ENDPOINT
from .errors import ShelbyError, get_error_from_status
from .signer import build_upload_authorization, normalize_address, signer_address

DEFAULT_TIMEOUT = 60.0
DOWNLOAD_CHUNK_SIZE = 64 * 1024


@dataclass
class BlobInfo:
    """A blob stored for an account, as returned by the list endpoint."""
    name: str
    size: int
    expiration_micros: int

    @property
    def expires_at(self) -> datetime:
        """Local time at which the blob expires."""
        return datetime.fromtimestamp(self.expiration_micros / 1_000_000)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BlobInfo":
        return cls(
            name=data["name"],
            size=int(data.get("size", 0)),
            expiration_micros=int(data.get("expirationMicros", data.get("expiration_micros", 0))),
        )


@dataclass
class DownloadResult:
    path: Path
    content_length: Optional[int] = None


def detect_mime_type(data: Optional[bytes] = None, file_path: Optional[Union[str, Path]] = None) -> str:
    """Detect MIME type from file extension or magic bytes.

    :param data: Optional binary data to check magic bytes
    :param file_path: Optional file path to check extension
    :return: MIME type string
    """
    if file_path:
        guessed, _ = mimetypes.guess_type(str(file_path))
        if guessed:
            return guessed
    if data:
        if data.startswith(b'\x89PNG'):
            return 'image/png'
        elif data.startswith(b'\xff\xd8\xff'):
            return 'image/jpeg'
        elif data.startswith(b'GIF8'):
            return 'image/gif'
        elif data.startswith(b'RIFF') and b'WEBP' in data[:12]:
            return 'image/webp'
        elif data.startswith(b'%PDF'):
            return 'application/pdf'
    return 'application/octet-stream'


def blob_path(address: str, blob_name: str) -> str:
    return f"v1/blobs/{normalize_address(address)}/{quote(blob_name, safe='/')}"


def account_blobs_path(address: str) -> str:
    return f"v1/accounts/{normalize_address(address)}/blobs"


def api_key_headers(api_key: Optional[str]) -> Dict[str, str]:
    if not api_key:
        return {}
    return {"Authorization": f"Bearer {api_key}"}


def upload_headers(api_key: Optional[str], signer: Account, blob_name: str, data: bytes,
                   expiration_micros: int, mime_type: str) -> Dict[str, str]:
    """Headers for an upload: API key, expiration, content hash and the signed authorization."""
    body_hash = hashlib.sha256(data).hexdigest()
    headers = api_key_headers(api_key)
    headers.update({
        "Content-Type": mime_type,
        "X-Shelby-Expiration-Micros": str(expiration_micros),
        "X-Shelby-Content-SHA256": body_hash,
        "X-Shelby-Authorization": build_upload_authorization(signer, blob_name, body_hash, expiration_micros),
    })
    return headers


def parse_blob_list(data: Union[Dict[str, Any], List[Any], bytes]) -> List[BlobInfo]:
    if isinstance(data, dict):
        data = data.get("blobs", [])
    if not isinstance(data, list):
        raise ShelbyError("Expected list of blob descriptors")
    return [BlobInfo.from_dict(item) for item in data]


class ShelbyClient:
    """Client for the Shelby RPC endpoint.

    Covers what the quickstart scripts need:
    - PUT /v1/blobs/<account>/<name>: upload a blob with an expiration
    - GET /v1/accounts/<account>/blobs: list an account's blobs
    - GET /v1/blobs/<account>/<name>: download a blob
    """

    def __init__(self, api_key: Optional[str] = None, rpc_endpoint: str = DEFAULT_RPC_ENDPOINT, timeout: float = DEFAULT_TIMEOUT):
        """Initialize client.

        :param api_key: API key sent as a bearer token. Without one, requests are anonymous and strictly rate limited.
        :param rpc_endpoint: Base URL of the Shelby RPC (no trailing slash).
        :param timeout: Per-request timeout in seconds.
        """
        self.api_key = api_key
        self.rpc_endpoint = rpc_endpoint.rstrip('/')
        self.timeout = timeout

    # ----------------------- Internal Helpers -----------------------
    def _full_url(self, path: str) -> str:
        return self.rpc_endpoint + '/' + path.lstrip('/')

    def _raise_for_status(self, resp: requests.Response) -> None:
        if resp.status_code >= 400:
            reason = resp.headers.get('X-Reason') or resp.text
            raise get_error_from_status(resp.status_code, reason)

    def _handle_response(self, resp: requests.Response) -> Union[Dict[str, Any], List[Any], bytes]:
        self._raise_for_status(resp)
        ctype = resp.headers.get('Content-Type', '')
        if 'application/json' in ctype:
            try:
                return resp.json()
            except ValueError:
                raise ShelbyError("Invalid JSON in response")
        return resp.content

    # ----------------------- Endpoint Methods -----------------------
    def upload_blob(self, signer: Account, blob_name: str, expiration_micros: int, data: Optional[bytes] = None,
                    file_path: Optional[Union[str, Path]] = None, mime_type: Optional[str] = None) -> Dict[str, Any]:
        """Upload a blob owned by the signer's account. Provide either data or file_path.

        :param signer: Account whose key signs the upload.
        :param blob_name: Name of the blob under the account.
        :param expiration_micros: Absolute expiration time in microseconds since the epoch.
        :param data: Raw binary blob.
        :param file_path: Path to file to read.
        :param mime_type: Content-Type header value (auto-detected if None).
        :return: Blob descriptor dict returned by the server.
        """
        if (data is None) == (file_path is None):
            raise ShelbyError("Exactly one of data or file_path must be provided")
        if not blob_name:
            raise ShelbyError("Blob name required")
        if file_path:
            data = Path(file_path).read_bytes()
        assert data is not None
        if mime_type is None:
            mime_type = detect_mime_type(data=data, file_path=file_path or blob_name)
        headers = upload_headers(self.api_key, signer, blob_name, data, expiration_micros, mime_type)
        url = self._full_url(blob_path(signer_address(signer), blob_name))
        resp = requests.put(url, headers=headers, data=data, timeout=self.timeout)
        result = self._handle_response(resp)
        if not isinstance(result, dict):
            # Some deployments answer 204 with no descriptor.
            return {"name": blob_name, "size": len(data), "expirationMicros": expiration_micros}
        return result

    def list_blobs(self, address: str) -> List[BlobInfo]:
        """List the blobs currently stored for an account."""
        url = self._full_url(account_blobs_path(address))
        resp = requests.get(url, headers=api_key_headers(self.api_key), timeout=self.timeout)
        return parse_blob_list(self._handle_response(resp))

    def download_blob(self, address: str, blob_name: str, out_path: Union[str, Path]) -> DownloadResult:
        """Stream a blob to a local file, creating parent directories as needed."""
        out_path = Path(out_path)
        url = self._full_url(blob_path(address, blob_name))
        with requests.get(url, headers=api_key_headers(self.api_key), stream=True, timeout=self.timeout) as resp:
            self._raise_for_status(resp)
            length = resp.headers.get('Content-Length')
            out_path.parent.mkdir(parents=True, exist_ok=True)
            with open(out_path, 'wb') as f:
                for chunk in resp.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
        return DownloadResult(path=out_path, content_length=int(length) if length else None)
