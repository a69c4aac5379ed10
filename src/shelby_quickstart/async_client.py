"""Async Shelby RPC client using httpx, used by the batch uploader."""

from pathlib import Path
from typing import List, Optional, Dict, Any, Union

import httpx
from aptos_sdk.account import Account

from .client import (
    BlobInfo,
    DEFAULT_TIMEOUT,
    account_blobs_path,
    api_key_headers,
    blob_path,
    detect_mime_type,
    parse_blob_list,
    upload_headers,
)
from .config import DEFAULT_RPC_ENDPOINT
from .errors import ShelbyError, get_error_from_status
from .signer import signer_address


class AsyncShelbyClient:
    """Async high-level Shelby RPC client.

    Same wire format as ShelbyClient, with async/await so the batch uploader
    can enforce timeouts by cancellation and interleave pacing delays.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        rpc_endpoint: str = DEFAULT_RPC_ENDPOINT,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize async client.

        :param api_key: API key sent as a bearer token.
        :param rpc_endpoint: Base URL of the Shelby RPC (no trailing slash).
        :param timeout: Per-request timeout in seconds.
        :param transport: Optional httpx transport, e.g. a MockTransport in tests.
        """
        self.api_key = api_key
        self.rpc_endpoint = rpc_endpoint.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    # ----------------------- Internal Helpers -----------------------
    def _full_url(self, path: str) -> str:
        return self.rpc_endpoint + "/" + path.lstrip("/")

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def _handle_response(self, resp: httpx.Response) -> Union[Dict[str, Any], List[Any], bytes]:
        if resp.status_code >= 400:
            reason = resp.headers.get("X-Reason") or resp.text
            raise get_error_from_status(resp.status_code, reason)
        ctype = resp.headers.get("Content-Type", "")
        if "application/json" in ctype:
            try:
                return resp.json()
            except ValueError:
                raise ShelbyError("Invalid JSON in response")
        return resp.content

    # ----------------------- Async Endpoint Methods -----------------------

    async def upload_blob(
        self,
        signer: Account,
        blob_name: str,
        expiration_micros: int,
        data: Optional[bytes] = None,
        file_path: Optional[Union[str, Path]] = None,
        mime_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Upload a blob asynchronously. Provide either data or file_path.

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
        async with self._http() as client:
            resp = await client.put(url, headers=headers, content=data)
        result = self._handle_response(resp)
        if not isinstance(result, dict):
            return {"name": blob_name, "size": len(data), "expirationMicros": expiration_micros}
        return result

    async def list_blobs(self, address: str) -> List[BlobInfo]:
        """List the blobs currently stored for an account."""
        url = self._full_url(account_blobs_path(address))
        async with self._http() as client:
            resp = await client.get(url, headers=api_key_headers(self.api_key))
        return parse_blob_list(self._handle_response(resp))
