"""Tests for the synchronous Shelby client (requests is patched, no network)."""
import base64
import hashlib
import json

import pytest

from shelby_quickstart import client as client_module
from shelby_quickstart.client import BlobInfo, ShelbyClient, detect_mime_type
from shelby_quickstart.errors import NotFound, ShelbyError, UploadErrorKind, classify_upload_error
from shelby_quickstart.signer import signer_address

from conftest import RPC


class FakeResponse:
    def __init__(self, status_code=200, json_body=None, content=b'', headers=None):
        self.status_code = status_code
        self._json = json_body
        self.headers = dict(headers or {})
        if json_body is not None:
            self.headers.setdefault('Content-Type', 'application/json')
            content = json.dumps(json_body).encode()
        self.content = content
        self.text = content.decode('utf-8', 'replace')

    def json(self):
        if self._json is None:
            raise ValueError('no json')
        return self._json

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class Calls(list):
    """Recorded (method, url, kwargs) tuples plus the responses still to hand out."""

    def __init__(self):
        super().__init__()
        self.responses = []


@pytest.fixture
def calls(monkeypatch):
    """Record requests.put/get calls and answer with queued responses."""
    recorded = Calls()

    def fake(method):
        def handler(url, **kwargs):
            recorded.append((method, url, kwargs))
            return recorded.responses.pop(0)
        return handler

    monkeypatch.setattr(client_module.requests, 'put', fake('PUT'))
    monkeypatch.setattr(client_module.requests, 'get', fake('GET'))
    return recorded


def test_upload_blob_sends_signed_request(calls, signer, test_image):
    calls.responses.append(FakeResponse(200, {'name': 'pic.png', 'size': len(test_image)}))
    client = ShelbyClient(api_key='AG-KEY', rpc_endpoint=RPC + '/')
    result = client.upload_blob(signer, 'pic.png', 1_700_000_000_000_000, data=test_image)

    assert result == {'name': 'pic.png', 'size': len(test_image)}
    method, url, kwargs = calls[0]
    assert method == 'PUT'
    assert url == f"{RPC}/v1/blobs/{signer_address(signer)}/pic.png"
    headers = kwargs['headers']
    assert headers['Authorization'] == 'Bearer AG-KEY'
    assert headers['Content-Type'] == 'image/png'
    assert headers['X-Shelby-Expiration-Micros'] == '1700000000000000'
    assert headers['X-Shelby-Content-SHA256'] == hashlib.sha256(test_image).hexdigest()
    auth = json.loads(base64.b64decode(headers['X-Shelby-Authorization']))
    assert auth['blob_name'] == 'pic.png'
    assert kwargs['data'] == test_image


def test_upload_blob_from_file_without_api_key(calls, signer, tmp_path):
    path = tmp_path / 'notes.txt'
    path.write_text('hello')
    calls.responses.append(FakeResponse(204))
    result = ShelbyClient(rpc_endpoint=RPC).upload_blob(signer, 'notes.txt', 5, file_path=path)

    assert result == {'name': 'notes.txt', 'size': 5, 'expirationMicros': 5}
    headers = calls[0][2]['headers']
    assert 'Authorization' not in headers
    assert headers['Content-Type'] == 'text/plain'


def test_upload_blob_requires_exactly_one_source(signer):
    client = ShelbyClient(rpc_endpoint=RPC)
    with pytest.raises(ShelbyError, match='Exactly one of data or file_path'):
        client.upload_blob(signer, 'x', 1)
    with pytest.raises(ShelbyError, match='Exactly one of data or file_path'):
        client.upload_blob(signer, 'x', 1, data=b'a', file_path='a.txt')


def test_upload_error_keeps_server_reason(calls, signer):
    calls.responses.append(FakeResponse(400, content=b'Move abort: EBLOB_WRITE_CHUNKSET_ALREADY_EXISTS'))
    with pytest.raises(ShelbyError) as excinfo:
        ShelbyClient(rpc_endpoint=RPC).upload_blob(signer, 'x.txt', 1, data=b'x')
    assert excinfo.value.status_code == 400
    assert classify_upload_error(excinfo.value) is UploadErrorKind.ALREADY_EXISTS


def test_list_blobs(calls):
    calls.responses.append(FakeResponse(200, [
        {'name': 'a.txt', 'size': 10, 'expirationMicros': 1_700_000_000_000_000},
        {'name': 'b.png', 'size': 2048, 'expirationMicros': 1_800_000_000_000_000},
    ]))
    blobs = ShelbyClient(api_key='k', rpc_endpoint=RPC).list_blobs('0x1')

    assert blobs == [
        BlobInfo('a.txt', 10, 1_700_000_000_000_000),
        BlobInfo('b.png', 2048, 1_800_000_000_000_000),
    ]
    assert calls[0][1] == f"{RPC}/v1/accounts/0x{'0' * 63}1/blobs"
    assert blobs[0].expires_at.year == 2023


def test_list_blobs_accepts_wrapped_list(calls):
    calls.responses.append(FakeResponse(200, {'blobs': [{'name': 'a', 'size': 1, 'expiration_micros': 2}]}))
    assert ShelbyClient(rpc_endpoint=RPC).list_blobs('0x1') == [BlobInfo('a', 1, 2)]


def test_list_blobs_rejects_bytes(calls):
    calls.responses.append(FakeResponse(200, content=b'oops'))
    with pytest.raises(ShelbyError, match='Expected list'):
        ShelbyClient(rpc_endpoint=RPC).list_blobs('0x1')


def test_download_blob_streams_to_disk(calls, tmp_path):
    calls.responses.append(FakeResponse(200, content=b'x' * 100_000, headers={'Content-Length': '100000'}))
    out = tmp_path / 'downloads' / 'big.bin'
    result = ShelbyClient(rpc_endpoint=RPC).download_blob('0x2', 'big.bin', out)

    assert result.path == out
    assert result.content_length == 100_000
    assert out.read_bytes() == b'x' * 100_000
    assert calls[0][2]['stream'] is True


def test_download_missing_blob(calls, tmp_path):
    calls.responses.append(FakeResponse(404, content=b'blob not found'))
    with pytest.raises(NotFound):
        ShelbyClient(rpc_endpoint=RPC).download_blob('0x2', 'gone.bin', tmp_path / 'gone.bin')
    assert not (tmp_path / 'gone.bin').exists()


@pytest.mark.parametrize("data,path,expected", [
    (b'\x89PNG\r\n', None, 'image/png'),
    (b'\xff\xd8\xff\xe0', None, 'image/jpeg'),
    (b'%PDF-1.7', None, 'application/pdf'),
    (b'anything', 'data.json', 'application/json'),
    (b'\x00\x01', None, 'application/octet-stream'),
])
def test_detect_mime_type(data, path, expected):
    assert detect_mime_type(data=data, file_path=path) == expected
