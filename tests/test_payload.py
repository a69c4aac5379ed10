"""Tests for sample payload acquisition."""
import asyncio
import json

import httpx
import pytest

from shelby_quickstart.payload import (
    FALLBACK_PNG,
    PlaceholderImageSource,
    RetryPolicy,
    SyntheticPayloadSource,
    remove_quietly,
)

SOURCES = (lambda w, h, rng: f"https://img.test/{w}/{h}",)


class Sleeps(list):
    async def __call__(self, seconds):
        self.append(seconds)


def image_source(tmp_path, handler, rng, policy=RetryPolicy(), sleeps=None):
    return PlaceholderImageSource(
        tmp_path / 'tmp',
        policy=policy,
        sources=SOURCES,
        transport=httpx.MockTransport(handler),
        rng=rng,
        sleep=sleeps if sleeps is not None else Sleeps(),
    )


@pytest.mark.asyncio
async def test_image_download_success(tmp_path, rng):
    requests_seen = []

    def handler(request):
        requests_seen.append(request)
        return httpx.Response(200, content=b'\xff\xd8\xff\xe0jpeg bytes')

    sleeps = Sleeps()
    path = await image_source(tmp_path, handler, rng, sleeps=sleeps).acquire()

    assert path.suffix == '.jpg'
    assert path.read_bytes() == b'\xff\xd8\xff\xe0jpeg bytes'
    assert len(requests_seen) == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_image_download_retries_non_success(tmp_path, rng):
    statuses = [503, 404, 200]

    def handler(request):
        status = statuses.pop(0)
        return httpx.Response(status, content=b'img' if status == 200 else b'')

    sleeps = Sleeps()
    policy = RetryPolicy(max_attempts=5, per_attempt_timeout=5, backoff_delay=0.5)
    path = await image_source(tmp_path, handler, rng, policy=policy, sleeps=sleeps).acquire()

    assert path.read_bytes() == b'img'
    assert sleeps == [0.5, 0.5]


@pytest.mark.asyncio
async def test_image_download_empty_body_counts_as_failure(tmp_path, rng):
    bodies = [b'', b'img']

    def handler(request):
        return httpx.Response(200, content=bodies.pop(0))

    path = await image_source(tmp_path, handler, rng).acquire()
    assert path.read_bytes() == b'img'


@pytest.mark.asyncio
async def test_image_download_timeout_moves_on(tmp_path, rng):
    calls = []

    async def handler(request):
        calls.append(request)
        if len(calls) == 1:
            await asyncio.sleep(5)
        return httpx.Response(200, content=b'late but fine')

    policy = RetryPolicy(max_attempts=2, per_attempt_timeout=0.05, backoff_delay=0)
    path = await image_source(tmp_path, handler, rng, policy=policy).acquire()

    assert len(calls) == 2
    assert path.read_bytes() == b'late but fine'


@pytest.mark.asyncio
async def test_image_download_falls_back_after_exhaustion(tmp_path, rng, caplog):
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("unreachable", request=request)

    sleeps = Sleeps()
    policy = RetryPolicy(max_attempts=3, per_attempt_timeout=1, backoff_delay=0.5)
    path = await image_source(tmp_path, handler, rng, policy=policy, sleeps=sleeps).acquire()

    assert len(calls) == 3
    assert sleeps == [0.5, 0.5]
    assert path.suffix == '.png'
    assert path.read_bytes() == FALLBACK_PNG
    assert 'built-in image' in caplog.text


def test_fallback_png_is_valid():
    assert FALLBACK_PNG.startswith(b'\x89PNG\r\n\x1a\n')
    assert FALLBACK_PNG.endswith(b'IEND\xaeB`\x82')


@pytest.mark.parametrize("kwargs", [
    {'max_attempts': 0},
    {'per_attempt_timeout': 0},
    {'backoff_delay': -1},
])
def test_retry_policy_validation(kwargs):
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)


def test_image_source_requires_sources(tmp_path):
    with pytest.raises(ValueError):
        PlaceholderImageSource(tmp_path, sources=())


@pytest.mark.asyncio
@pytest.mark.parametrize("extension", ['txt', 'json', 'js', 'bin'])
async def test_synthetic_payload(tmp_path, rng, extension):
    source = SyntheticPayloadSource(tmp_path / 'tmp', rng=rng, extensions=[extension], random_bytes_size=16)
    path = await source.acquire()

    assert path.name.startswith('demo_')
    assert path.suffix == '.' + extension
    content = path.read_bytes()
    if extension == 'json':
        assert json.loads(content)['message'] == 'Hello Shelby'
    elif extension == 'bin':
        assert len(content) == 16
    elif extension == 'txt':
        assert content.startswith(b'Hello Shelby!')
    else:
        assert b'export default' in content


def test_remove_quietly(tmp_path):
    path = tmp_path / 'x.txt'
    path.write_text('x')
    remove_quietly(path)
    assert not path.exists()
    remove_quietly(path)


@pytest.mark.asyncio
async def test_image_download_uses_policy_timeout(tmp_path, rng):
    timeouts = []

    def handler(request):
        timeouts.append(request.extensions['timeout'])
        return httpx.Response(200, content=b'img')

    policy = RetryPolicy(max_attempts=1, per_attempt_timeout=12.0)
    path = await image_source(tmp_path, handler, rng, policy=policy).acquire()

    assert path.read_bytes() == b'img'
    assert timeouts == [{'connect': 12.0, 'read': 12.0, 'write': 12.0, 'pool': 12.0}]


@pytest.mark.asyncio
async def test_image_download_logs_error_type_without_message(tmp_path, rng, caplog):
    def handler(request):
        raise httpx.ReadTimeout('', request=request)

    policy = RetryPolicy(max_attempts=1, per_attempt_timeout=1)
    await image_source(tmp_path, handler, rng, policy=policy).acquire()

    assert 'ReadTimeout' in caplog.text


@pytest.mark.asyncio
async def test_slow_image_inside_policy_timeout_is_kept(tmp_path, rng):
    """A source slower than httpx's 5s default but inside the policy budget still counts."""
    async def serve(reader, writer):
        await reader.readuntil(b'\r\n\r\n')
        await asyncio.sleep(5.5)
        writer.write(b'HTTP/1.1 200 OK\r\nContent-Length: 3\r\nConnection: close\r\n\r\nimg')
        await writer.drain()
        writer.close()

    server = await asyncio.start_server(serve, '127.0.0.1', 0)
    port = server.sockets[0].getsockname()[1]
    try:
        source = PlaceholderImageSource(
            tmp_path / 'tmp',
            policy=RetryPolicy(max_attempts=1, per_attempt_timeout=10.0),
            sources=(lambda w, h, r: f"http://127.0.0.1:{port}/x",),
            rng=rng,
            sleep=Sleeps(),
        )
        path = await source.acquire()
    finally:
        server.close()
        await server.wait_closed()

    assert path.read_bytes() == b'img'
