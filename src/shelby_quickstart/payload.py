"""Sample files for the batch uploader: locally generated content or downloaded placeholder images."""
import asyncio
import json
import logging
import os
import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

import httpx

from .utils.png_utils import create_minimal_png

logger = logging.getLogger(__name__)

# Width/height -> URL. Each call may add its own cache-busting token.
UrlTemplate = Callable[[int, int, random.Random], str]

IMAGE_SOURCES: Sequence[UrlTemplate] = (
    lambda w, h, rng: f"https://picsum.photos/{w}/{h}?random={rng.randrange(10000)}",
    lambda w, h, rng: f"https://source.unsplash.com/random/{w}x{h}?sig={rng.randrange(10000)}",
    lambda w, h, rng: f"https://loremflickr.com/{w}/{h}/landscape?lock={rng.randrange(10000)}",
    lambda w, h, rng: f"https://dummyimage.com/{w}x{h}/000/fff.jpg&text=AI+Generated",
)

NAME_WORDS = (
    "dream", "sky", "forest", "flame", "river", "storm", "light",
    "shadow", "path", "echo", "whisper", "ocean", "stone", "leaf",
)

SYNTHETIC_EXTENSIONS = ("txt", "json", "js", "bin")

FALLBACK_PNG = create_minimal_png(64, 64)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry for one acquisition: tries, timeout per try (seconds), pause after a failed try."""
    max_attempts: int = 5
    per_attempt_timeout: float = 10.0
    backoff_delay: float = 0.5

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.per_attempt_timeout <= 0:
            raise ValueError("per_attempt_timeout must be positive")
        if self.backoff_delay < 0:
            raise ValueError("backoff_delay must not be negative")


class ImageFetchError(Exception):
    """A single placeholder download attempt failed."""


def random_image_name(rng: random.Random, extension: str = "jpg") -> str:
    return f"{rng.choice(NAME_WORDS)}_{rng.choice(NAME_WORDS)}.{extension}"


class SyntheticPayloadSource:
    """Writes a small generated file (text, JSON, JavaScript or random bytes)."""

    def __init__(self, temp_dir: Union[str, Path], rng: Optional[random.Random] = None,
                 extensions: Sequence[str] = SYNTHETIC_EXTENSIONS, random_bytes_size: int = 1024):
        self.temp_dir = Path(temp_dir)
        self.rng = rng or random.Random()
        self.extensions = tuple(extensions)
        self.random_bytes_size = random_bytes_size

    def _content(self, extension: str) -> bytes:
        now = datetime.now(timezone.utc).isoformat()
        if extension == "json":
            return json.dumps({"message": "Hello Shelby", "time": int(time.time() * 1000)}, indent=2).encode()
        if extension == "js":
            return f'// Auto-generated demo file\nexport default {{ createdAt: "{now}" }}\n'.encode()
        if extension == "bin":
            return bytes(self.rng.getrandbits(8) for _ in range(self.random_bytes_size))
        lines = [
            "Hello Shelby!",
            "Upload test from script",
            f"Timestamp: {now}",
            f"Random number: {self.rng.random()}",
        ]
        return "\n".join(lines).encode()

    async def acquire(self) -> Path:
        extension = self.rng.choice(self.extensions)
        name = f"demo_{int(time.time() * 1000)}_{self.rng.randrange(10000)}.{extension}"
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        path = self.temp_dir / name
        path.write_bytes(self._content(extension))
        return path


class PlaceholderImageSource:
    """Downloads a random placeholder image, falling back to FALLBACK_PNG when every try fails."""

    def __init__(
        self,
        temp_dir: Union[str, Path],
        policy: RetryPolicy = RetryPolicy(),
        sources: Sequence[UrlTemplate] = IMAGE_SOURCES,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable = asyncio.sleep,
        min_size: int = 800,
        max_size: int = 1600,
    ):
        if not sources:
            raise ValueError("At least one image source is required")
        self.temp_dir = Path(temp_dir)
        self.policy = policy
        self.sources = tuple(sources)
        self.rng = rng or random.Random()
        self._transport = transport
        self._sleep = sleep
        self.min_size = min_size
        self.max_size = max_size

    def _random_url(self) -> str:
        width = self.rng.randrange(self.min_size, self.max_size)
        height = self.rng.randrange(self.min_size, self.max_size)
        return self.rng.choice(self.sources)(width, height, self.rng)

    async def _fetch_once(self, client: httpx.AsyncClient, url: str) -> bytes:
        resp = await client.get(url)
        if not resp.is_success:
            raise ImageFetchError(f"HTTP {resp.status_code} {resp.reason_phrase or '(no text)'}")
        if not resp.content:
            raise ImageFetchError("No response body")
        return resp.content

    def _write(self, data: bytes, extension: str) -> Path:
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        path = self.temp_dir / random_image_name(self.rng, extension)
        path.write_bytes(data)
        return path

    async def acquire(self) -> Path:
        """Return the path of a freshly written image file. Never raises for source failures."""
        attempts = self.policy.max_attempts
        timeout = httpx.Timeout(self.policy.per_attempt_timeout)
        async with httpx.AsyncClient(follow_redirects=True, timeout=timeout, transport=self._transport) as client:
            for attempt in range(1, attempts + 1):
                url = self._random_url()
                logger.info("Downloading image [try %d/%d]: %s", attempt, attempts, url)
                try:
                    data = await asyncio.wait_for(self._fetch_once(client, url), self.policy.per_attempt_timeout)
                except asyncio.TimeoutError:
                    logger.warning("Timed out after %.0fs fetching %s", self.policy.per_attempt_timeout, url)
                except (httpx.HTTPError, ImageFetchError) as e:
                    logger.warning("Fetch error for %s: %s", url, str(e) or type(e).__name__)
                else:
                    return self._write(data, "jpg")
                if attempt < attempts:
                    await self._sleep(self.policy.backoff_delay)
        logger.warning("All image sources failed after %d attempts; using the built-in image", attempts)
        return self._write(FALLBACK_PNG, "png")


def remove_quietly(path: Union[str, Path]) -> None:
    """Delete a payload file; failures are ignored because cleanup is best effort."""
    try:
        os.remove(path)
    except OSError:
        pass
