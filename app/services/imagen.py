import asyncio
import logging
import re
import time
from collections.abc import Awaitable, Callable, Sequence
from urllib.parse import quote

import httpx

from app.config import Settings, get_settings
from app.exceptions import GenerationFailure

logger = logging.getLogger(__name__)

# Output pixel size per aspect ratio
ASPECT_DIMENSIONS: dict[str, tuple[int, int]] = {
    "16:9": (1024, 576),
    "1:1": (1024, 1024),
    "9:16": (576, 1024),
    "4:3": (1024, 768),
    "3:4": (768, 1024),
}
DEFAULT_DIMENSIONS = ASPECT_DIMENSIONS["16:9"]

# Title as quoted by the prompt composer
TITLE_PATTERN = re.compile(r'for: "(.*?)"')

BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0",
    "Accept": "image/*",
}


def dimensions_for(aspect_ratio: str | None) -> tuple[int, int]:
    """Width and height for an aspect ratio; unknown ratios get 16:9."""
    return ASPECT_DIMENSIONS.get(aspect_ratio or "", DEFAULT_DIMENSIONS)


def _fresh_seed() -> int:
    """Millisecond timestamp, so providers never hand back a cached image."""
    return int(time.time() * 1000)


class ImageProvider:
    """
    One way of turning a prompt into image bytes.

    Subclasses build the request; ``fetch`` performs it and raises on any
    transport error, timeout, non-2xx status or empty body.
    """

    name = "provider"

    def __init__(self, timeout: float, transport: httpx.AsyncBaseTransport | None = None):
        self.timeout = timeout
        self.transport = transport

    def build_request(self, prompt: str, width: int, height: int) -> tuple[str, dict]:
        raise NotImplementedError

    async def fetch(self, prompt: str, width: int, height: int) -> bytes:
        url, params = self.build_request(prompt, width, height)

        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self.transport,
            follow_redirects=True,
        ) as client:
            response = await client.get(url, params=params, headers=BROWSER_HEADERS)
            response.raise_for_status()

        if not response.content:
            raise ValueError(f"{self.name} returned an empty body")

        return response.content

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(timeout={self.timeout})>"


class PollinationsProvider(ImageProvider):
    """Free text-to-image service; the prompt travels in the URL path."""

    name = "pollinations"

    def __init__(self, base_url: str, model: str = "flux", timeout: float = 45.0, **kwargs):
        super().__init__(timeout, **kwargs)
        self.base_url = base_url.rstrip("/")
        self.model = model

    def build_request(self, prompt: str, width: int, height: int) -> tuple[str, dict]:
        url = f"{self.base_url}/{quote(prompt, safe='')}"
        params = {
            "width": width,
            "height": height,
            "seed": _fresh_seed(),
            "model": self.model,
            "nologo": "true",
        }
        return url, params


class PicsumProvider(ImageProvider):
    """Random stock photo at the requested size."""

    name = "picsum"

    def __init__(self, base_url: str, timeout: float = 10.0, **kwargs):
        super().__init__(timeout, **kwargs)
        self.base_url = base_url.rstrip("/")

    def build_request(self, prompt: str, width: int, height: int) -> tuple[str, dict]:
        return f"{self.base_url}/{width}/{height}", {"random": _fresh_seed()}


class PlaceholderProvider(ImageProvider):
    """Flat placeholder image, last resort so the user still gets something."""

    name = "placeholder"

    max_caption = 60

    def __init__(self, base_url: str, timeout: float = 5.0, text: str = "Thumbnail", **kwargs):
        super().__init__(timeout, **kwargs)
        self.base_url = base_url.rstrip("/")
        self.text = text

    def caption(self, prompt: str) -> str:
        """The quoted title from a composed prompt, else the default text."""
        match = TITLE_PATTERN.search(prompt)
        title = match.group(1).strip() if match else ""
        return title[: self.max_caption] or self.text

    def build_request(self, prompt: str, width: int, height: int) -> tuple[str, dict]:
        params = {"text": self.caption(prompt), "seed": _fresh_seed()}
        return f"{self.base_url}/{width}x{height}/png", params


class ImageAcquisition:
    """
    Try image providers in order and return the first image.

    Before attempt ``i > 0`` the chain sleeps ``backoff_base * 2 ** (i - 1)``
    seconds (1s, 2s, 4s, ... with the default base). A provider failure is
    logged and the next one is tried; when all fail, ``GenerationFailure`` is
    raised and no bytes are returned.
    """

    def __init__(
        self,
        providers: Sequence[ImageProvider],
        backoff_base: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.providers = list(providers)
        self.backoff_base = backoff_base
        self._sleep = sleep

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait before the given zero-based attempt."""
        if attempt <= 0:
            return 0.0
        return self.backoff_base * 2 ** (attempt - 1)

    async def acquire(self, prompt: str, width: int, height: int) -> bytes:
        if not self.providers:
            raise GenerationFailure("No image providers configured")

        failures: list[str] = []

        for attempt, provider in enumerate(self.providers):
            delay = self.backoff_delay(attempt)
            if delay:
                logger.info("Waiting %.1fs before trying %s", delay, provider.name)
                await self._sleep(delay)

            logger.info(
                "Attempt %d/%d: requesting %dx%d image from %s",
                attempt + 1, len(self.providers), width, height, provider.name,
            )
            try:
                image_bytes = await provider.fetch(prompt, width, height)
            except Exception as e:
                logger.warning("Provider %s failed: %s", provider.name, e)
                failures.append(f"{provider.name}: {e}")
                continue

            logger.info("Got %d bytes from %s", len(image_bytes), provider.name)
            return image_bytes

        raise GenerationFailure(
            f"Image generation failed after {len(self.providers)} attempts: " + "; ".join(failures),
            attempts=failures,
        )


def _build_fallback(name: str, settings: Settings) -> ImageProvider:
    if name == PicsumProvider.name:
        return PicsumProvider(settings.picsum_url, timeout=settings.picsum_timeout)
    if name == PlaceholderProvider.name:
        return PlaceholderProvider(settings.placeholder_url, timeout=settings.placeholder_timeout)
    raise ValueError(f"Unknown fallback provider: {name}")


def build_default_chain(settings: Settings) -> list[ImageProvider]:
    """Primary provider repeated ``primary_attempts`` times, then the fallbacks."""
    primary = PollinationsProvider(
        settings.pollinations_url,
        model=settings.pollinations_model,
        timeout=settings.pollinations_timeout,
    )
    chain: list[ImageProvider] = [primary] * max(settings.primary_attempts, 1)
    chain.extend(_build_fallback(name, settings) for name in settings.fallback_providers)
    return chain


def get_image_acquisition() -> ImageAcquisition:
    """FastAPI dependency returning the configured provider chain."""
    settings = get_settings()
    return ImageAcquisition(
        build_default_chain(settings),
        backoff_base=settings.backoff_base_seconds,
    )
