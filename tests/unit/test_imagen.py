"""Unit tests for app.services.imagen: provider chain and backoff."""

import asyncio
from urllib.parse import unquote

import httpx
import pytest

from app.config import Settings
from app.exceptions import GenerationFailure
from app.services.imagen import (
    ImageAcquisition,
    PicsumProvider,
    PlaceholderProvider,
    PollinationsProvider,
    build_default_chain,
    dimensions_for,
)
from app.services.prompt import compose_prompt
from conftest import PNG_BYTES, FakeProvider, SleepRecorder


class TestDimensions:
    """Test aspect ratio to pixel size lookup."""

    @pytest.mark.parametrize(
        "ratio, expected",
        [
            ("16:9", (1024, 576)),
            ("1:1", (1024, 1024)),
            ("9:16", (576, 1024)),
            ("4:3", (1024, 768)),
            ("3:4", (768, 1024)),
        ],
    )
    def test_known_ratios(self, ratio, expected):
        assert dimensions_for(ratio) == expected

    @pytest.mark.parametrize("ratio", ["21:9", "", None, "square"])
    def test_unknown_ratio_defaults_to_16_9(self, ratio):
        assert dimensions_for(ratio) == (1024, 576)


class TestImageAcquisition:
    """Test ordering, backoff and failure of the provider chain."""

    def test_first_provider_success_skips_the_rest(self):
        first = FakeProvider("first")
        second = FakeProvider("second")
        sleep = SleepRecorder()

        result = asyncio.run(ImageAcquisition([first, second], sleep=sleep).acquire("p", 10, 20))

        assert result == PNG_BYTES
        assert first.calls == [("p", 10, 20)]
        assert second.calls == []
        assert sleep.delays == []

    def test_backoff_before_each_fallback(self):
        """When provider k succeeds, 0..k-1 ran once each with 1s, 2s, 4s delays."""
        failing = [FakeProvider(f"f{i}", error=RuntimeError(f"boom {i}")) for i in range(3)]
        winner = FakeProvider("winner", result=b"image")
        late = FakeProvider("late")
        sleep = SleepRecorder()

        chain = ImageAcquisition([*failing, winner, late], sleep=sleep)
        result = asyncio.run(chain.acquire("p", 1024, 576))

        assert result == b"image"
        assert all(len(p.calls) == 1 for p in failing)
        assert len(winner.calls) == 1
        assert late.calls == []
        assert sleep.delays == [1.0, 2.0, 4.0]
        assert sum(sleep.delays) == sum(2 ** (i - 1) for i in range(1, 4))

    def test_backoff_base_scales_delays(self):
        chain = ImageAcquisition([], backoff_base=0.5)
        assert [chain.backoff_delay(i) for i in range(4)] == [0.0, 0.5, 1.0, 2.0]

    def test_all_providers_fail(self):
        providers = [
            FakeProvider("a", error=RuntimeError("rate limited")),
            FakeProvider("b", error=httpx.ConnectError("offline")),
        ]
        sleep = SleepRecorder()

        with pytest.raises(GenerationFailure) as exc_info:
            asyncio.run(ImageAcquisition(providers, sleep=sleep).acquire("p", 1, 1))

        assert "rate limited" in str(exc_info.value)
        assert exc_info.value.attempts == ["a: rate limited", "b: offline"]
        assert sleep.delays == [1.0]

    def test_empty_chain_fails(self):
        with pytest.raises(GenerationFailure):
            asyncio.run(ImageAcquisition([]).acquire("p", 1, 1))


class TestProviders:
    """Test the HTTP requests made by each provider."""

    def test_pollinations_request(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["request"] = request
            return httpx.Response(200, content=PNG_BYTES, headers={"content-type": "image/png"})

        provider = PollinationsProvider(
            "https://image.test/prompt", model="flux", timeout=45.0,
            transport=httpx.MockTransport(handler),
        )
        result = asyncio.run(provider.fetch('A "big" cat / dog', 1024, 576))

        request = seen["request"]
        assert result == PNG_BYTES
        assert unquote(request.url.raw_path.decode().split("?")[0]) == '/prompt/A "big" cat / dog'
        assert request.url.params["width"] == "1024"
        assert request.url.params["height"] == "576"
        assert request.url.params["model"] == "flux"
        assert int(request.url.params["seed"]) > 0
        assert request.headers["accept"] == "image/*"

    def test_non_2xx_is_a_failure(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(502, text="bad gateway"))
        provider = PicsumProvider("https://picsum.test", transport=transport)

        with pytest.raises(httpx.HTTPStatusError):
            asyncio.run(provider.fetch("p", 100, 50))

    def test_timeout_is_a_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        provider = PollinationsProvider("https://image.test/prompt", transport=httpx.MockTransport(handler))

        with pytest.raises(httpx.ReadTimeout):
            asyncio.run(provider.fetch("p", 100, 50))

    def test_empty_body_is_a_failure(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b""))
        provider = PlaceholderProvider("https://placeholder.test", transport=transport)

        with pytest.raises(ValueError):
            asyncio.run(provider.fetch("p", 100, 50))

    def test_picsum_follows_redirects(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "picsum.test":
                return httpx.Response(302, headers={"location": "https://photos.test/id/1.jpg"})
            return httpx.Response(200, content=b"jpeg")

        provider = PicsumProvider("https://picsum.test", transport=httpx.MockTransport(handler))
        assert asyncio.run(provider.fetch("p", 1024, 576)) == b"jpeg"

    def test_placeholder_url_has_size(self):
        url, params = PlaceholderProvider("https://placeholder.test/").build_request("p", 576, 1024)
        assert url == "https://placeholder.test/576x1024/png"
        assert "seed" in params

    def test_placeholder_text_is_the_title(self):
        prompt = compose_prompt(title="Ten Tips for Better Sleep", prompt="a bed")
        _, params = PlaceholderProvider("https://placeholder.test").build_request(prompt, 1024, 576)
        assert params["text"] == "Ten Tips for Better Sleep"

    def test_placeholder_text_without_title(self):
        provider = PlaceholderProvider("https://placeholder.test")
        assert provider.build_request(compose_prompt(), 1, 1)[1]["text"] == "Thumbnail"
        assert provider.caption("no quoted title here") == "Thumbnail"
        assert len(provider.caption(compose_prompt(title="x" * 200))) == provider.max_caption

    def test_real_provider_failure_moves_chain_on(self):
        failing = PollinationsProvider(
            "https://image.test/prompt",
            transport=httpx.MockTransport(lambda request: httpx.Response(429)),
        )
        fallback = PicsumProvider(
            "https://picsum.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"stock")),
        )
        sleep = SleepRecorder()

        result = asyncio.run(ImageAcquisition([failing, fallback], sleep=sleep).acquire("p", 1, 1))

        assert result == b"stock"
        assert sleep.delays == [1.0]


class TestDefaultChain:
    """Test chain construction from settings."""

    def test_default_order(self):
        settings = Settings(_env_file=None, primary_attempts=2, fallback_providers=["picsum", "placeholder"])
        chain = build_default_chain(settings)
        assert [p.name for p in chain] == ["pollinations", "pollinations", "picsum", "placeholder"]
        assert chain[0].timeout == settings.pollinations_timeout
        assert chain[-1].timeout == settings.placeholder_timeout

    def test_primary_always_present(self):
        settings = Settings(_env_file=None, primary_attempts=0, fallback_providers=[])
        assert [p.name for p in build_default_chain(settings)] == ["pollinations"]

    def test_unknown_fallback_rejected(self):
        settings = Settings(_env_file=None, fallback_providers=["dalle"])
        with pytest.raises(ValueError):
            build_default_chain(settings)
