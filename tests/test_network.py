"""Tests for the source fetching helpers."""

import io

import pytest


requests = pytest.importorskip("requests")

from PIL import Image

from dither_studio.config import SETTINGS
from dither_studio.errors import InvalidDimensions
from dither_studio.infrastructure.network import (
    USER_AGENT,
    SourceFetcher,
    SourceFetchError,
    _merge_query_params,
    load_image,
)


def _png_bytes(size=(6, 4), color=(10, 20, 30)):
    buffer = io.BytesIO()
    Image.new("RGB", size, color=color).save(buffer, "PNG")
    return buffer.getvalue()


class _FakeResponse:
    def __init__(self, content):
        self.content = content

    def raise_for_status(self):
        return None


class _FakeSession:
    def __init__(self, content=b"", fail=False):
        self.headers = {}
        self.calls = []
        self._content = content
        self._fail = fail

    def get(self, url, timeout=None):
        self.calls.append(url)
        if self._fail:
            raise requests.ConnectionError("unreachable")
        return _FakeResponse(self._content)


def test_merge_query_params_no_overrides():
    url = "http://example.com/render?page=main"
    assert _merge_query_params(url, None) == url


def test_merge_query_params_overrides_existing_values():
    url = "http://example.com/render?page=main&size=small"
    merged = _merge_query_params(url, {"page": "gallery", "size": "large"})
    assert merged == "http://example.com/render?page=gallery&size=large"


def test_merge_query_params_adds_new_keys_and_removes_none_values():
    url = "http://example.com/render?size=small"
    merged = _merge_query_params(url, {"page": "office", "size": None, "theme": "dark"})
    assert merged == "http://example.com/render?page=office&theme=dark"


def test_fetch_source_decodes_rgba_pixels():
    session = _FakeSession(content=_png_bytes())
    fetcher = SourceFetcher(session_factory=lambda: session)

    pixels = fetcher.fetch_source("http://images.local/cat.png", overrides={"w": "6"})

    assert pixels.size == (6, 4)
    assert pixels.data[0, 0].tolist() == [10, 20, 30, 255]
    assert session.calls == ["http://images.local/cat.png?w=6"]
    assert session.headers["User-Agent"] == USER_AGENT


def test_fetch_gives_up_after_the_configured_retries(monkeypatch):
    monkeypatch.setattr(SETTINGS, "source_retries", 0)
    session = _FakeSession(fail=True)
    fetcher = SourceFetcher(session_factory=lambda: session)

    with pytest.raises(SourceFetchError):
        fetcher.fetch_bytes("http://images.local/missing.png")

    assert len(session.calls) == 1


def test_fetch_source_rejects_undecodable_bodies():
    fetcher = SourceFetcher(session_factory=lambda: _FakeSession(content=b"<html>"))

    with pytest.raises(SourceFetchError):
        fetcher.fetch_source("http://images.local/page")


def test_load_image_rejects_garbage():
    with pytest.raises(InvalidDimensions):
        load_image(b"definitely not an image")
