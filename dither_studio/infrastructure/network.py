from __future__ import annotations

import io
import time
from typing import Callable, Mapping

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests
from PIL import Image

from ..buffers import PixelBuffer
from ..config import SETTINGS
from ..errors import InvalidDimensions

SessionFactory = Callable[[], requests.Session]

USER_AGENT = "dither-studio/1.0"


class SourceFetchError(RuntimeError):
    """The source image could not be downloaded or decoded."""


def _merge_query_params(url: str, overrides: Mapping[str, str | None] | None) -> str:
    """Merge override query parameters into ``url``.

    Parameters with a value of ``None`` are removed from the query string.
    """

    if not overrides:
        return url

    parts = urlsplit(url)
    query = dict(parse_qsl(parts.query, keep_blank_values=True))

    for key, value in overrides.items():
        if value is None:
            query.pop(key, None)
        else:
            query[key] = str(value)

    return urlunsplit(parts._replace(query=urlencode(query, doseq=True)))


def load_image(data: bytes) -> PixelBuffer:
    """Decode an encoded image (PNG, JPEG, ...) into an RGBA pixel buffer."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return PixelBuffer.from_image(img)
    except (OSError, Image.DecompressionBombError) as exc:
        raise InvalidDimensions(f"Could not decode image: {exc}") from None


class SourceFetcher:
    def __init__(self, session_factory: SessionFactory | None = None) -> None:
        self._session_factory = session_factory or requests.Session
        self._session = self._create_session()

    def _create_session(self) -> requests.Session:
        session = self._session_factory()
        session.headers.update({"User-Agent": USER_AGENT})
        return session

    def fetch_bytes(
        self,
        source_url: str,
        *,
        overrides: Mapping[str, str | None] | None = None,
    ) -> bytes:
        target_url = _merge_query_params(source_url, overrides)
        last_exception: Exception | None = None
        for attempt in range(1, SETTINGS.source_retries + 2):
            try:
                response = self._session.get(target_url, timeout=SETTINGS.source_timeout)
                response.raise_for_status()
                return response.content
            except requests.RequestException as exc:
                last_exception = exc
                if attempt <= SETTINGS.source_retries:
                    time.sleep(0.4 * attempt)
        raise SourceFetchError(f"Failed to fetch {target_url}: {last_exception}")

    def fetch_source(
        self,
        source_url: str,
        *,
        overrides: Mapping[str, str | None] | None = None,
    ) -> PixelBuffer:
        data = self.fetch_bytes(source_url, overrides=overrides)
        try:
            return load_image(data)
        except InvalidDimensions as exc:
            raise SourceFetchError(f"{source_url}: {exc.message}") from None


FETCHER = SourceFetcher()
