from __future__ import annotations

import io
from typing import Iterable, Sequence

from flask import jsonify, send_file

from ..buffers import PixelBuffer
from ..processing.animation import AnimationFrame, encode_gif


def _with_warnings(response, warnings: Iterable[str]):
    warnings = list(warnings)
    if warnings:
        response.headers["X-Dither-Warnings"] = ",".join(warnings)
    return response


def send_png(pixels: PixelBuffer, warnings: Iterable[str] = ()):
    buffer = io.BytesIO()
    pixels.to_image().save(buffer, "PNG", optimize=True)
    buffer.seek(0)
    return _with_warnings(send_file(buffer, mimetype="image/png"), warnings)


def send_gif(frames: Sequence[AnimationFrame], warnings: Iterable[str] = ()):
    buffer = io.BytesIO(encode_gif(frames))
    return _with_warnings(send_file(buffer, mimetype="image/gif"), warnings)


def send_error(kind: str, message: str, status: int):
    return jsonify(error=kind, message=message), status
