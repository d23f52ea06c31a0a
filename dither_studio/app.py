from __future__ import annotations

import json
import logging
from dataclasses import asdict, fields
from typing import Any, Dict, List, Tuple

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from .buffers import PixelBuffer
from .config import SETTINGS, configure_logging
from .errors import DitherError, InternalFault, InvalidParameter
from .geometry import MaskRegion
from .infrastructure.dispatcher import (
    DISPATCHER,
    DetectRegions,
    Failure,
    ProcessAnimation,
    ProcessImage,
    ProcessSelective,
    Response,
)
from .infrastructure.network import FETCHER, SourceFetchError, load_image
from .infrastructure.responses import send_error, send_gif, send_png
from .params import AdjustmentParams, Algorithm, AlgorithmParams
from .processing.animation import AnimationFrame, load_frames
from .processing.pipeline import build_layers

APP_VERSION = "1.0.0"

logger = logging.getLogger(__name__)


def _read_options() -> Dict[str, Any]:
    if request.is_json:
        payload = request.get_json(silent=True)
    else:
        raw = request.form.get("options") or "{}"
        try:
            payload = json.loads(raw)
        except ValueError:
            raise InvalidParameter("options must be a JSON object") from None
    if not isinstance(payload, dict):
        raise InvalidParameter("options must be a JSON object")
    return payload


def _read_pixels(options: Dict[str, Any]) -> PixelBuffer:
    upload = request.files.get("image")
    if upload is not None:
        return load_image(upload.read())
    source_url = request.values.get("source_url") or options.get("sourceUrl")
    if source_url:
        return FETCHER.fetch_source(source_url, overrides=options.get("sourceParams"))
    raise InvalidParameter("Provide an 'image' upload or a 'source_url'")


def _read_frames(options: Dict[str, Any]) -> List[AnimationFrame]:
    upload = request.files.get("image")
    if upload is not None:
        return load_frames(upload.read())
    source_url = request.values.get("source_url") or options.get("sourceUrl")
    if source_url:
        return load_frames(FETCHER.fetch_bytes(source_url, overrides=options.get("sourceParams")))
    raise InvalidParameter("Provide an 'image' upload or a 'source_url'")


def _option(options: Dict[str, Any], *names: str, default: Any = None) -> Any:
    for name in names:
        if name in options:
            return options[name]
        if name in request.values:
            return request.values[name]
    return default


def _parse_common(options: Dict[str, Any]) -> Tuple[AlgorithmParams, AdjustmentParams]:
    params = AlgorithmParams.from_mapping(options.get("params"))
    adjustments = AdjustmentParams.from_mapping(options.get("adjustments"))
    return params, adjustments


def _parse_regions(options: Dict[str, Any], params: AlgorithmParams) -> Tuple[MaskRegion, ...]:
    raw_regions = options.get("regions") or []
    if not isinstance(raw_regions, list):
        raise InvalidParameter("regions must be a list")
    return tuple(MaskRegion.from_mapping(region, params) for region in raw_regions)


def _failure_status(failure: Failure) -> int:
    return 500 if failure.kind == InternalFault.kind else 400


def _image_response(response: Response):
    if isinstance(response, Failure):
        return send_error(response.kind, response.message, _failure_status(response))
    return send_png(response.pixels, response.warnings)


def create_app() -> Flask:
    configure_logging()
    app = Flask(__name__)

    @app.errorhandler(DitherError)
    def dither_error(exc: DitherError):
        status = 500 if isinstance(exc, InternalFault) else 400
        return send_error(exc.kind, exc.message, status)

    @app.errorhandler(SourceFetchError)
    def source_error(exc: SourceFetchError):
        logger.warning("Source fetch failed: %s", exc)
        return send_error("SourceFetchError", str(exc), 502)

    @app.route("/process", methods=["POST"])
    def process():
        options = _read_options()
        params, adjustments = _parse_common(options)
        algorithm = Algorithm.parse(_option(options, "algorithm", default=SETTINGS.default_algorithm))
        regions = _parse_regions(options, params)
        pixels = _read_pixels(options)
        future = DISPATCHER.submit(
            ProcessImage(pixels, algorithm, params, adjustments, regions)
        )
        return _image_response(future.result())

    @app.route("/process-selective", methods=["POST"])
    def process_selective():
        options = _read_options()
        params, adjustments = _parse_common(options)
        default_algorithm = Algorithm.parse(
            _option(options, "defaultAlgorithm", "default_algorithm", default=Algorithm.ORDERED)
        )
        regions = _parse_regions(options, params)
        pixels = _read_pixels(options)
        layers = tuple(build_layers(regions, pixels.width, pixels.height))
        future = DISPATCHER.submit(
            ProcessSelective(pixels, layers, default_algorithm, params, adjustments)
        )
        return _image_response(future.result())

    @app.route("/process-animation", methods=["POST"])
    def process_animation():
        options = _read_options()
        params, adjustments = _parse_common(options)
        algorithm = Algorithm.parse(_option(options, "algorithm", default=SETTINGS.default_algorithm))
        regions = _parse_regions(options, params)
        frames = tuple(_read_frames(options))
        response = DISPATCHER.submit(
            ProcessAnimation(frames, algorithm, params, adjustments, regions)
        ).result()
        if isinstance(response, Failure):
            return send_error(response.kind, response.message, _failure_status(response))
        return send_gif(response.frames, response.warnings)

    @app.route("/detect-regions", methods=["POST"])
    def detect():
        options = _read_options()
        try:
            sensitivity = float(_option(options, "sensitivity", default=SETTINGS.detect_sensitivity))
            min_size = int(_option(options, "min_size", "minSize", default=SETTINGS.detect_min_size))
        except (TypeError, ValueError):
            raise InvalidParameter("sensitivity and min_size must be numbers") from None
        pixels = _read_pixels(options)
        response = DISPATCHER.submit(DetectRegions(pixels, sensitivity, min_size)).result()
        if isinstance(response, Failure):
            return send_error(response.kind, response.message, _failure_status(response))
        return jsonify(
            width=pixels.width,
            height=pixels.height,
            regions=[box.to_dict() for box in response.regions],
        )

    @app.route("/health")
    def health():
        return jsonify(
            ok=True,
            version=APP_VERSION,
            default_algorithm=SETTINGS.default_algorithm,
            algorithms=[algorithm.value for algorithm in Algorithm],
        )

    @app.route("/settings", methods=["GET", "PATCH"])
    def settings_view():
        if request.method == "GET":
            return jsonify(asdict(SETTINGS))

        payload = request.get_json(silent=True) or {}
        errors: dict[str, str] = {}
        applied: dict[str, object] = {}

        for field in fields(SETTINGS):
            if field.name not in payload:
                continue

            raw_value = payload[field.name]
            try:
                if field.type is int:
                    coerced = int(raw_value)
                elif field.type is float:
                    coerced = float(raw_value)
                else:
                    coerced = str(raw_value)
            except (TypeError, ValueError):
                errors[field.name] = f"Expected {field.type.__name__}"
                continue

            if field.name == "default_algorithm":
                try:
                    coerced = Algorithm.parse(coerced).value
                except DitherError as exc:
                    errors[field.name] = exc.message
                    continue
            elif field.name == "log_level":
                coerced = str(coerced).upper()
                if coerced not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
                    errors[field.name] = f"Unknown log level {coerced}"
                    continue
                logging.getLogger().setLevel(coerced)

            setattr(SETTINGS, field.name, coerced)
            applied[field.name] = coerced

        status = 400 if errors else 200
        return (
            jsonify(updated=applied, errors=errors, settings=asdict(SETTINGS)),
            status,
        )

    @app.errorhandler(Exception)
    def unexpected(exc: Exception):  # pragma: no cover - runtime fallback path
        if isinstance(exc, HTTPException):
            return exc
        logger.exception("Unhandled error")
        return send_error(InternalFault.kind, str(exc), 500)

    return app


# Expose a module-level Flask application for WSGI servers like ``dither_studio.app:app``.
app = create_app()
application = app
