"""Request/response protocol between the host and the processing core.

The host hands over a request that owns its pixel buffers and receives exactly
one response. ``handle`` runs the request on the calling thread against a copy
of the current settings; ``submit`` moves the buffers into the request and runs
it on the dispatcher's single worker, returning a future for the response.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence, Tuple, Union

from ..buffers import PixelBuffer
from ..config import SETTINGS, StudioSettings
from ..errors import DitherError, InternalFault, InvalidDimensions
from ..geometry import MaskRegion
from ..params import AdjustmentParams, Algorithm, AlgorithmParams
from ..processing.animation import AnimationFrame, process_animation
from ..processing.detect import BoundingBox, detect_regions
from ..processing.enhance import adjust
from ..processing.pipeline import SelectiveLayer, composite_layers, process_image

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessImage:
    pixels: PixelBuffer
    algorithm: Algorithm
    params: AlgorithmParams = field(default_factory=AlgorithmParams)
    adjustments: AdjustmentParams = field(default_factory=AdjustmentParams)
    regions: Tuple[MaskRegion, ...] = ()


@dataclass(frozen=True)
class DetectRegions:
    pixels: PixelBuffer
    sensitivity: Optional[float] = None
    min_size: Optional[int] = None


@dataclass(frozen=True)
class ProcessSelective:
    pixels: PixelBuffer
    layers: Tuple[SelectiveLayer, ...]
    default_algorithm: Algorithm = Algorithm.ORDERED
    default_params: AlgorithmParams = field(default_factory=AlgorithmParams)
    adjustments: AdjustmentParams = field(default_factory=AdjustmentParams)


@dataclass(frozen=True)
class ProcessAnimation:
    frames: Tuple[AnimationFrame, ...]
    algorithm: Algorithm
    params: AlgorithmParams = field(default_factory=AlgorithmParams)
    adjustments: AdjustmentParams = field(default_factory=AdjustmentParams)
    regions: Tuple[MaskRegion, ...] = ()


Request = Union[ProcessImage, DetectRegions, ProcessSelective, ProcessAnimation]


@dataclass(frozen=True)
class Success:
    pixels: Optional[PixelBuffer] = None
    regions: Optional[List[BoundingBox]] = None
    frames: Optional[Tuple[AnimationFrame, ...]] = None
    warnings: Tuple[str, ...] = ()

    ok = True


@dataclass(frozen=True)
class Failure:
    kind: str
    message: str

    ok = False


Response = Union[Success, Failure]


def _check_limits(pixels: PixelBuffer, settings: StudioSettings) -> None:
    if pixels.detached:
        raise InvalidDimensions("Pixel buffer was transferred and is detached")
    count = pixels.width * pixels.height
    if count > settings.max_pixels:
        raise InvalidDimensions(
            f"{pixels.width}x{pixels.height} exceeds the limit of {settings.max_pixels} pixels"
        )


def _run(request: Request) -> Success:
    # settings can be patched over HTTP while a request is in flight
    settings = replace(SETTINGS)

    if isinstance(request, ProcessAnimation):
        for frame in request.frames:
            _check_limits(frame.pixels, settings)
        frames, warnings = process_animation(
            request.frames,
            request.algorithm,
            request.params,
            request.adjustments,
            request.regions,
            settings=settings,
        )
        return Success(frames=tuple(frames), warnings=tuple(warnings))

    _check_limits(request.pixels, settings)

    if isinstance(request, ProcessImage):
        result = process_image(
            request.pixels,
            request.algorithm,
            request.params,
            request.adjustments,
            request.regions,
            settings=settings,
        )
        return Success(pixels=result.pixels, warnings=tuple(result.warnings))

    if isinstance(request, DetectRegions):
        sensitivity = (
            settings.detect_sensitivity if request.sensitivity is None else request.sensitivity
        )
        min_size = settings.detect_min_size if request.min_size is None else request.min_size
        boxes = detect_regions(request.pixels, sensitivity, min_size)
        return Success(regions=boxes)

    if isinstance(request, ProcessSelective):
        adjusted = adjust(request.pixels, request.adjustments)
        result = composite_layers(
            adjusted,
            request.layers,
            request.default_algorithm,
            request.default_params,
            settings=settings,
        )
        return Success(pixels=result.pixels, warnings=tuple(result.warnings))

    raise InternalFault(f"Unknown request type: {type(request).__name__}")


def _take_ownership(request: Request) -> Request:
    if isinstance(request, ProcessAnimation):
        frames = tuple(
            AnimationFrame(frame.pixels.transfer(), frame.duration) for frame in request.frames
        )
        return replace(request, frames=frames)
    return replace(request, pixels=request.pixels.transfer())


class ProcessingDispatcher:
    def __init__(self) -> None:
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="dither-worker")

    def handle(self, request: Request) -> Response:
        started = time.perf_counter()
        try:
            response: Response = _run(request)
        except DitherError as exc:
            logger.info("Request %s rejected: %s", type(request).__name__, exc.message)
            response = Failure(exc.kind, exc.message)
        except Exception as exc:
            logger.exception("Request %s failed", type(request).__name__)
            response = Failure(InternalFault.kind, str(exc) or type(exc).__name__)
        logger.debug(
            "%s handled in %.1f ms", type(request).__name__, (time.perf_counter() - started) * 1000
        )
        return response

    def submit(self, request: Request) -> "Future[Response]":
        """Transfer the request's buffers and process it on the worker thread."""
        try:
            owned = _take_ownership(request)
        except DitherError as exc:
            rejected: "Future[Response]" = Future()
            rejected.set_result(Failure(exc.kind, exc.message))
            return rejected
        return self._executor.submit(self.handle, owned)

    def process_many(self, requests: Sequence[Request]) -> List[Response]:
        futures = [self.submit(request) for request in requests]
        return [future.result() for future in futures]

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "ProcessingDispatcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


DISPATCHER = ProcessingDispatcher()
