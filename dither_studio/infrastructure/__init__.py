"""Infrastructure helpers for dispatching, networking and HTTP responses."""

from .dispatcher import (
    DISPATCHER,
    DetectRegions,
    Failure,
    ProcessAnimation,
    ProcessImage,
    ProcessSelective,
    ProcessingDispatcher,
    Success,
)
from .network import FETCHER, SourceFetchError, SourceFetcher, load_image
from .responses import send_error, send_gif, send_png

__all__ = [
    "DISPATCHER",
    "DetectRegions",
    "Failure",
    "ProcessAnimation",
    "ProcessImage",
    "ProcessSelective",
    "ProcessingDispatcher",
    "Success",
    "FETCHER",
    "SourceFetchError",
    "SourceFetcher",
    "load_image",
    "send_error",
    "send_gif",
    "send_png",
]
