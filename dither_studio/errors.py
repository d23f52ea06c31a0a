"""Typed failures shared by the processing core and the dispatcher."""

from __future__ import annotations

CONVERGENCE_EXCEEDED = "ConvergenceExceeded"


class DitherError(Exception):
    """Base class for every failure the core reports to its caller."""

    kind = "DitherError"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind)
        self.message = message or self.kind


class InvalidDimensions(DitherError):
    kind = "InvalidDimensions"


class UnsupportedAlgorithm(DitherError):
    kind = "UnsupportedAlgorithm"


class InvalidPalette(DitherError):
    kind = "InvalidPalette"


class InvalidRegionGeometry(DitherError):
    kind = "InvalidRegionGeometry"


class InvalidParameter(DitherError):
    kind = "InvalidParameter"


class InvalidAdjustment(InvalidParameter):
    kind = "InvalidAdjustment"


class InternalFault(DitherError):
    kind = "InternalFault"
