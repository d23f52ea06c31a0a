import logging
import os
from dataclasses import dataclass


@dataclass
class StudioSettings:
    port: int
    log_level: str
    source_timeout: float
    source_retries: int
    max_pixels: int
    dither_seed: int
    dbs_max_iterations: int
    region_workers: int
    detect_sensitivity: int
    detect_min_size: int
    default_algorithm: str

    @classmethod
    def from_env(cls) -> "StudioSettings":
        return cls(
            port=int(os.getenv("PORT", "5500")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            source_timeout=float(os.getenv("SOURCE_TIMEOUT", "10.0")),
            source_retries=int(os.getenv("SOURCE_RETRIES", "2")),
            max_pixels=int(os.getenv("MAX_PIXELS", str(4096 * 4096))),
            dither_seed=int(os.getenv("DITHER_SEED", "0")),
            dbs_max_iterations=int(os.getenv("DBS_MAX_ITERATIONS", "15")),
            region_workers=int(os.getenv("REGION_WORKERS", "4")),
            detect_sensitivity=int(os.getenv("DETECT_SENSITIVITY", "30")),
            detect_min_size=int(os.getenv("DETECT_MIN_SIZE", "500")),
            default_algorithm=os.getenv("DEFAULT_ALGORITHM", "halftone"),
        )


SETTINGS = StudioSettings.from_env()


def configure_logging() -> logging.Logger:
    logging.basicConfig(level=SETTINGS.log_level)
    return logging.getLogger("dither-studio")
