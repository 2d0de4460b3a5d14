import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

ENV_LOG_LEVEL = "MORTSIM_LOG_LEVEL"
ENV_STORE_PATH = "MORTSIM_STORE_PATH"

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_STORE_PATH = "mortsim-scenarios.json"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class Settings:
    log_level: str = DEFAULT_LOG_LEVEL
    store_path: Path = Path(DEFAULT_STORE_PATH)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        environ = os.environ if environ is None else environ
        log_level = environ.get(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).upper()
        if log_level not in logging.getLevelNamesMapping():
            log_level = DEFAULT_LOG_LEVEL
        return cls(
            log_level=log_level,
            store_path=Path(environ.get(ENV_STORE_PATH, DEFAULT_STORE_PATH)),
        )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
