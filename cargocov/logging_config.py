"""
Logging setup for cargo-cov-report.

Everything logs under the ``cargocov`` namespace; the CLI calls
``setup_logging`` once before running the pipeline.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level=logging.INFO, log_file: Optional[Path] = None) -> None:
    handlers = [logging.StreamHandler(sys.stderr)]

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=level, format=DEFAULT_FORMAT, handlers=handlers, force=True)
    logging.getLogger("cargocov").setLevel(level)

    # matplotlib is chatty at DEBUG
    logging.getLogger("matplotlib").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"cargocov.{name}")
