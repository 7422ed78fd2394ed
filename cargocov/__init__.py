"""HTML coverage reports for Cargo test suites via cargo-binutils."""

from cargocov.config import ReportConfig
from cargocov.errors import (
    CoverageReportError,
    DiscoveryError,
    StepFailedError,
    ToolNotFoundError,
)
from cargocov.report import CoverageReportDriver, ReportResult

__version__ = "0.1.0"

__all__ = [
    "CoverageReportDriver",
    "CoverageReportError",
    "DiscoveryError",
    "ReportConfig",
    "ReportResult",
    "StepFailedError",
    "ToolNotFoundError",
]
