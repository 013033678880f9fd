"""Run logging for db2snow commands.

Provides a per-run log file with rotation and optional rich console output.
"""

from db2snow.logging.run_logger import (
    RunContext,
    RunLogger,
    configure_console_logging,
    get_run_logger,
)

__all__ = [
    "RunContext",
    "RunLogger",
    "configure_console_logging",
    "get_run_logger",
]
