"""Run logging for db2snow commands.

Every command run gets its own log file in the logs directory of the
configuration, holding the records of the ``db2snow`` logger hierarchy for
that run plus a start and finish summary. Old files are rotated away.
"""

import logging
import os
import sys
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from rich.console import Console
from rich.logging import RichHandler

from ..config import resolve_config_paths, settings
from ..constants import APP_NAME, APP_VERSION

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

# Global logger instance
_run_logger: Optional["RunLogger"] = None


def get_run_logger() -> "RunLogger":
    """Get or create the global run logger instance."""
    global _run_logger
    if _run_logger is None:
        _run_logger = RunLogger()
    return _run_logger


def configure_console_logging(verbose: bool = False) -> None:
    """Send db2snow log records to stderr through rich when verbose."""
    app_logger = logging.getLogger(APP_NAME)
    if not verbose:
        return
    if any(isinstance(h, RichHandler) for h in app_logger.handlers):
        return
    handler = RichHandler(console=Console(stderr=True), show_path=False)
    handler.setLevel(logging.DEBUG)
    app_logger.addHandler(handler)
    app_logger.setLevel(logging.DEBUG)


@dataclass
class RunContext:
    """Context for a command run."""

    run_id: str
    command: str
    engine: Optional[str] = None
    mapping_name: Optional[str] = None
    arguments: Dict[str, Any] = field(default_factory=dict)
    start_time: float = field(default_factory=time.time)
    log_file: Optional[Path] = None

    # Results that get populated during the run
    schemas_count: int = 0
    tables_count: int = 0
    columns_count: int = 0
    foreign_key_count: int = 0
    rows_exported: int = 0
    errors_count: int = 0
    output_path: Optional[str] = None

    def summary(self) -> Dict[str, Any]:
        return {
            "schemas": self.schemas_count,
            "tables": self.tables_count,
            "columns": self.columns_count,
            "foreign_keys": self.foreign_key_count,
            "rows_exported": self.rows_exported,
            "errors": self.errors_count,
            "output": self.output_path,
        }


class RunLogger:
    """Writes one log file per command run.

    Example usage:
        run_logger = get_run_logger()

        with run_logger.log_run(command="export", mapping_name="shop") as ctx:
            results = ...
            ctx.tables_count = len(results)
            ctx.rows_exported = sum(r.row_count for r in results)

            # If an error occurs it is logged with its traceback and re-raised
    """

    def __init__(
        self,
        logs_dir: Optional[Path] = None,
        enabled: bool = True,
        max_files: Optional[int] = None,
    ):
        """Initialize the run logger.

        Args:
            logs_dir: Directory for log files. If None, uses the config logs dir.
            enabled: Whether file logging is enabled.
            max_files: Number of log files to keep (default from settings).
        """
        self.enabled = enabled
        self._logs_dir = logs_dir
        self.max_files = max_files if max_files is not None else settings.max_log_files

    @property
    def logs_dir(self) -> Path:
        return self._logs_dir or resolve_config_paths().logs_dir

    def _new_log_path(self, run_id: str) -> Path:
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        return self.logs_dir / f"{APP_NAME}-{stamp}-{run_id}.log"

    def _open_handler(self, path: Path) -> Optional[logging.Handler]:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(path, encoding="utf-8")
        except OSError as e:
            logger.warning("Failed to open run log %s: %s", path, e)
            return None
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
        return handler

    @contextmanager
    def log_run(
        self,
        command: str,
        engine: Optional[str] = None,
        mapping_name: Optional[str] = None,
        arguments: Optional[Dict[str, Any]] = None,
    ) -> Iterator[RunContext]:
        """Context manager for logging a command run.

        Args:
            command: Command name (e.g., 'export')
            engine: Source engine, when known
            mapping_name: Mapping the command works on
            arguments: Command arguments (never include passwords)

        Yields:
            RunContext that can be updated during the run
        """
        run_id = uuid.uuid4().hex[:8]
        ctx = RunContext(
            run_id=run_id,
            command=command,
            engine=engine,
            mapping_name=mapping_name,
            arguments=arguments or {},
        )

        if not self.enabled:
            yield ctx
            return

        app_logger = logging.getLogger(APP_NAME)
        path = self._new_log_path(run_id)
        handler = self._open_handler(path)
        previous_level = app_logger.level
        if handler is not None:
            ctx.log_file = path
            app_logger.addHandler(handler)
            if app_logger.level == logging.NOTSET or app_logger.level > handler.level:
                app_logger.setLevel(handler.level)

        logger.info(
            "Run %s started: %s (db2snow %s, python %s.%s, cwd %s) engine=%s mapping=%s arguments=%s",
            run_id,
            command,
            APP_VERSION,
            sys.version_info.major,
            sys.version_info.minor,
            os.getcwd(),
            engine,
            mapping_name,
            ctx.arguments,
        )

        try:
            yield ctx
            duration_ms = int((time.time() - ctx.start_time) * 1000)
            logger.info("Run %s completed in %dms: %s", run_id, duration_ms, ctx.summary())
        except Exception as e:
            duration_ms = int((time.time() - ctx.start_time) * 1000)
            logger.error(
                "Run %s failed after %dms: %s: %s", run_id, duration_ms, type(e).__name__, e, exc_info=True
            )
            raise
        finally:
            if handler is not None:
                app_logger.removeHandler(handler)
                handler.close()
                app_logger.setLevel(previous_level)
            self.rotate()

    def list_log_files(self) -> List[Path]:
        """Run log files, oldest first."""
        if not self.logs_dir.is_dir():
            return []
        return sorted(self.logs_dir.glob(f"{APP_NAME}-*.log"))

    def rotate(self) -> int:
        """Delete the oldest log files beyond ``max_files``.

        Returns:
            Number of files deleted
        """
        files = self.list_log_files()
        excess = files[: max(len(files) - self.max_files, 0)]
        for path in excess:
            try:
                path.unlink()
            except OSError as e:
                logger.warning("Failed to remove old log file %s: %s", path, e)
        return len(excess)
