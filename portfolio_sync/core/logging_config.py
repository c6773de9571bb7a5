"""
Logging setup for the sync backend.

Serverless deployments have no writable disk, so file output is opt-in via
LOG_DIR; console output is always on. Pipeline modules log through
`logging.getLogger(__name__)` with bracketed stage prefixes ([SYNC],
[TRAVERSAL], [READER], ...).
"""
import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

# LogRecord attributes copied into JSON output when a caller passes them via `extra=`
CONTEXT_FIELDS = ("request_id", "folder_id", "stage")

MAX_LOG_BYTES = 10 * 1024 * 1024

# Third-party loggers that are noisy at INFO
QUIET_LOGGERS = ("googleapiclient.discovery_cache", "httpx", "hpack")


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shipping"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class DetailedFormatter(logging.Formatter):
    """Human-readable formatter for the console and local files"""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)-40s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def _rotating(path: Path, level: int, backups: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=backups, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    log_dir: Optional[Path] = None,
    level: str = "INFO",
    enable_json: bool = False,
) -> logging.Logger:
    """
    Replace the root handlers with console (and optionally file) output.

    With `log_dir`, writes portfolio_sync.log (everything) and
    portfolio_sync_errors.log (ERROR and above), rotated at 10MB.
    """
    formatter: logging.Formatter = JSONFormatter() if enable_json else DetailedFormatter()
    handlers: List[logging.Handler] = []

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    handlers.append(console)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(_rotating(log_dir / "portfolio_sync.log", logging.DEBUG, 5, formatter))
        handlers.append(_rotating(log_dir / "portfolio_sync_errors.log", logging.ERROR, 10, formatter))

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in handlers:
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger("portfolio_sync")
    logger.info(f"Logging configured - level {level}, files in {log_dir or '(console only)'}")
    return logger
