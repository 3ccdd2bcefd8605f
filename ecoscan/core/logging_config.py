"""Logging configuration.

Provides structured, rotating logs with optional JSON output. Binds lightweight contextvars
(request_id/account_id/ip) to every record so ledger, lifecycle and migration log lines can be
correlated with the HTTP request that caused them.
"""

import json
import logging
import logging.handlers
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

# Context variables used across middleware/handlers to enrich logs
request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
account_id_ctx: ContextVar[Optional[int]] = ContextVar("account_id", default=None)
ip_ctx: ContextVar[Optional[str]] = ContextVar("ip_address", default=None)

_TEXT_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
)
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_EXTRA_FIELDS = (
    ("account_id", "account_id"),
    ("request_id", "request_id"),
    ("ip_address", "ip_address"),
    ("endpoint", "endpoint"),
    ("method", "method"),
    ("status_code", "status_code"),
    ("duration", "duration_ms"),
    ("event", "event"),
)


class JSONFormatter(logging.Formatter):
    """Emit logs as JSON for aggregation (ELK/Loki/etc.)."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for attr, key in _EXTRA_FIELDS:
            if hasattr(record, attr):
                log_data[key] = getattr(record, attr)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ColoredFormatter(logging.Formatter):
    """Add ANSI colors to console output for local readability."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class ContextEnricher(logging.Filter):
    """Inject contextvars (request_id, account_id, ip_address) into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        request_id = request_id_ctx.get()
        account_id = account_id_ctx.get()
        ip_address = ip_ctx.get()
        if request_id and not hasattr(record, "request_id"):
            record.request_id = request_id
        if account_id and not hasattr(record, "account_id"):
            record.account_id = account_id
        if ip_address and not hasattr(record, "ip_address"):
            record.ip_address = ip_address
        return True


def bind_request_context(
    *,
    request_id: Optional[str] = None,
    account_id: Optional[int] = None,
    ip_address: Optional[str] = None,
):
    """Bind request context into contextvars; returns tokens for reset."""
    tokens = []
    if request_id is not None:
        tokens.append((request_id_ctx, request_id_ctx.set(request_id)))
    if account_id is not None:
        tokens.append((account_id_ctx, account_id_ctx.set(account_id)))
    if ip_address is not None:
        tokens.append((ip_ctx, ip_ctx.set(ip_address)))
    return tokens


def reset_request_context(tokens):
    """Reset bound contextvars using tokens returned by bind_request_context."""
    for var, token in reversed(tokens):
        var.reset(token)


def _rotating_handler(
    path: Path,
    level: int,
    *,
    max_bytes: int,
    backup_count: int,
    formatter: logging.Formatter,
) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
        delay=True,
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _reset_handlers(logger: logging.Logger) -> None:
    """Close and remove any existing handlers to avoid descriptor leaks."""
    for handler in list(logger.handlers):
        try:
            handler.flush()
        finally:
            handler.close()
            logger.removeHandler(handler)


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[str] = None,
    app_name: str = "ecoscan",
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5,
    use_json: bool = False,
    use_colors: bool = True,
) -> None:
    """Configure root logging.

    Args:
        log_level: Minimum logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_dir: Directory to store log files; if None, logs only to console.
        app_name: Application name used in log filenames.
        max_bytes: Max size per log file before rotation.
        backup_count: Number of rotated files to keep.
        use_json: If True, use JSON for file handlers (better for aggregation).
        use_colors: If True, add ANSI colors to console output.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    _reset_handlers(root_logger)
    context_filter = ContextEnricher()
    for existing in list(root_logger.filters):
        if isinstance(existing, ContextEnricher):
            root_logger.removeFilter(existing)
    root_logger.addFilter(context_filter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.addFilter(context_filter)
    formatter_cls = ColoredFormatter if use_colors else logging.Formatter
    console_handler.setFormatter(formatter_cls(_TEXT_FORMAT, datefmt=_DATE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        rotation = {"max_bytes": max_bytes, "backup_count": backup_count}

        def _file_formatter(fmt: str) -> logging.Formatter:
            if use_json:
                return JSONFormatter()
            return logging.Formatter(fmt, datefmt=_DATE_FORMAT)

        root_logger.addHandler(
            _rotating_handler(
                log_path / f"{app_name}.log",
                logging.DEBUG,
                formatter=_file_formatter(_TEXT_FORMAT),
                **rotation,
            )
        )
        root_logger.addHandler(
            _rotating_handler(
                log_path / f"{app_name}_error.log",
                logging.ERROR,
                formatter=_file_formatter(_TEXT_FORMAT),
                **rotation,
            )
        )

        access_logger = logging.getLogger("access")
        _reset_handlers(access_logger)
        access_logger.addHandler(
            _rotating_handler(
                log_path / f"{app_name}_access.log",
                logging.INFO,
                formatter=_file_formatter(
                    "%(asctime)s | %(method)s %(endpoint)s | Status: %(status_code)s"
                    " | Duration: %(duration)sms | IP: %(ip_address)s"
                ),
                **rotation,
            )
        )
        access_logger.setLevel(logging.INFO)
        access_logger.propagate = False
        access_logger.addFilter(context_filter)

    # Suppress noisy loggers
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logging.info(
        f"Logging configured. Level: {log_level}, Directory: {log_dir or 'console only'}"
    )


def log_request(
    method: str,
    endpoint: str,
    status_code: int,
    duration_ms: float,
    ip_address: str,
    account_id: Optional[int] = None,
    request_id: Optional[str] = None,
) -> None:
    """Write one structured access-log line for an HTTP request."""
    logger = logging.getLogger("access")
    extra = {
        "method": method,
        "endpoint": endpoint,
        "status_code": status_code,
        "duration": f"{duration_ms:.2f}",
        "ip_address": ip_address,
    }

    if account_id:
        extra["account_id"] = account_id
    if request_id:
        extra["request_id"] = request_id

    logger.info(f"{method} {endpoint} - {status_code} - {duration_ms:.2f}ms", extra=extra)
