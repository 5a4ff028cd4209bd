"""
Unified logging utilities for the autoplay engine.

Entrypoints (the API service and the CLI) call configure_logging() once at
startup. Library modules only ever do logging.getLogger(__name__).
"""
import contextvars
import logging
import os
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, List, Optional

# Track whether logging has been configured
_logging_configured = False
# Per-context so concurrent requests keep their own tag
_session_id: contextvars.ContextVar = contextvars.ContextVar("autoradio_session_id", default=None)
_HANDLER_TAG = "_autoradio_handler"
_CONSOLE_FMT_NO_SESSION = '%(asctime)s | %(levelname)-5s | %(name)s | %(message)s'
_CONSOLE_FMT_WITH_SESSION = '%(asctime)s | %(levelname)-5s | %(name)s | session=%(session_id)s | %(message)s'
_FILE_FMT_WITH_SESSION = '%(asctime)s | %(levelname)-5s | %(name)s | %(funcName)s:%(lineno)d | session=%(session_id)s | %(message)s'


class SessionIdFilter(logging.Filter):
    """Inject session_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = _session_id.get() or "-"
        return True


def set_session_id(session_id: Optional[Any]) -> None:
    """Set the playback session id attached to log records."""
    _session_id.set(None if session_id in (None, "") else str(session_id))


def configure_logging(
    level: str = 'INFO',
    log_file: Optional[str] = None,
    file_level: str = 'DEBUG',
    force: bool = False,
    session_id: Optional[Any] = None,
    console: bool = True,
    show_session_id: bool = False,
    stream=None,
) -> None:
    """
    Configure logging for the entire application.

    Should be called once at application startup (in main entrypoint).
    Subsequent calls are ignored unless force=True.

    Args:
        level: Console log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path to log file
        file_level: Log level for file output (default DEBUG)
        force: If True, reconfigure even if already configured
        session_id: Optional playback session id to inject into log records
        console: Whether to add a console handler
        show_session_id: Include the session id in console output
        stream: Console stream (defaults to sys.stdout; the CLI uses stderr
            because stdout carries its JSON response)

    Environment variable overrides:
        LOG_LEVEL: Override the level parameter
        LOG_FILE: Override the log_file parameter
    """
    global _logging_configured

    if session_id is not None:
        set_session_id(session_id)

    if _logging_configured and not force:
        return

    level = os.getenv('LOG_LEVEL', level).upper()
    if log_file is None:
        log_file = os.getenv('LOG_FILE')

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)  # Capture all, filter at handler level

    # Remove handlers we previously installed (tagged)
    for handler in root.handlers[:]:
        if getattr(handler, _HANDLER_TAG, False):
            root.removeHandler(handler)

    root.filters = [f for f in root.filters if not isinstance(f, SessionIdFilter)]
    root.addFilter(SessionIdFilter())

    use_session_console = show_session_id or level == "DEBUG"

    if console:
        console_handler = logging.StreamHandler(stream or sys.stdout)
        console_handler.setLevel(getattr(logging, level, logging.INFO))
        console_handler.setFormatter(logging.Formatter(
            _CONSOLE_FMT_WITH_SESSION if use_session_console else _CONSOLE_FMT_NO_SESSION,
            datefmt='%H:%M:%S',
        ))
        console_handler.addFilter(SessionIdFilter())
        setattr(console_handler, _HANDLER_TAG, True)
        root.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(getattr(logging, file_level, logging.DEBUG))
        file_handler.setFormatter(logging.Formatter(
            _FILE_FMT_WITH_SESSION,
            datefmt='%Y-%m-%d %H:%M:%S',
        ))
        file_handler.addFilter(SessionIdFilter())
        setattr(file_handler, _HANDLER_TAG, True)
        root.addHandler(file_handler)

    # Quiet noisy third-party loggers
    for noisy in ['uvicorn.access', 'httpx']:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    _logging_configured = True

    logger = logging.getLogger(__name__)
    logger.debug(
        "Logging configured: level=%s, file=%s, session=%s",
        level, log_file or 'none', _session_id.get() or '-',
    )


@contextmanager
def stage_timer(stage_name: str, logger: Optional[logging.Logger] = None, timings: Optional[dict] = None):
    """
    Context manager for timing engine stages.

    Logs stage start at DEBUG and completion with timing at DEBUG; the
    engine runs per track change so INFO would be too chatty. When a
    timings dict is passed, the elapsed milliseconds are stored under
    stage_name.

    Usage:
        with stage_timer("Candidate pool", logger, timings):
            pool = build_candidate_pool(...)
    """
    logger = logger or logging.getLogger(__name__)
    logger.debug("%s starting...", stage_name)
    start = time.perf_counter()

    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        if timings is not None:
            timings[stage_name] = round(elapsed_ms, 3)
        logger.debug("%s completed in %.1fms", stage_name, elapsed_ms)


def truncate_list(items: List[Any], max_items: int = 3, format_fn=str) -> str:
    """
    Format a list for logging, truncating if needed.

    Returns:
        Formatted string like "a, b, c (+5 more)"
    """
    if not items:
        return "(none)"

    formatted = [format_fn(item) for item in items[:max_items]]
    result = ', '.join(formatted)

    if len(items) > max_items:
        result += f" (+{len(items) - max_items} more)"

    return result


def add_logging_args(parser) -> None:
    """
    Add standard logging CLI arguments to an argparse parser.

    Usage:
        parser = argparse.ArgumentParser()
        add_logging_args(parser)
        args = parser.parse_args()
        configure_logging(level=resolve_log_level(args), log_file=args.log_file)
    """
    group = parser.add_argument_group('logging')
    group.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Set logging level (default: INFO)'
    )
    group.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging (shortcut for --log-level DEBUG)'
    )
    group.add_argument(
        '--quiet',
        action='store_true',
        help='Suppress most output (shortcut for --log-level WARNING)'
    )
    group.add_argument(
        '--log-file',
        type=str,
        metavar='PATH',
        help='Write logs to file'
    )
    group.add_argument(
        '--show-session-id',
        action='store_true',
        help='Include the session id in console logs (always included in file logs)',
    )


def resolve_log_level(args) -> str:
    """
    Resolve log level from parsed arguments.

    Priority: --debug > --quiet > --log-level
    """
    if getattr(args, 'debug', False):
        return 'DEBUG'
    if getattr(args, 'quiet', False):
        return 'WARNING'
    return getattr(args, 'log_level', 'INFO')
