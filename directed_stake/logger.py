"""
Logging for the directed-stake tools.

Everything logs through the standard `logging` tree. The first call to
`get_logger` installs a `rich` console handler on stderr (stdout is kept
for command output) and, when `LOG_TO_FILE` is set, a rotating file
handler. Every line goes through `TerminalSafeFormatter` because wallet
strings and program logs come from the ledger, not from us.

    >>> from directed_stake.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("[reconcile] 12 holders directed")
"""

import logging
import logging.handlers
import re
import sys
import threading
import time
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.highlighter import RegexHighlighter
from rich.logging import RichHandler
from rich.theme import Theme

from .constants import (
    LOG_LEVEL,
    LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOG_MAX_FILE_SIZE,
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_HIGHLIGHTING,
    LOG_TO_FILE,
)


PROJECT_ROOT = Path(__file__).parent.parent
LOG_FILE_PATH = PROJECT_ROOT / "logs" / "directed_stake.log"

# Libraries whose per-request INFO lines duplicate what the transport logs
QUIET_LIBRARIES = ("httpx", "httpcore")

LOG_THEME = Theme({
    "directed.amount":         "bold blue",
    "directed.arrow":          "bold yellow",
    "directed.level_critical": "bold red reverse",
    "directed.level_debug":    "bold dim",
    "directed.level_error":    "bold red",
    "directed.level_info":     "bold green",
    "directed.level_warning":  "bold yellow",
    "directed.logger_name":    "magenta",
    "directed.network_error":  "bold red",
    "directed.pubkey":         "cyan",
    "directed.signature":      "bold cyan",
    "directed.tag":            "bold magenta",
    "directed.timestamp":      "bold cyan",
    "directed.url":            "cyan",
})

_UNRENDERED_FIELD = re.compile(r"\([A-Za-z_]\w*\)[A-Za-z]")


def _warn(message: str) -> None:
    # Logging is not up yet when the formats are checked
    print(f"directed_stake.logger: {message}", file=sys.stderr)


class LogManager:
    """
    Process-wide owner of the logging setup.

    There is one instance per process; `configure` is idempotent and
    guarded by a lock so concurrent first calls to `get_logger` agree.
    """

    _instance: Optional["LogManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "LogManager":
        with cls._lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance._configured = False
                cls._instance = instance
        return cls._instance

    @staticmethod
    def validate_log_format(log_format: str) -> str:
        """
        Return `log_format` if it renders a record cleanly, else the default.

        A field missing its leading `%` is still rendered literally by
        `logging`, so the rendered sample is checked for leftovers.
        """
        default = str(LOG_FORMAT.default())
        if not log_format:
            return default

        log_format = str(log_format)
        sample = logging.LogRecord("directed_stake", logging.INFO, "", 0, "sample", (), None)
        try:
            rendered = logging.Formatter(fmt=log_format).format(sample)
        except (ValueError, KeyError, TypeError) as e:
            _warn(f"unusable LOG_FORMAT ({e}), using the default")
            return default
        if "%(" not in log_format or _UNRENDERED_FIELD.search(rendered):
            _warn(f"LOG_FORMAT {log_format!r} has a malformed field, using the default")
            return default
        return log_format

    @staticmethod
    def validate_date_format(date_format: str) -> str:
        """Return `date_format` if strftime accepts it and it has a directive."""
        default = str(LOG_DATE_FORMAT.default())
        if not date_format:
            return default

        date_format = str(date_format)
        try:
            time.strftime(date_format)
        except ValueError as e:
            _warn(f"unusable LOG_DATE_FORMAT ({e}), using the default")
            return default
        if "%" not in date_format.replace("%%", ""):
            _warn(f"LOG_DATE_FORMAT {date_format!r} has no date fields, using the default")
            return default
        return date_format

    def _console_handler(self) -> logging.Handler:
        if not LOG_CONSOLE_HIGHLIGHTING:
            return logging.StreamHandler(sys.stderr)
        # Level, time and path are already part of LOG_FORMAT
        return RichHandler(
            console=Console(theme=LOG_THEME, highlight=False, stderr=True),
            highlighter=DirectedStakeLogHighlighter(),
            keywords=[],
            markup=False,
            rich_tracebacks=True,
            show_level=False,
            show_path=False,
            show_time=False,
        )

    def configure(
        self,
        log_level: Optional[str] = None,
        log_file: Optional[Path] = None,
        console_output: bool = True,
        file_output: Optional[bool] = None,
    ) -> None:
        """
        Install handlers on the root logger. Later calls are no-ops.

        Args:
            log_level: Level name; defaults to `LOG_LEVEL`
            log_file: Rotating log path; defaults to `logs/directed_stake.log`
            console_output: Log to stderr
            file_output: Log to `log_file`; defaults to `LOG_TO_FILE`
        """
        with self._lock:
            if self._configured:
                return

            level = getattr(logging, str(log_level or LOG_LEVEL).upper(), logging.INFO)
            formatter = TerminalSafeFormatter(
                fmt=self.validate_log_format(LOG_FORMAT),
                datefmt=self.validate_date_format(LOG_DATE_FORMAT) + " UTC",
            )
            formatter.converter = time.gmtime

            handlers = []
            if console_output:
                handlers.append(self._console_handler())
            if LOG_TO_FILE if file_output is None else file_output:
                path = log_file or LOG_FILE_PATH
                path.parent.mkdir(parents=True, exist_ok=True)
                handlers.append(logging.handlers.RotatingFileHandler(
                    str(path),
                    maxBytes=LOG_MAX_FILE_SIZE,
                    backupCount=LOG_BACKUP_COUNT,
                    encoding="utf-8",
                ))

            root = logging.getLogger()
            root.handlers.clear()
            root.setLevel(level)
            for handler in handlers:
                handler.setLevel(level)
                handler.setFormatter(formatter)
                root.addHandler(handler)

            for name in QUIET_LIBRARIES:
                logging.getLogger(name).setLevel(logging.WARNING)

            self._configured = True

    def get_logger(self, name: str) -> logging.Logger:
        if not self._configured:
            self.configure()
        return logging.getLogger(name)

    @property
    def is_configured(self) -> bool:
        return self._configured


class TerminalSafeFormatter(logging.Formatter):
    """
    Formatter that strips terminal escapes from the finished line.

    ANSI sequences, carriage returns and other C0 controls are removed so
    a crafted wallet string or program log cannot rewrite the operator's
    terminal or forge lines in the log file (CWE-117). Tabs and newlines
    are kept so tracebacks stay readable.
    """

    _escape_sequence = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b[@-Z\\-_]")
    _control_character = re.compile(r"[\x00-\x08\x0B-\x1F\x7F]")

    @classmethod
    def sanitize(cls, text: str) -> str:
        if not text:
            return text
        return cls._control_character.sub("", cls._escape_sequence.sub("", text))

    def format(self, record: logging.LogRecord) -> str:
        return self.sanitize(super().format(record))


class DirectedStakeLogHighlighter(RegexHighlighter):
    """Highlights keys, signatures, lamport amounts and RPC arrows."""

    base_style = "directed."
    highlights = [
        r"(?P<arrow>-->|<--)",
        r"(?P<level_critical>\bCRITICAL\b)",
        r"(?P<level_debug>\bDEBUG\b)",
        r"(?P<level_error>\bERROR\b)",
        r"(?P<level_info>\bINFO\b)",
        r"(?P<level_warning>\bWARNING\b)",
        r"- [A-Z]+ - (?P<logger_name>[\w.]+) - ",
        r"(?P<network_error>NETWORK_ERROR)",
        r"(?P<signature>\b[1-9A-HJ-NP-Za-km-z]{86,88}\b)",
        r"(?P<pubkey>\b[1-9A-HJ-NP-Za-km-z]{32,44}\b)",
        r"(?P<amount>\b\d+ lamports\b)",
        r"(?P<tag>\[[\w.-]+\])",
        r"(?P<timestamp>^\S+ UTC)",
        r"(?P<url>https?://\S+)",
    ]


_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """Return `logging.getLogger(name)`, configuring logging on first use."""
    return _manager.get_logger(name)
