"""Tagged, colorized log records and the bounded buffer behind the log panel."""

import sys
import logging
from collections import deque
from typing import Deque, List, Optional, Tuple

from colorama import Fore, Style, just_fix_windows_console

just_fix_windows_console()

LOGGER_NAME = "t1bridge"

TAG_COLORS = {
    "bridge": Fore.MAGENTA,
    "system": "",
    "error": Fore.RED,
    "success": Fore.GREEN,
    "warning": Fore.YELLOW,
    "info": Fore.CYAN,
}

LEVEL_TAGS = {
    "DEBUG": "info",
    "INFO": "info",
    "WARNING": "warning",
    "ERROR": "error",
    "CRITICAL": "error",
}

# ``extra`` mappings for logger calls
BRIDGE = {"tag": "bridge"}
SYSTEM = {"tag": "system"}
SUCCESS = {"tag": "success"}

LABEL_WIDTH = max(len(f"[{tag.upper()}]") for tag in TAG_COLORS)
MAX_LOG_LINES = 500
DEFAULT_PANEL_WIDTH = 70


def record_tag(record: logging.LogRecord) -> str:
    """Explicit ``tag`` extra if known, else the tag for the record level."""
    tag = getattr(record, "tag", None)
    if tag in TAG_COLORS:
        return tag
    return LEVEL_TAGS.get(record.levelname, "info")


def word_wrap(text: str, max_width: int) -> List[str]:
    """Greedy word wrap; words wider than ``max_width`` are split hard."""
    if not text or len(text) <= max_width or max_width <= 0:
        return [text or ""]

    lines: List[str] = []
    current = ""
    for word in text.split(" "):
        if len(word) > max_width:
            if current:
                lines.append(current)
            while len(word) > max_width:
                lines.append(word[:max_width])
                word = word[max_width:]
            current = word
        else:
            candidate = word if not current else f"{current} {word}"
            if len(candidate) > max_width:
                lines.append(current)
                current = word
            else:
                current = candidate
    if current:
        lines.append(current)
    return lines


class ColoredFormatter(logging.Formatter):
    """``[HH:MM:SS] [TAG]    message`` with the tag colored."""

    def __init__(self, colors: bool = True, datefmt: str = "%H:%M:%S"):
        super().__init__(datefmt=datefmt)
        self.colors = colors

    def prefix(self, record: logging.LogRecord) -> Tuple[str, str]:
        """Return (rendered prefix, plain prefix) for ``record``."""
        tag = record_tag(record)
        plain_label = f"[{tag.upper()}]"
        color = TAG_COLORS[tag] if self.colors else ""
        label = f"{color}{plain_label}{Style.RESET_ALL}" if color else plain_label
        padding = " " * (LABEL_WIDTH - len(plain_label))
        timestamp = self.formatTime(record, self.datefmt)
        return f"[{timestamp}] {label}{padding} ", f"[{timestamp}] {plain_label}{padding} "

    def format(self, record):
        rendered, _ = self.prefix(record)
        text = rendered + record.getMessage()
        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return text


class LogBuffer(logging.Handler):
    """Keeps the most recent wrapped log lines for the dashboard."""

    def __init__(self, width: int = DEFAULT_PANEL_WIDTH, capacity: int = MAX_LOG_LINES, colors: bool = True):
        super().__init__()
        self.width = width
        self._lines: Deque[str] = deque(maxlen=capacity)
        self.setFormatter(ColoredFormatter(colors=colors))

    def emit(self, record):
        try:
            formatter = self.formatter
            if not isinstance(formatter, ColoredFormatter):
                formatter = ColoredFormatter(colors=False)
            rendered, plain = formatter.prefix(record)
            wrap_width = self.width - len(plain)
            wrapped = word_wrap(record.getMessage(), wrap_width if wrap_width > 0 else 1)
            indent = " " * len(plain)
            self._lines.append(f"{rendered}{wrapped[0]}")
            for line in wrapped[1:]:
                self._lines.append(f"{indent}{line}")
        except Exception:
            self.handleError(record)

    def lines(self, limit: Optional[int] = None) -> List[str]:
        """Snapshot of buffered lines, the last ``limit`` when given."""
        with self.lock:
            snapshot = list(self._lines)
        if limit is not None:
            return snapshot[-limit:] if limit > 0 else []
        return snapshot

    def clear(self) -> None:
        with self.lock:
            self._lines.clear()


def setup_logging(level: str = "INFO", buffer: Optional[LogBuffer] = None, stream=None) -> logging.Logger:
    """Configure the package logger: colored console output plus the panel buffer."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console = logging.StreamHandler(stream or sys.stdout)
    console.setFormatter(ColoredFormatter())
    logger.addHandler(console)
    if buffer is not None:
        logger.addHandler(buffer)
    logger.propagate = False
    return logger
