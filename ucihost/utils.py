import sys
from enum import IntEnum
from typing import Callable, Optional, TextIO

Logger = Callable[[str], None]


class ReportingLevel(IntEnum):
    QUIET = 0
    BASIC = 1
    VERBOSE = 2


def color_text(text, color_code):
    return f"\033[{color_code}m{text}\033[0m"

def debug_text(text):
    return f"{color_text('DEBUG', '31')} {text}"

def info_text(text):
    return f"{color_text('INFO', '34')}  {text}"

def sending_text(text):
    return f"{color_text('SENDING  ', '32')} {text}"

def received_text(text):
    return f"{color_text('RECEIVED ', '35')} {text}"

def null_logger(*_) -> None:
    return None

def console_logger(level: ReportingLevel = ReportingLevel.BASIC, *, label: str = "", stream: Optional[TextIO] = None) -> Logger:
    """Return a logger that prints engine traffic, or a no-op when QUIET."""
    if level <= ReportingLevel.QUIET:
        return null_logger

    def log(message: str) -> None:
        out = stream if stream is not None else sys.stdout
        prefix = f"[{label}] " if label else ""
        for line in message.splitlines() or [""]:
            print(f"{prefix}{line}", file=out, flush=True)

    return log
