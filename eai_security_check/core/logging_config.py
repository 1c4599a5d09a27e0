"""
Logging configuration for eai-security-check.
"""

import logging
import sys


# Color codes for console output
class LogColors:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    GRAY = "\033[90m"


class ColoredFormatter(logging.Formatter):
    """Formatter that colours the level name."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.colors = {
            logging.DEBUG: LogColors.GRAY,
            logging.INFO: LogColors.BLUE,
            logging.WARNING: LogColors.YELLOW,
            logging.ERROR: LogColors.RED,
            logging.CRITICAL: LogColors.RED + LogColors.BOLD,
        }

    def format(self, record):
        # Work on a copy so other handlers see the plain level name
        record = logging.makeLogRecord(record.__dict__)
        if record.levelno in self.colors:
            record.levelname = (
                f"{self.colors[record.levelno]}{record.levelname}{LogColors.RESET}"
            )

        return super().format(record)


def setup_logging(verbosity: int = 0, use_colors: bool = True) -> None:
    """
    Setup logging configuration based on verbosity level.

    Args:
        verbosity: Verbosity level (0-2)
            0: Only show essential messages (WARNING and above)
            1: Show DEBUG messages from eai_security_check modules (-v)
            2: Show all DEBUG messages including external libraries (-vv)
        use_colors: Whether to use colored output
    """
    level = logging.DEBUG if verbosity >= 1 else logging.WARNING

    if use_colors and sys.stderr.isatty():
        formatter = ColoredFormatter(
            fmt="%(levelname)s: %(message)s", datefmt="%H:%M:%S"
        )
    else:
        formatter = logging.Formatter(
            fmt="%(levelname)s: %(message)s", datefmt="%H:%M:%S"
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if verbosity <= 1:
        # Keep HTTP client chatter out of the audit output
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("requests").setLevel(logging.WARNING)

        if verbosity == 0:
            logging.getLogger("eai_security_check").setLevel(logging.WARNING)
        else:
            logging.getLogger("eai_security_check").setLevel(logging.DEBUG)
    else:
        logging.getLogger("urllib3").setLevel(logging.DEBUG)
        logging.getLogger("requests").setLevel(logging.DEBUG)
        logging.getLogger("eai_security_check").setLevel(logging.DEBUG)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the eai_security_check prefix.

    Args:
        name: Module name (usually __name__)

    Returns:
        Configured logger instance
    """
    if not name.startswith("eai_security_check"):
        if name == "__main__":
            name = "eai_security_check.cli"
        elif "." not in name:
            name = f"eai_security_check.{name}"

    return logging.getLogger(name)
