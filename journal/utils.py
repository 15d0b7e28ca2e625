"""Shared utilities for formatting, paths, and logging."""

import logging
import sys
from pathlib import Path


# Project root is the parent of journal/
PROJECT_ROOT = Path(__file__).resolve().parent.parent


def get_reports_dir() -> Path:
    """Get the reports directory path, creating it if needed."""
    path = PROJECT_ROOT / "reports"
    path.mkdir(exist_ok=True)
    return path


def get_export_dir() -> Path:
    """Get the backup export directory path, creating it if needed."""
    path = PROJECT_ROOT / "backups"
    path.mkdir(exist_ok=True)
    return path


def minutes_to_label(minutes: int) -> str:
    """Format minutes since midnight as HH:MM (1440 -> 24:00)."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def format_currency(value: float) -> str:
    """Format a float as currency: $1,234.56"""
    if value >= 0:
        return f"${value:,.2f}"
    return f"-${abs(value):,.2f}"


def format_signed_currency(value: float) -> str:
    """Currency with an explicit sign for PnL: +$12.50 / -$3.00"""
    if value >= 0:
        return f"+${value:,.2f}"
    return f"-${abs(value):,.2f}"


def format_percentage(value: float, decimals: int = 1) -> str:
    """Format a float as percentage: 12.3%"""
    return f"{value:.{decimals}f}%"


def setup_logging(level: str = "INFO", log_file: str = None) -> None:
    """Configure logging to console and, when log_file is set, to a file.

    Calling it again replaces the handlers it added before. A relative
    log_file is placed under the project root.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(log_level)
    for handler in [h for h in root.handlers if getattr(h, "journal_handler", False)]:
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(log_level)
    console.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    ))
    console.journal_handler = True
    root.addHandler(console)

    if log_file:
        log_path = Path(log_file)
        if not log_path.is_absolute():
            log_path = PROJECT_ROOT / log_path
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        file_handler.journal_handler = True
        root.addHandler(file_handler)
