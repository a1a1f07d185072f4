#!/usr/bin/env python3
"""
Common utilities for nodeflow scripts.
"""
import json
import logging
from pathlib import Path
from typing import Any, Union


def setup_logging(verbose: bool = False):
    """Configure root logging for command-line entry points"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def format_duration(seconds: float) -> str:
    """Format duration in seconds to human-readable string"""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes, secs = divmod(seconds, 60)
    return f"{int(minutes)}m {secs:.0f}s"


def print_section(title: str, width: int = 60):
    """Print a section header"""
    print("\n" + "=" * width)
    print(title)
    print("=" * width)


def save_json(data: Any, path: Union[str, Path], indent: int = 2):
    """Save data to JSON file"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, default=str)


def load_json(path: Union[str, Path]) -> Any:
    """Load data from JSON file"""
    with open(Path(path), 'r', encoding='utf-8') as f:
        return json.load(f)
