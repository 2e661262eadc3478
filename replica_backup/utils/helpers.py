"""
Helper utilities for Replica Backup.

This module contains small formatting functions used by the
executor and the reporter.
"""

from typing import Optional


def format_bytes(bytes_count: Optional[int]) -> str:
    """Format bytes into human-readable string."""
    if bytes_count is None:
        return "?"
    bytes_count = float(bytes_count)
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if bytes_count < 1024.0:
            return f"{bytes_count:.1f} {unit}"
        bytes_count /= 1024.0
    return f"{bytes_count:.1f} PB"


def format_duration(seconds: Optional[float]) -> str:
    """Format an elapsed time as ``1.5s``, ``2m 05s`` or ``1h 04m``."""
    if seconds is None:
        return "?"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(round(seconds)), 60)
    if minutes < 60:
        return f"{minutes}m {secs:02d}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes:02d}m"
