"""
CLI module for Replica Backup.

This module provides command-line interface functionality
using Click and Rich.
"""

from replica_backup.cli.main import main

__all__ = ["main"]
