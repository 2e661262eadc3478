"""
Backup storage locations.

Dumps are written to a temporary directory keyed by weekday and hour,
then copied to a final directory keyed by server and weekday, so a
week of backups rotates in place.
"""

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from replica_backup.core.exceptions import StorageError
from replica_backup.database.config import BackupConfig


logger = logging.getLogger(__name__)


class BackupStorage:
    """Temporary and final locations for one run."""

    def __init__(
        self,
        tmp_root: Union[str, Path],
        final_root: Union[str, Path],
        server_name: str,
        now: Optional[datetime] = None
    ):
        now = now or datetime.now()
        self.day_of_week = now.strftime("%A")
        self.hour_of_day = now.strftime("%H")
        self.tmp_path = Path(tmp_root) / self.day_of_week / self.hour_of_day
        self.final_path = Path(final_root) / server_name / self.day_of_week

    @classmethod
    def from_config(cls, config: BackupConfig, now: Optional[datetime] = None) -> "BackupStorage":
        return cls(config.tmp_backup_dir, config.final_copy_dir, config.server_name, now)

    def create_locations(self) -> None:
        """Create the temporary and final directories."""
        try:
            logger.info(f"Creating temp storage location in {self.tmp_path}")
            self.tmp_path.mkdir(parents=True, exist_ok=True)
            logger.info(f"Creating final storage location in {self.final_path}")
            self.final_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create storage locations: {e}") from e

    def copy_to_final(self) -> Path:
        """Copy the temporary hour directory into the final weekday directory.

        Returns:
            Directory the dumps were copied to
        """
        destination = self.final_path / self.tmp_path.name
        logger.info(f"Copy from temporary location to final location: from - {self.tmp_path}, to - {destination}")
        try:
            shutil.copytree(self.tmp_path, destination, dirs_exist_ok=True)
        except (OSError, shutil.Error) as e:
            raise StorageError(f"Failed to copy backups to {destination}: {e}") from e
        return destination

    def cleanup_tmp(self) -> None:
        """Remove the temporary hour directory."""
        logger.info(f"Cleanup temporary dump location: {self.tmp_path}")
        try:
            shutil.rmtree(self.tmp_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"Failed to clean up {self.tmp_path}: {e}") from e
