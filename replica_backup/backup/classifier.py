"""Storage engine classification of databases."""

import logging
from typing import Iterable

from replica_backup.backup.models import Classification
from replica_backup.database.connection import ReplicaConnection


logger = logging.getLogger(__name__)


class EngineClassifier:
    """Partitions databases into transactional-only and lock-requiring groups."""

    def __init__(self, connection: ReplicaConnection, batched: bool = True):
        self.connection = connection
        self.batched = batched

    def _locking_databases(self, databases):
        if self.batched:
            return self.connection.schemas_with_locking_tables(databases)
        return {db for db in databases if self.connection.count_locking_tables(db) > 0}

    def classify(self, databases: Iterable[str]) -> Classification:
        """Classify each database by whether it holds any MyISAM table.

        Args:
            databases: Filtered databases to classify

        Returns:
            Classification whose groups partition ``databases``
        """
        databases = list(databases)
        locking = self._locking_databases(databases)

        classification = Classification(
            transactional_only=[db for db in databases if db not in locking],
            requires_lock=[db for db in databases if db in locking],
        )
        logger.info(
            f"Classified {len(databases)} databases: "
            f"{len(classification.transactional_only)} InnoDB, "
            f"{len(classification.requires_lock)} MyISAM"
        )
        return classification
