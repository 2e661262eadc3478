"""Database discovery and filtering."""

import logging
from typing import Iterable, List, Optional

from replica_backup.backup.models import DatabaseSelection
from replica_backup.database.config import parse_database_list
from replica_backup.database.connection import ReplicaConnection


logger = logging.getLogger(__name__)

# System and virtual schemas, never backed up.
EXCLUDED_DATABASES = frozenset({"information_schema", "performance_schema", "sys"})


def _unique(names: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for name in names:
        if name not in seen:
            seen.add(name)
            result.append(name)
    return result


def filter_databases(
    server_databases: Iterable[str],
    allow_list: Optional[Iterable[str]] = None
) -> DatabaseSelection:
    """Apply the allow-list override and the fixed exclusion set.

    Args:
        server_databases: Databases reported by the server
        allow_list: Explicit databases to back up; empty means all

    Returns:
        Selected databases plus the excluded names that were seen
    """
    if isinstance(allow_list, str):
        allow_list = parse_database_list(allow_list)
    allow_list = [name.strip() for name in (allow_list or []) if name.strip()]

    candidates = _unique(allow_list or server_databases)
    excluded = [name for name in candidates if name in EXCLUDED_DATABASES]
    selected = [name for name in candidates if name not in EXCLUDED_DATABASES]

    return DatabaseSelection(
        databases=selected,
        excluded=excluded,
        from_allow_list=bool(allow_list),
    )


def select_databases(
    connection: ReplicaConnection,
    allow_list: Optional[Iterable[str]] = None
) -> DatabaseSelection:
    """List the server's databases and filter them.

    The server is only queried when no allow-list is given.

    Raises:
        ConnectionError: If the server cannot be listed
    """
    if isinstance(allow_list, str):
        allow_list = parse_database_list(allow_list)
    allow_list = list(allow_list or [])

    server_databases = [] if allow_list else connection.list_databases()
    selection = filter_databases(server_databases, allow_list)

    if selection.from_allow_list:
        logger.info(f"Using filtered database list ({len(allow_list)} entries)")
    if selection.excluded:
        logger.info(f"Excluding system databases: {', '.join(selection.excluded)}")
    logger.info(f"Found {len(selection.databases)} databases to backup")
    return selection
