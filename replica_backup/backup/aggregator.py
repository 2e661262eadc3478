"""Thread-safe collection of backup outcomes."""

import threading
from typing import List, Optional

from replica_backup.backup.models import BackupOutcome


UNKNOWN_ERROR = "unknown error"
WARNING_MARKER = "[Warning]"


def summarize_error(text: Optional[str]) -> str:
    """Return the first non-empty line of diagnostic output.

    Client ``[Warning]`` lines are skipped when a later line carries the
    actual error.
    """
    if not text:
        return UNKNOWN_ERROR
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    errors = [line for line in lines if WARNING_MARKER not in line]
    if errors:
        return errors[0]
    return lines[0] if lines else UNKNOWN_ERROR


class FailureAggregator:
    """Append-only record of outcomes; safe for concurrent producers."""

    def __init__(self):
        self._lock = threading.Lock()
        self._outcomes: List[BackupOutcome] = []

    def record(self, outcome: BackupOutcome) -> None:
        if not outcome.success and not outcome.error:
            outcome = outcome.model_copy(update={"error": UNKNOWN_ERROR})
        with self._lock:
            self._outcomes.append(outcome)

    @property
    def outcomes(self) -> List[BackupOutcome]:
        with self._lock:
            return list(self._outcomes)

    @property
    def failures(self) -> List[BackupOutcome]:
        with self._lock:
            return [o for o in self._outcomes if not o.success]

    @property
    def success(self) -> bool:
        return not self.failures

    def __len__(self) -> int:
        with self._lock:
            return len(self._outcomes)
