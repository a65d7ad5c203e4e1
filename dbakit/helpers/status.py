"""Uniform status records and the drop-if-force-else-skip copy policy.

Every copy-style command emits one ``CopyStatus`` per processed object and
runs its per-object work through ``copy_object`` so the overwrite rules are
identical across mail accounts, CMS groups, resource pools and so on.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from dbakit.helpers.helpers_logging import print_success, print_verbose, print_warning
from dbakit.helpers.should_process import ShouldProcess

EXISTS_NOTE = "Already exists on destination"


class Outcome(str, Enum):
    """Final state of one processed object."""

    SUCCESSFUL = "Successful"
    SKIPPED = "Skipped"
    FAILED = "Failed"


class ReconcileAction(Enum):
    """What to do with one object given its presence on the destination."""

    CREATE = "create"
    SKIP = "skip"
    REPLACE = "replace"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CopyStatus:
    """Status record for one object copied from source to destination."""

    source_server: str
    destination_server: str
    name: str
    type: str
    status: Outcome | None = None
    notes: str | None = None
    timestamp: datetime = field(default_factory=_utcnow)

    def mark(self, status: Outcome, notes: str | None = None) -> CopyStatus:
        """Set outcome and notes, returning self for chaining."""
        self.status = status
        self.notes = notes
        return self

    def to_dict(self) -> dict[str, object]:
        """Export with the column names callers aggregate on."""
        return {
            "DateTime": self.timestamp.isoformat(),
            "SourceServer": self.source_server,
            "DestinationServer": self.destination_server,
            "Name": self.name,
            "Type": self.type,
            "Status": self.status.value if self.status else None,
            "Notes": self.notes,
        }


def reconcile(exists: bool, force: bool) -> ReconcileAction:
    """Decide the action for an object given destination presence and force."""
    if not exists:
        return ReconcileAction.CREATE
    if force:
        return ReconcileAction.REPLACE
    return ReconcileAction.SKIP


def copy_object(
    record: CopyStatus,
    *,
    exists: bool,
    force: bool,
    drop: Callable[[], None],
    create: Callable[[], None],
    should_process: ShouldProcess,
    exists_note: str = EXISTS_NOTE,
) -> CopyStatus | None:
    """Apply the overwrite policy to one object and fill in ``record``.

    Returns:
        The completed record, or None when a gated step was declined
        (dry-run or confirmation refused) and nothing was changed.
    """
    target = record.destination_server
    label = f"{record.type} {record.name}"
    action = reconcile(exists, force)

    if action is ReconcileAction.SKIP:
        print_warning(f"{label} exists on {target}. Use force to drop and migrate.")
        return record.mark(Outcome.SKIPPED, exists_note)

    if action is ReconcileAction.REPLACE:
        if not should_process(target, f"Dropping {label}"):
            return None
        try:
            drop()
            print_verbose(f"Dropped {label} on {target}")
        except Exception as e:
            return record.mark(Outcome.FAILED, str(e))

    if not should_process(target, f"Creating {label}"):
        return None
    try:
        create()
    except Exception as e:
        return record.mark(Outcome.FAILED, str(e))

    print_success(f"Copied {label} to {target}")
    return record.mark(Outcome.SUCCESSFUL)
