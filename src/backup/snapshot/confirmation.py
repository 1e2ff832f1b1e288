"""
Confirmation gates for destructive operations.

The exchanger calls a gate with a DestructivePlan right before the first
delete. A gate returns True to proceed and False to cancel; it may also
let KeyboardInterrupt escape, which the CLI reports as a cancellation.
"""

import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, TextIO

from .manifest import SnapshotManifest


@dataclass
class DestructivePlan:
    """What a restore or purge is about to replace or delete."""
    operation: str
    store_name: str
    collections: List[str] = field(default_factory=list)
    snapshot_dir: Optional[Path] = None
    manifest: Optional[SnapshotManifest] = None

    def describe(self) -> List[str]:
        lines = [f"Target store: {self.store_name}"]
        if self.snapshot_dir is not None:
            lines.append(f"Restore from: {self.snapshot_dir}")
        if self.manifest is not None:
            lines.extend(self.manifest.summary_lines())
        lines.append(f"Collections affected: {', '.join(self.collections) or '(none)'}")
        return lines


ConfirmFn = Callable[[DestructivePlan], bool]


def always_confirm(plan: DestructivePlan) -> bool:
    """Gate that never blocks."""
    return True


def countdown_confirmation(
    seconds: float,
    out: Optional[TextIO] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ConfirmFn:
    """
    Build a gate that prints a warning and pauses before proceeding.

    The pause is the operator's window to press Ctrl+C.

    Args:
        seconds: Length of the pause
        out: Stream for the warning (default: stdout)
        sleep: Sleep function
    """

    def confirm(plan: DestructivePlan) -> bool:
        stream = out or sys.stdout
        if plan.operation == "purge":
            action = "DELETE all data in the collections below"
        else:
            action = "DELETE existing data and restore it from the backup"
        print(f"WARNING: This will {action}!", file=stream)
        for line in plan.describe():
            print(f"  {line}", file=stream)
        if seconds > 0:
            print(f"Press Ctrl+C within {seconds:g} seconds to cancel...", file=stream)
            stream.flush()
            sleep(seconds)
        return True

    return confirm
