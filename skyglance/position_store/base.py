"""Shared protocol for last-known-good position storage backends."""

from typing import Optional, Protocol

from skyglance.domain import PositionFix


class PositionStore(Protocol):
    """Holds at most one fix: the most recent successful one."""

    def load(self) -> Optional[PositionFix]:
        """Return the stored fix, or None if nothing has been saved."""

    def save(self, fix: PositionFix) -> None:
        """Replace the stored fix."""

    def clear(self) -> None:
        """Forget the stored fix."""
