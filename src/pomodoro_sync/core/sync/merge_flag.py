"""Merge-pending flag.

While the flag is set no sync-down may overwrite the local store, so a stale
remote snapshot cannot clobber data that is still waiting for a merge decision.
The flag is persisted through the local store and survives restarts. It is an
advisory lock, not a mutex: writers must re-check it immediately before any
write that would overwrite merge-relevant state.

Each ``set()`` starts a new generation. The merge that raised the flag keeps
its generation number and uses it to recognise its own closing sync-down;
every other writer only sees "set" and backs off.
"""

import logging
from typing import Optional

from ...database import LocalStore

logger = logging.getLogger(__name__)


class MergePendingFlag:
    """Durable advisory lock guarding the local store during merges."""

    def __init__(self, store: LocalStore) -> None:
        """Initialize flag.

        Args:
            store: Local store the flag is persisted in
        """
        self._store = store
        self._generation = 0

    @property
    def is_set(self) -> bool:
        """Whether a merge decision is outstanding."""
        return self._store.read_merge_pending()

    @property
    def generation(self) -> int:
        """Generation of the most recent ``set()`` in this process."""
        return self._generation

    def set(self) -> int:
        """Raise the flag and start a new generation.

        Returns:
            The new generation number
        """
        self._generation += 1
        self._store.write_merge_pending(True)
        logger.debug("Merge-pending flag set (generation %d)", self._generation)
        return self._generation

    def owned_by(self, generation: int) -> bool:
        """Whether ``generation`` is still the one that holds the flag."""
        return generation == self._generation and self.is_set

    def clear(self, generation: Optional[int] = None) -> bool:
        """Lower the flag.

        Args:
            generation: When given, only clear if this generation still owns
                the flag; a newer merge keeps it raised.

        Returns:
            True if the flag was cleared
        """
        if generation is not None and generation != self._generation:
            logger.debug(
                "Not clearing merge-pending flag: generation %d superseded by %d",
                generation,
                self._generation,
            )
            return False
        self._store.write_merge_pending(False)
        logger.debug("Merge-pending flag cleared")
        return True
