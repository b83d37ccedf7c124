"""
Local mirror of the application data.

Callers see plain keys; in the medium every key carries the ``toosla.``
prefix, which keeps application data apart from the vault's secrets.
"""
import logging
from typing import Any, Optional
from collections.abc import Iterator, Mapping

from .conf import TOOSLA_KEY_PREFIX
from .medium import MemoryMedium
from .utils import check_value

logger = logging.getLogger("toosla.storage")


class LocalMirror:
    """Prefixed view over the local medium.

    Every mutation goes through ``_mutated()``, which subclasses extend to
    propagate the change elsewhere.
    """

    prefix: str = TOOSLA_KEY_PREFIX

    def __init__(self, medium: Optional[MemoryMedium] = None) -> None:
        self._medium = medium if medium is not None else MemoryMedium()
        self._revision = 0

    @property
    def medium(self) -> MemoryMedium:
        return self._medium

    @property
    def revision(self) -> int:
        """Number of local mutations so far."""
        return self._revision

    def _mutated(self, push: bool = True) -> None:
        self._revision += 1

    def _prefixed(self) -> list[str]:
        return [key for key in self._medium if key.startswith(self.prefix)]

    # ------------------------------------------------------------------
    # storage-like API
    # ------------------------------------------------------------------

    def set_item(self, key: str, value: Any) -> None:
        logger.debug("setItem %s", key)
        check_value("key", key)
        self._medium.set_item(self.prefix + key, value)
        self._mutated()

    def get_item(self, key: str) -> Optional[str]:
        check_value("key", key)
        return self._medium.get_item(self.prefix + key)

    def remove_item(self, key: str) -> None:
        logger.debug("removeItem %s", key)
        check_value("key", key)
        self._medium.remove_item(self.prefix + key)
        self._mutated()

    def key(self, n: int) -> Optional[str]:
        """Return the n-th application key (unprefixed), or None."""
        keys = self.keys()
        if 0 <= n < len(keys):
            return keys[n]
        return None

    @property
    def length(self) -> int:
        return len(self._prefixed())

    def __len__(self) -> int:
        return self.length

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def clear(self, local_only: bool = False) -> None:
        """Remove every application key.

        Args:
            local_only: When True the change is not propagated.
        """
        self._clear()
        self._mutated(push=not local_only)

    def _clear(self) -> None:
        with self._medium.batch():
            for key in self._prefixed():
                self._medium.remove_item(key)

    # ------------------------------------------------------------------
    # snapshots
    # ------------------------------------------------------------------

    def keys(self) -> list[str]:
        return [key[len(self.prefix):] for key in self._prefixed()]

    def items(self) -> list[tuple[str, str]]:
        return [
            (key[len(self.prefix):], self._medium[key]) for key in self._prefixed()
        ]

    def snapshot(self) -> dict[str, str]:
        """Return every application entry keyed by its full (prefixed) key."""
        return {key: self._medium[key] for key in self._prefixed()}

    def replace(self, snapshot: Mapping[str, Any]) -> None:
        """Replace all application entries with ``snapshot``.

        Keys without the application prefix are ignored. Clear and
        repopulate run without suspension points, so no other coroutine
        observes a half replaced store, and the medium saves once: if that
        save fails the previous entries are kept.
        """
        with self._medium.batch():
            self._clear()
            for key, value in snapshot.items():
                if not key.startswith(self.prefix):
                    logger.debug("Ignoring remote key %s", key)
                    continue
                self._medium.set_item(key, value)
        self._mutated(push=False)
