"""
Local key-value medium.

A dict-like text store keeping insertion order, with the accessors a
browser storage offers (``get_item``, ``set_item``, ``key(n)``, ...).
Every consumer owns a disjoint key prefix of the same medium.
"""
import os
import logging
import tempfile
from contextlib import contextmanager
from typing import Any, Optional
from pathlib import Path
from collections.abc import Iterator, MutableMapping

import orjson

from .exceptions import StorageError

logger = logging.getLogger("toosla.storage")


def _as_text(value: Any) -> str:
    """Values are kept as text; anything else is JSON encoded."""
    if isinstance(value, str):
        return value
    return orjson.dumps(value).decode("utf-8")


class MemoryMedium(MutableMapping[str, str]):
    """In-memory medium, lives as long as the process (session scope)."""

    def __init__(self, data: Optional[dict] = None) -> None:
        self._data: dict[str, str] = {}
        # None outside batch(); inside, whether a save is owed
        self._batch_changed: Optional[bool] = None
        if data:
            for key, value in data.items():
                self._data[key] = _as_text(value)

    def __repr__(self) -> str:
        return f'<{type(self).__name__} keys={list(self._data.keys())}>'

    def _changed(self) -> None:
        """Hook invoked after every mutation (once per batch)."""

    def _touch(self) -> None:
        if self._batch_changed is None:
            self._changed()
        else:
            self._batch_changed = True

    @contextmanager
    def batch(self) -> Iterator["MemoryMedium"]:
        """Group several mutations into a single ``_changed()`` call.

        If the block raises, or saving the result fails, the previous
        content is restored. Nested batches join the outer one.
        """
        if self._batch_changed is not None:
            yield self
            return
        saved = dict(self._data)
        self._batch_changed = False
        try:
            yield self
            changed = self._batch_changed
            self._batch_changed = None
            if changed:
                self._changed()
        except Exception:
            self._batch_changed = None
            self._data = saved
            raise

    # --- storage-like accessors ---

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: Any) -> None:
        self[key] = value

    def remove_item(self, key: str) -> None:
        """Remove ``key``; no error if absent."""
        if key in self._data:
            del self[key]

    def key(self, n: int) -> Optional[str]:
        """Return the n-th key in insertion order, or None."""
        if n < 0:
            return None
        for i, key in enumerate(self._data):
            if i == n:
                return key
        return None

    @property
    def length(self) -> int:
        return len(self._data)

    def clear(self) -> None:
        if self._data:
            self._data.clear()
            self._touch()

    # --- Magic Methods ---

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[str]:
        # snapshot, so callers can mutate while iterating
        return iter(list(self._data))

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __getitem__(self, key: str) -> str:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = _as_text(value)
        self._touch()

    def __delitem__(self, key: str) -> None:
        del self._data[key]
        self._touch()


class JSONFileMedium(MemoryMedium):
    """Persistent medium backed by a JSON document.

    The whole document is rewritten atomically (temporary file + rename)
    after every mutation.
    """

    def __init__(self, path: Any) -> None:
        self.path = Path(path)
        super().__init__(self._load())

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = orjson.loads(self.path.read_bytes())
        except (OSError, orjson.JSONDecodeError) as err:
            raise StorageError(
                f"unable to read local storage {self.path}: {err}"
            ) from err
        if not isinstance(data, dict):
            raise StorageError(
                f"local storage {self.path} does not contain a JSON object"
            )
        return data

    def _changed(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(orjson.dumps(self._data))
            os.replace(tmp, self.path)
        except OSError as err:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise StorageError(
                f"unable to write local storage {self.path}: {err}"
            ) from err
        logger.debug("Local storage saved to %s (%d keys)", self.path, len(self._data))
