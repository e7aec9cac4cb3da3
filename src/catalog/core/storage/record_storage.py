"""Record storage interface and implementations.

A record storage holds a single mapping of storage keys to attribute mappings
and exposes it through whole-mapping transactions: a read-only transaction sees
a consistent snapshot, a read-write transaction replaces the stored mapping
with whatever the block left behind, or with nothing at all if the block raised.
"""

from __future__ import annotations

import fcntl
import numbers
import os
import re
import tempfile
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from copy import deepcopy
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from src.catalog.core.exceptions import CorruptData, LockTimeout, StoreUnavailable

Records = dict[str, dict[str, Any]]

# YAML can only round-trip these safely; everything else is coerced on write.
SAFE_YAML_TYPES = (bool, type(None), int, float, str, list, dict)

_LOCK_POLL_SECONDS = 0.05
_KEY_ID_PATTERN = re.compile(r"^(\d+)-")


def safe_storage_value(value: Any) -> Any:
    """Coerce ``value`` to a type the YAML file can hold."""
    if type(value) in SAFE_YAML_TYPES:
        return value
    if isinstance(value, (numbers.Real, Decimal)):
        return float(value)
    return str(value)


def safe_storage_attributes(attributes: Mapping[str, Any]) -> dict[str, Any]:
    return {str(name): safe_storage_value(value) for name, value in attributes.items()}


def storage_sort_key(key: str) -> tuple[int, int, str]:
    """Order keys by their numeric id prefix, then lexically."""
    match = _KEY_ID_PATTERN.match(key)
    if match is None:
        return (1, 0, key)
    return (0, int(match.group(1)), key)


class RecordStorage(ABC):
    """Abstract interface for record storage backends."""

    @abstractmethod
    @contextmanager
    def transaction(self, read_only: bool = True) -> Iterator[Records]:
        """Yield the stored mapping for the duration of a transaction.

        Args:
            read_only: Take a shared snapshot. When false, changes made to the
                yielded mapping are persisted when the block exits cleanly.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the storage can currently be read."""

    @property
    @abstractmethod
    def location(self) -> str:
        """Human readable description of where records live."""


class InMemoryRecordStorage(RecordStorage):
    """Process-local storage, mainly for tests."""

    def __init__(self, records: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        self._records: Records = {key: dict(value) for key, value in (records or {}).items()}
        self._lock = threading.RLock()

    @contextmanager
    def transaction(self, read_only: bool = True) -> Iterator[Records]:
        with self._lock:
            working = deepcopy(self._records)
            yield working
            if not read_only:
                self._records = {
                    key: safe_storage_attributes(value) for key, value in working.items()
                }

    def is_available(self) -> bool:
        return True

    @property
    def location(self) -> str:
        return "memory"


class YamlRecordStorage(RecordStorage):
    """Single YAML file guarded by an advisory lock on a sibling ``.lock`` file.

    Readers take a shared lock and writers an exclusive one, so writers
    serialize with each other and with readers. Writes land in a temporary
    file that is renamed over the data file, so the data file only ever holds
    a complete mapping.
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        require_existing: bool = False,
        lock_timeout: float | None = None,
    ) -> None:
        self.path = Path(path)
        self.lock_path = self.path.with_name(f"{self.path.name}.lock")
        self.require_existing = require_existing
        self.lock_timeout = lock_timeout

    @property
    def location(self) -> str:
        return str(self.path)

    @contextmanager
    def transaction(self, read_only: bool = True) -> Iterator[Records]:
        self.ensure_exists()
        with self._locked(exclusive=not read_only):
            records = self._load()
            logger.debug(
                "Opened {} transaction on {} ({} records)",
                "read-only" if read_only else "read-write",
                self.path,
                len(records),
            )
            yield records
            if not read_only:
                self._dump(records)

    def is_available(self) -> bool:
        try:
            with self.transaction(read_only=True):
                return True
        except (StoreUnavailable, CorruptData):
            return False

    def ensure_exists(self) -> None:
        """Create an empty data file (and its directories) on first access."""
        if self.path.exists():
            return
        if self.require_existing:
            raise StoreUnavailable(f"Record file {self.path} does not exist")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch(exist_ok=True)
        except OSError as e:
            raise StoreUnavailable(f"Cannot create record file {self.path}: {e}") from e
        logger.info("Created empty record file {}", self.path)

    @contextmanager
    def _locked(self, exclusive: bool) -> Iterator[None]:
        operation = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        try:
            lock_file = open(self.lock_path, "a+")
        except OSError as e:
            raise StoreUnavailable(f"Cannot open lock file {self.lock_path}: {e}") from e

        try:
            self._acquire(lock_file, operation)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
        finally:
            lock_file.close()

    def _acquire(self, lock_file, operation: int) -> None:
        if self.lock_timeout is None:
            fcntl.flock(lock_file.fileno(), operation)
            return

        deadline = time.monotonic() + self.lock_timeout
        while True:
            try:
                fcntl.flock(lock_file.fileno(), operation | fcntl.LOCK_NB)
                return
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    raise LockTimeout(
                        f"Timed out after {self.lock_timeout}s waiting for {self.lock_path}"
                    ) from None
                time.sleep(_LOCK_POLL_SECONDS)

    def _load(self) -> Records:
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise StoreUnavailable(f"Record file {self.path} disappeared") from e
        except OSError as e:
            raise StoreUnavailable(f"Cannot read record file {self.path}: {e}") from e

        try:
            loaded = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise CorruptData(f"Record file {self.path} is not valid YAML: {e}") from e

        if loaded is None:
            return {}
        if not isinstance(loaded, dict):
            raise CorruptData(
                f"Record file {self.path} must hold a mapping, found {type(loaded).__name__}"
            )

        records: Records = {}
        for key, attributes in loaded.items():
            if attributes is None:
                attributes = {}
            if not isinstance(attributes, dict):
                raise CorruptData(f"Record {key!r} in {self.path} is not a mapping")
            records[str(key)] = attributes
        return records

    def _dump(self, records: Records) -> None:
        payload = {
            key: safe_storage_attributes(records[key])
            for key in sorted(records, key=storage_sort_key)
        }
        content = yaml.safe_dump(
            payload, sort_keys=False, default_flow_style=False, allow_unicode=True
        )

        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                tmp.write(content)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Wrote {} records to {}", len(payload), self.path)
