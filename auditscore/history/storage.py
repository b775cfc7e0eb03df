"""Storage ports for the history log.

A storage port is a single named durable slot holding one serialized
string. Ports raise :class:`~auditscore.errors.PersistenceUnavailable`
for any I/O failure and never block waiting for the slot.
"""

import os
import tempfile
from pathlib import Path
from typing import Protocol

from auditscore.errors import PersistenceUnavailable


class StoragePort(Protocol):
    """Key-value slot the history store persists into."""

    def read(self) -> str | None:
        """Return the stored text, or ``None`` if nothing was stored yet."""
        ...

    def write(self, data: str) -> None:
        """Replace the stored text with *data*."""
        ...

    def clear(self) -> None:
        """Remove the stored text."""
        ...


class MemoryStorage:
    """In-process slot, lost when the process exits."""

    def __init__(self, initial: str | None = None) -> None:
        self.data: str | None = initial

    def read(self) -> str | None:
        return self.data

    def write(self, data: str) -> None:
        self.data = data

    def clear(self) -> None:
        self.data = None


class JsonFileStorage:
    """Slot backed by a single file on disk.

    Writes go to a temporary file in the same directory which then
    replaces the target, so a crash never leaves a half-written file.

    Attributes:
        path: Location of the history file.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def read(self) -> str | None:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceUnavailable(
                f"Cannot read history file {self.path}: {exc}",
                context={"path": str(self.path)},
            ) from exc

    def write(self, data: str) -> None:
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as fh:
                tmp_name = fh.name
                fh.write(data)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceUnavailable(
                f"Cannot write history file {self.path}: {exc}",
                context={"path": str(self.path)},
            ) from exc

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceUnavailable(
                f"Cannot remove history file {self.path}: {exc}",
                context={"path": str(self.path)},
            ) from exc
