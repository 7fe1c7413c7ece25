"""Key-value storage for the player's current ailment selection."""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Union

logger = logging.getLogger(__name__)

SELECTED_AILMENT_KEY = "selected_ailment"
DEFAULT_SELECTION_PATH = "selection.json"


class MemorySelectionStore:
    """In-process selection storage; nothing survives a restart."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str, default: str = "") -> str:
        return self._values.get(key, default)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class JsonSelectionStore(MemorySelectionStore):
    """Selection storage persisted as a flat JSON object on disk.

    Every write rewrites the whole file through a temporary file so a crash
    never leaves half a document behind. An unreadable file is treated as
    empty.
    """

    def __init__(self, path: Union[str, Path] = DEFAULT_SELECTION_PATH) -> None:
        self.path = Path(path)
        super().__init__(self._read())

    def _read(self) -> Dict[str, str]:
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable selection file %s: %s", self.path, exc)
            return {}
        if not isinstance(raw, dict):
            return {}
        return {str(key): str(value) for key, value in raw.items()}

    def _write(self) -> None:
        if self.path.parent and not self.path.parent.exists():
            os.makedirs(self.path.parent, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(self._values, handle, indent=2, sort_keys=True)
        os.replace(tmp_path, self.path)

    def set(self, key: str, value: str) -> None:
        super().set(key, value)
        self._write()

    def delete(self, key: str) -> None:
        super().delete(key)
        self._write()


# Type accepted by the cooking flow and front ends.
SelectionStore = MemorySelectionStore

__all__ = [
    "DEFAULT_SELECTION_PATH",
    "JsonSelectionStore",
    "MemorySelectionStore",
    "SELECTED_AILMENT_KEY",
    "SelectionStore",
]
