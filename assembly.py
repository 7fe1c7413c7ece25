from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from remedy_api import Remedy

logger = logging.getLogger(__name__)


class AssemblyStatus(str, Enum):
    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    READY_TO_MIX = "ready_to_mix"
    MIXED = "mixed"


class InvalidTransition(RuntimeError):
    """Raised when an action is not allowed in the session's current status."""

    def __init__(self, action: str, state: str) -> None:
        super().__init__(f"Cannot {action} while the session is {state}")
        self.action = action
        self.state = state


class AssemblySession:
    """Track the ingredients added to the pot for a single remedy."""

    def __init__(self, required: Iterable[str], *, remedy: Optional[Remedy] = None) -> None:
        ordered = list(dict.fromkeys(required))
        self.remedy = remedy
        self._required_order: Tuple[str, ...] = tuple(ordered)
        self._required = frozenset(ordered)
        self._added: List[str] = []
        self._status = AssemblyStatus.IDLE
        self._events: list[tuple[str, dict[str, object]]] = []

    @classmethod
    def for_remedy(cls, remedy: Remedy) -> "AssemblySession":
        return cls(remedy.ingredients, remedy=remedy)

    # ------------------------------ Read-only state ------------------------------
    @property
    def required(self) -> frozenset[str]:
        return self._required

    @property
    def added(self) -> frozenset[str]:
        return frozenset(self._added)

    @property
    def added_in_order(self) -> Tuple[str, ...]:
        return tuple(self._added)

    @property
    def status(self) -> AssemblyStatus:
        return self._status

    @property
    def can_mix(self) -> bool:
        return self._status is AssemblyStatus.READY_TO_MIX

    @property
    def is_mixed(self) -> bool:
        return self._status is AssemblyStatus.MIXED

    def missing(self) -> List[str]:
        return [name for name in self._required_order if name not in self._added]

    def wrong(self) -> List[str]:
        return [name for name in self._added if name not in self._required]

    def progress(self) -> Tuple[int, int]:
        return len(self._added), len(self._required)

    def status_message(self) -> str:
        added, required = self.progress()
        if self._status is AssemblyStatus.MIXED:
            return "Remedy prepared successfully!"
        if self._status is AssemblyStatus.READY_TO_MIX:
            return "All ingredients added! Click Mix to prepare the remedy."
        if not required:
            return "No ingredients required for this remedy"
        if self._status is AssemblyStatus.IDLE:
            return f"Add {required} ingredients to the pot"
        if added >= required:
            return "Some ingredients are incorrect. Please check the recipe."
        return f"Added {added} of {required} ingredients"

    def consume_events(self) -> list[tuple[str, dict[str, object]]]:
        events = list(self._events)
        self._events.clear()
        return events

    # ------------------------------- Player actions ------------------------------
    def add_ingredient(self, name: str) -> bool:
        """Put ``name`` in the pot and return whether it went in.

        Repeats are ignored. Once the pot is ready to mix it is full and new
        ingredients are turned away so the session cannot fall back to
        in-progress.
        """

        if self._status is AssemblyStatus.MIXED:
            raise InvalidTransition("add an ingredient", self._status.value)
        if name in self._added:
            return False
        if self._status is AssemblyStatus.READY_TO_MIX:
            self._log("rejected", {"ingredient": name})
            return False

        self._added.append(name)
        previous = self._status
        self._status = self._compute_status()
        self._log("add", {"ingredient": name, "status": self._status.value})
        if self._status is not previous:
            logger.debug("Assembly status %s -> %s", previous.value, self._status.value)
        return True

    def finalize(self) -> None:
        if self._status is not AssemblyStatus.READY_TO_MIX:
            raise InvalidTransition("mix", self._status.value)
        self._status = AssemblyStatus.MIXED
        self._log("mix", {"remedy": self.remedy.name if self.remedy else None})
        logger.info(
            "Mixed remedy %s", self.remedy.name if self.remedy else sorted(self._required)
        )

    # ------------------------------- Internal helpers ------------------------------
    def _compute_status(self) -> AssemblyStatus:
        if not self._added:
            return AssemblyStatus.IDLE
        added = set(self._added)
        if len(added) == len(self._required) and added <= self._required:
            return AssemblyStatus.READY_TO_MIX
        return AssemblyStatus.IN_PROGRESS

    def _log(self, event: str, payload: dict[str, object]) -> None:
        self._events.append((event, payload))


__all__ = ["AssemblySession", "AssemblyStatus", "InvalidTransition"]
