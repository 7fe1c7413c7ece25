"""Cooking screen logic shared by the text and pygame front ends.

The flow reads the ailment chosen on the list screen, resolves it to a
remedy with :func:`remedy_retry.resolve_with_policy`, then drives an
:class:`assembly.AssemblySession` from the player's ingredient picks. Every
failure ends in an error state with a message and a page to return to, so a
front end only has to render ``status_message`` and react to ``phase``.
"""
from __future__ import annotations

import asyncio
import json
import logging
import random
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from assembly import AssemblySession, InvalidTransition
from remedy_api import (
    DEFAULT_DATA_DIR,
    DEFAULT_REMEDY_SOURCE,
    CatalogStore,
    FileSourceLoader,
    Remedy,
    RemedyCatalog,
    format_instructions,
)
from remedy_retry import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    ResolutionFailure,
    RetryPolicy,
    Sleep,
    resolve_with_policy,
)
from selection_store import DEFAULT_SELECTION_PATH, SELECTED_AILMENT_KEY, SelectionStore

logger = logging.getLogger(__name__)

MAX_SEED_VALUE = 2**32 - 1
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

PHASE_IDLE = "idle"
PHASE_LOADING = "loading"
PHASE_COOKING = "cooking"
PHASE_MIXED = "mixed"
PHASE_ERROR = "error"


@dataclass
class GameSettings:
    data_dir: str = str(DEFAULT_DATA_DIR)
    remedy_source: str = DEFAULT_REMEDY_SOURCE
    selection_path: str = DEFAULT_SELECTION_PATH
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_delay: float = DEFAULT_RETRY_DELAY
    initial_delay: float = 0.1
    distractors: int = 3
    fallback_page: str = "ailment_list"

    def validate(self) -> None:
        self.retry_policy().validate()
        if self.distractors < 0:
            raise ValueError("distractors cannot be negative")

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            delay=self.retry_delay,
            initial_delay=self.initial_delay,
        )


def load_settings(path: Optional[str] = None, **overrides: Any) -> GameSettings:
    """Build settings from defaults, an optional JSON file, then ``overrides``.

    Unknown keys in the file are ignored and ``None`` overrides are skipped so
    unset command line flags fall through to the file or the defaults.
    """

    values: Dict[str, Any] = {}
    if path:
        try:
            with open(path, "r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except FileNotFoundError:
            logger.info("Settings file %s not found, using defaults", path)
            raw = {}
        if not isinstance(raw, Mapping):
            raise ValueError(f"Settings file {path} must contain a JSON object")
        values.update(raw)
    values.update({key: value for key, value in overrides.items() if value is not None})

    settings = GameSettings()
    for setting in fields(GameSettings):
        if setting.name not in values:
            continue
        default = getattr(settings, setting.name)
        try:
            coerced = type(default)(values[setting.name])
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid value for setting '{setting.name}': {values[setting.name]!r}") from exc
        settings = replace(settings, **{setting.name: coerced})
    settings.validate()
    return settings


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.WARNING), format=LOG_FORMAT)


def resolve_seed(seed: Optional[int]) -> Tuple[int, random.Random]:
    """Return a normalized seed and a Random instance seeded with it.

    When ``seed`` is ``None`` a fresh seed is drawn from ``SystemRandom`` and
    returned so the same pantry order can be replayed with ``--seed``.
    """

    if seed is None:
        seed = random.SystemRandom().randint(0, MAX_SEED_VALUE)
    else:
        seed = int(seed)
    return seed, random.Random(seed)


def open_store(settings: GameSettings) -> CatalogStore:
    return CatalogStore.open(FileSourceLoader(settings.data_dir), settings.remedy_source)


def choose_ailment(selection: SelectionStore, name: str) -> None:
    selection.set(SELECTED_AILMENT_KEY, name)


def clear_selection(selection: SelectionStore) -> None:
    selection.delete(SELECTED_AILMENT_KEY)


def build_pantry(
    catalog: Optional[RemedyCatalog],
    remedy: Remedy,
    distractors: int,
    rng: random.Random,
) -> List[str]:
    """Recipe ingredients plus up to ``distractors`` from other remedies, shuffled."""

    required = list(dict.fromkeys(remedy.ingredients))
    extras: List[str] = []
    if catalog is not None and distractors > 0:
        pool = [name for name in catalog.all_ingredients() if name not in required]
        extras = rng.sample(pool, min(distractors, len(pool)))
    pantry = required + extras
    rng.shuffle(pantry)
    return pantry


@dataclass(frozen=True)
class RemedyResult:
    name: str
    benefits: str
    ingredients: Tuple[str, ...]
    instructions: str

    @classmethod
    def from_remedy(cls, remedy: Remedy) -> "RemedyResult":
        return cls(
            name=remedy.name,
            benefits=remedy.benefits,
            ingredients=remedy.ingredients,
            instructions=format_instructions(remedy.instructions),
        )


class CookingFlow:
    def __init__(
        self,
        store: CatalogStore,
        selection: SelectionStore,
        settings: Optional[GameSettings] = None,
        *,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.store = store
        self.selection = selection
        self.settings = settings or GameSettings()
        self.rng = rng or random.Random()
        self.phase = PHASE_IDLE
        self.query = ""
        self.remedy: Optional[Remedy] = None
        self.session: Optional[AssemblySession] = None
        self.pantry: List[str] = []
        self.failure: Optional[ResolutionFailure] = None
        self.error: Optional[str] = None
        self.status_message = ""
        self.next_page: Optional[str] = None
        self._pending: Optional[asyncio.Future] = None
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start(self, *, sleep: Optional[Sleep] = None) -> bool:
        """Resolve the selected ailment and open an assembly session.

        Returns ``True`` once the flow is ready for ingredients. ``False``
        means the flow is in the error phase or was closed while waiting.
        """

        if self._closed:
            return False
        query = self.selection.get(SELECTED_AILMENT_KEY, "")
        if not query.strip():
            self._fail("No ailment selected")
            return False

        self.query = query
        self.phase = PHASE_LOADING
        self.status_message = f"Looking up a remedy for {query}..."
        self._pending = asyncio.ensure_future(
            resolve_with_policy(self.store, query, self.settings.retry_policy(), sleep=sleep)
        )
        try:
            result = await self._pending
        except asyncio.CancelledError:
            if not self._closed:
                raise
            logger.info("Cooking flow for %r closed before the remedy resolved", query)
            return False
        finally:
            self._pending = None

        if isinstance(result, ResolutionFailure):
            self.failure = result
            self._fail(result.message)
            return False

        self._begin(result)
        return True

    def close(self) -> None:
        """Stop any lookup still in flight. The flow cannot be restarted."""

        self._closed = True
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Player actions
    # ------------------------------------------------------------------
    def add_ingredient(self, name: str) -> bool:
        session = self._require_session()
        added = session.add_ingredient(name)
        self.status_message = session.status_message()
        return added

    def mix(self) -> None:
        session = self._require_session()
        try:
            session.finalize()
        except InvalidTransition:
            logger.warning("Mix requested while the pot is %s", session.status.value)
            self.status_message = session.status_message()
            raise
        self.phase = PHASE_MIXED
        self.status_message = session.status_message()

    def leave(self) -> str:
        """Close the flow and return the page the player should go to."""

        self.close()
        if self.phase == PHASE_MIXED:
            return "result"
        clear_selection(self.selection)
        return self.next_page or self.settings.fallback_page

    # ------------------------------------------------------------------
    # Display helpers
    # ------------------------------------------------------------------
    @property
    def can_mix(self) -> bool:
        return self.session is not None and self.session.can_mix

    def recipe_heading(self) -> str:
        if self.remedy is None:
            return ""
        return f"Recipe for {self.remedy.name}:\n{format_instructions(self.remedy.instructions)}"

    def available_ingredients(self) -> List[str]:
        if self.session is None:
            return []
        added = self.session.added
        return [name for name in self.pantry if name not in added]

    def result(self) -> Optional[RemedyResult]:
        if self.remedy is None or self.phase != PHASE_MIXED:
            return None
        return RemedyResult.from_remedy(self.remedy)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _begin(self, remedy: Remedy) -> None:
        self.remedy = remedy
        self.session = AssemblySession.for_remedy(remedy)
        self.pantry = build_pantry(
            self.store.current(), remedy, self.settings.distractors, self.rng
        )
        self.phase = PHASE_COOKING
        if remedy.ingredients:
            self.status_message = self.session.status_message()
        else:
            self.status_message = "No ingredients found for this remedy!"
        logger.info("Cooking %s with pantry %s", remedy.name, self.pantry)

    def _fail(self, message: str) -> None:
        self.phase = PHASE_ERROR
        self.error = message
        self.status_message = f"Error: {message}\nThe recipe data could not be loaded."
        self.next_page = self.settings.fallback_page
        logger.warning("Cooking flow error: %s", message)

    def _require_session(self) -> AssemblySession:
        if self.session is None:
            raise InvalidTransition("cook", self.phase)
        return self.session


def describe_result(result: RemedyResult) -> str:
    ingredient_lines = "\n".join(f"• {name}" for name in result.ingredients)
    sections: Sequence[str] = (
        result.name,
        result.benefits,
        f"Ingredients:\n{ingredient_lines}" if ingredient_lines else "Ingredients:\nNone",
        f"Instructions:\n{result.instructions}" if result.instructions else "",
    )
    return "\n\n".join(section for section in sections if section)


__all__ = [
    "CookingFlow",
    "GameSettings",
    "RemedyResult",
    "build_pantry",
    "choose_ailment",
    "clear_selection",
    "configure_logging",
    "describe_result",
    "load_settings",
    "open_store",
    "resolve_seed",
]
