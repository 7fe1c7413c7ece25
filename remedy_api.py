from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

DATA_VERSION = "1.0.0"

DEFAULT_DATA_DIR = Path(__file__).resolve().parent
DEFAULT_REMEDY_SOURCE = "remedies"

SourceLoader = Callable[[str], Optional[str]]


class LoadError(Exception):
    """Base class for catalog load failures."""


class SourceMissing(LoadError):
    """The remedy data source does not exist."""


class MalformedData(LoadError):
    """The remedy data source exists but cannot be parsed."""


class SourceUnreadable(LoadError):
    """The remedy data source exists but could not be read."""


@dataclass(frozen=True)
class Remedy:
    name: str
    ingredients: Tuple[str, ...] = ()
    instructions: str = ""
    benefits: str = ""


@dataclass(frozen=True)
class RemedyCatalog:
    """Ordered, read-only collection of remedies from a single load."""

    remedies: Tuple[Remedy, ...] = ()
    source: str = ""

    def __len__(self) -> int:
        return len(self.remedies)

    def __iter__(self) -> Iterator[Remedy]:
        return iter(self.remedies)

    def names(self) -> List[str]:
        return [remedy.name for remedy in self.remedies]

    def all_ingredients(self) -> List[str]:
        """Every ingredient in the catalog, first appearance order, no repeats."""

        return unique_names(
            ingredient for remedy in self.remedies for ingredient in remedy.ingredients
        )


class FileSourceLoader:
    """Return the raw text of ``<root>/<name>.json`` or ``None`` when absent."""

    def __init__(self, root: Union[str, Path] = DEFAULT_DATA_DIR, suffix: str = ".json") -> None:
        self.root = Path(root)
        self.suffix = suffix

    def path_for(self, name: str) -> Path:
        return self.root / f"{name}{self.suffix}"

    def __call__(self, name: str) -> Optional[str]:
        path = self.path_for(name)
        try:
            with open(path, "r", encoding="utf-8") as handle:
                return handle.read()
        except FileNotFoundError:
            return None


def _require_str(entry: Mapping[str, object], key: str, index: int, default: Optional[str] = None) -> str:
    value = entry.get(key, default)
    if value is None:
        raise MalformedData(f"Remedy #{index} is missing '{key}'")
    if not isinstance(value, str):
        raise MalformedData(f"Remedy #{index} field '{key}' must be a string")
    return value


def _parse_remedy(entry: object, index: int) -> Remedy:
    if not isinstance(entry, Mapping):
        raise MalformedData(f"Remedy #{index} must be an object")
    name = _require_str(entry, "name", index)
    if not name.strip():
        raise MalformedData(f"Remedy #{index} has an empty name")

    raw_ingredients = entry.get("ingredients", [])
    if raw_ingredients is None:
        raw_ingredients = []
    if not isinstance(raw_ingredients, list) or not all(
        isinstance(item, str) for item in raw_ingredients
    ):
        raise MalformedData(f"Remedy '{name}' ingredients must be a list of strings")

    return Remedy(
        name=name,
        ingredients=tuple(raw_ingredients),
        instructions=_require_str(entry, "instructions", index, default=""),
        benefits=_require_str(entry, "benefits", index, default=""),
    )


def parse_remedies(text: str, source: str = "") -> RemedyCatalog:
    """Parse remedy JSON text into a catalog.

    Both a bare record array and the wrapped ``{"remedies": [...]}`` form are
    accepted.
    """

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedData(f"Remedy data is not valid JSON: {exc}") from exc

    if isinstance(raw, Mapping):
        raw = raw.get("remedies")
    if not isinstance(raw, list):
        raise MalformedData("Remedy data must be a list of remedy records")

    remedies = tuple(_parse_remedy(entry, index) for index, entry in enumerate(raw))
    return RemedyCatalog(remedies=remedies, source=source)


class CatalogStore:
    """Owns the current remedy catalog for one navigation context.

    ``load`` builds the whole catalog before publishing it with a single
    reference assignment, so readers calling ``current`` only ever see the
    previous catalog or the complete new one.
    """

    def __init__(
        self,
        loader: Optional[SourceLoader] = None,
        source_name: str = DEFAULT_REMEDY_SOURCE,
    ) -> None:
        self.loader: SourceLoader = loader or FileSourceLoader()
        self.source_name = source_name
        self._catalog: Optional[RemedyCatalog] = None
        self.load_count = 0

    @classmethod
    def open(
        cls,
        loader: Optional[SourceLoader] = None,
        source_name: str = DEFAULT_REMEDY_SOURCE,
    ) -> "CatalogStore":
        """Create a store and attempt an initial load.

        A failing first load is logged and leaves the store empty; consumers
        are expected to reload through :func:`remedy_retry.resolve_with_retry`.
        """

        store = cls(loader, source_name)
        try:
            store.load()
        except LoadError as exc:
            logger.warning("Initial remedy load failed: %s", exc)
        return store

    def load(self) -> RemedyCatalog:
        self.load_count += 1
        try:
            text = self.loader(self.source_name)
        except ValueError as exc:
            logger.warning("Remedy source '%s' is not valid text: %s", self.source_name, exc)
            raise MalformedData(f"Remedy source '{self.source_name}' is not valid UTF-8 text") from exc
        except OSError as exc:
            logger.warning("Remedy source '%s' could not be read: %s", self.source_name, exc)
            raise SourceUnreadable(f"Remedy source '{self.source_name}' could not be read: {exc}") from exc
        if text is None:
            logger.warning("Remedy source '%s' not found", self.source_name)
            raise SourceMissing(f"Remedy source '{self.source_name}' not found")
        try:
            catalog = parse_remedies(text, source=self.source_name)
        except MalformedData:
            logger.warning("Remedy source '%s' could not be parsed", self.source_name)
            raise
        self._catalog = catalog
        logger.info("Loaded %d remedies from '%s'", len(catalog), self.source_name)
        return catalog

    def current(self) -> Optional[RemedyCatalog]:
        return self._catalog

    def is_empty(self) -> bool:
        return self._catalog is None or len(self._catalog) == 0


def format_instructions(raw_instructions: str) -> str:
    """Number each sentence of ``raw_instructions`` on its own line."""

    steps = [step.strip() for step in raw_instructions.split(".")]
    lines = [f"{index}. {step}." for index, step in enumerate((s for s in steps if s), start=1)]
    return "\n".join(lines)


def format_ingredient_list(ingredients: Sequence[str], bullet: str = "•") -> str:
    if not ingredients:
        return "No ingredients listed."
    return "\n".join(f"{bullet} {ingredient}" for ingredient in ingredients)


def format_recipe_card(remedy: Remedy) -> str:
    instructions = (
        format_instructions(remedy.instructions)
        if remedy.instructions.strip()
        else "No instructions provided."
    )
    return (
        f"{remedy.name}\n\n"
        f"Ingredients:\n{format_ingredient_list(remedy.ingredients)}\n\n"
        f"Instructions:\n{instructions}"
    )


def unique_names(names: Iterable[str]) -> List[str]:
    seen: dict[str, None] = {}
    for name in names:
        seen.setdefault(name, None)
    return list(seen)


__all__ = [
    "CatalogStore",
    "FileSourceLoader",
    "LoadError",
    "MalformedData",
    "Remedy",
    "RemedyCatalog",
    "SourceMissing",
    "SourceUnreadable",
    "format_ingredient_list",
    "format_instructions",
    "format_recipe_card",
    "parse_remedies",
]
