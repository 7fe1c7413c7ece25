from __future__ import annotations

import asyncio
import json
import random
from pathlib import Path
from typing import List

import pytest

from assembly import AssemblyStatus, InvalidTransition
from cooking_flow import (
    PHASE_COOKING,
    PHASE_ERROR,
    PHASE_MIXED,
    CookingFlow,
    GameSettings,
    RemedyResult,
    build_pantry,
    choose_ailment,
    describe_result,
    load_settings,
    resolve_seed,
)
from remedy_api import CatalogStore, FileSourceLoader, Remedy, parse_remedies
from selection_store import SELECTED_AILMENT_KEY, MemorySelectionStore

REMEDIES = [
    {
        "name": "Common Cold",
        "ingredients": ["Ginger", "Honey", "Lemon"],
        "instructions": "Slice ginger. Steep in hot water. Add honey and lemon.",
        "benefits": "Warms the body.",
    },
    {
        "name": "Insomnia",
        "ingredients": ["Chamomile", "Warm Milk"],
        "instructions": "Warm the milk. Steep the chamomile.",
        "benefits": "Calms the mind.",
    },
    {"name": "Rest Day", "ingredients": [], "instructions": "", "benefits": "Sleep it off."},
]


async def no_wait(_delay: float) -> None:
    await asyncio.sleep(0)


@pytest.fixture
def store() -> CatalogStore:
    store = CatalogStore(lambda _name: json.dumps(REMEDIES))
    store.load()
    return store


@pytest.fixture
def settings() -> GameSettings:
    return GameSettings(max_attempts=3, retry_delay=0.0, initial_delay=0.0, distractors=2)


def make_flow(store: CatalogStore, settings: GameSettings, ailment: str = "") -> CookingFlow:
    selection = MemorySelectionStore()
    if ailment:
        choose_ailment(selection, ailment)
    return CookingFlow(store, selection, settings, rng=random.Random(7))


def test_start_resolves_and_opens_session(store: CatalogStore, settings: GameSettings) -> None:
    flow = make_flow(store, settings, "common cold")

    assert asyncio.run(flow.start(sleep=no_wait))

    assert flow.phase == PHASE_COOKING
    assert flow.remedy is not None and flow.remedy.name == "Common Cold"
    assert flow.session is not None
    assert flow.session.required == frozenset({"Ginger", "Honey", "Lemon"})
    assert flow.status_message == "Add 3 ingredients to the pot"
    assert flow.recipe_heading().startswith("Recipe for Common Cold:\n1. Slice ginger.")


def test_pantry_holds_recipe_plus_distractors(store: CatalogStore, settings: GameSettings) -> None:
    flow = make_flow(store, settings, "Common Cold")
    asyncio.run(flow.start(sleep=no_wait))

    assert len(flow.pantry) == 5
    assert {"Ginger", "Honey", "Lemon"} <= set(flow.pantry)
    assert set(flow.pantry) - {"Ginger", "Honey", "Lemon"} <= {"Chamomile", "Warm Milk"}


def test_full_cooking_round(store: CatalogStore, settings: GameSettings) -> None:
    flow = make_flow(store, settings, "Common Cold")
    asyncio.run(flow.start(sleep=no_wait))

    for name in ["Ginger", "Honey"]:
        assert flow.add_ingredient(name)
    assert flow.status_message == "Added 2 of 3 ingredients"
    assert "Ginger" not in flow.available_ingredients()
    assert flow.result() is None

    flow.add_ingredient("Lemon")
    assert flow.can_mix
    flow.mix()

    assert flow.phase == PHASE_MIXED
    assert flow.status_message == "Remedy prepared successfully!"
    result = flow.result()
    assert result == RemedyResult(
        name="Common Cold",
        benefits="Warms the body.",
        ingredients=("Ginger", "Honey", "Lemon"),
        instructions="1. Slice ginger.\n2. Steep in hot water.\n3. Add honey and lemon.",
    )
    assert flow.leave() == "result"


def test_mix_too_early_raises_and_keeps_cooking(store: CatalogStore, settings: GameSettings) -> None:
    flow = make_flow(store, settings, "Insomnia")
    asyncio.run(flow.start(sleep=no_wait))
    flow.add_ingredient("Chamomile")

    with pytest.raises(InvalidTransition):
        flow.mix()

    assert flow.phase == PHASE_COOKING
    assert flow.session.status is AssemblyStatus.IN_PROGRESS


def test_actions_before_start_raise(store: CatalogStore, settings: GameSettings) -> None:
    flow = make_flow(store, settings, "Insomnia")

    with pytest.raises(InvalidTransition):
        flow.add_ingredient("Chamomile")


def test_missing_selection_is_an_error_state(store: CatalogStore, settings: GameSettings) -> None:
    flow = make_flow(store, settings)

    assert not asyncio.run(flow.start(sleep=no_wait))

    assert flow.phase == PHASE_ERROR
    assert flow.error == "No ailment selected"
    assert flow.next_page == "ailment_list"


def test_unknown_ailment_degrades_to_error(store: CatalogStore, settings: GameSettings) -> None:
    flow = make_flow(store, settings, "Broken Leg")

    assert not asyncio.run(flow.start(sleep=no_wait))

    assert flow.phase == PHASE_ERROR
    assert flow.failure is not None
    assert flow.failure.attempts_tried == 3
    assert flow.status_message.startswith("Error: Could not find remedy for 'Broken Leg'")
    assert flow.leave() == "ailment_list"
    assert flow.selection.get(SELECTED_AILMENT_KEY) == ""


def test_missing_catalog_degrades_to_error(settings: GameSettings) -> None:
    empty_store = CatalogStore(lambda _name: None)
    flow = make_flow(empty_store, settings, "Common Cold")

    assert not asyncio.run(flow.start(sleep=no_wait))

    assert flow.failure is not None
    assert flow.failure.reason == "catalog_empty"


def test_undecodable_catalog_degrades_to_error(tmp_path: Path, settings: GameSettings) -> None:
    (tmp_path / "remedies.json").write_bytes(b'[{"name": "Cold\xff"}]')
    broken = CatalogStore.open(FileSourceLoader(tmp_path))
    flow = make_flow(broken, settings, "Cold")

    assert not asyncio.run(flow.start(sleep=no_wait))

    assert flow.phase == PHASE_ERROR
    assert flow.failure is not None
    assert flow.failure.reason == "catalog_empty"


def test_remedy_without_ingredients(store: CatalogStore, settings: GameSettings) -> None:
    flow = make_flow(store, settings, "rest day")

    assert asyncio.run(flow.start(sleep=no_wait))

    assert flow.status_message == "No ingredients found for this remedy!"
    assert not flow.can_mix


def test_close_cancels_pending_lookup(settings: GameSettings) -> None:
    loads: List[int] = []

    def loader(_name: str):
        loads.append(1)
        return None

    slow = GameSettings(max_attempts=50, retry_delay=10.0, initial_delay=0.0)
    flow = make_flow(CatalogStore(loader), slow, "Common Cold")

    async def scenario() -> bool:
        task = asyncio.ensure_future(flow.start())
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        flow.close()
        return await task

    assert asyncio.run(scenario()) is False
    assert flow.closed
    assert len(loads) <= 1
    assert flow.session is None


def test_build_pantry_is_reproducible_with_seed() -> None:
    catalog = parse_remedies(json.dumps(REMEDIES))
    remedy = catalog.remedies[0]

    _, first_rng = resolve_seed(1234)
    _, second_rng = resolve_seed(1234)

    assert build_pantry(catalog, remedy, 2, first_rng) == build_pantry(catalog, remedy, 2, second_rng)


def test_build_pantry_without_catalog_offers_only_recipe() -> None:
    remedy = Remedy(name="Cold", ingredients=("Ginger", "Honey", "Ginger"))

    pantry = build_pantry(None, remedy, 5, random.Random(1))

    assert sorted(pantry) == ["Ginger", "Honey"]


def test_describe_result_lists_sections() -> None:
    text = describe_result(
        RemedyResult(name="Cold", benefits="Warm.", ingredients=("Ginger",), instructions="1. Boil.")
    )

    assert text == "Cold\n\nWarm.\n\nIngredients:\n• Ginger\n\nInstructions:\n1. Boil."


def test_load_settings_merges_file_and_overrides(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"max_attempts": 4, "retry_delay": "0.25", "unknown": 1}), encoding="utf-8")

    settings = load_settings(str(path), max_attempts=None, distractors=1)

    assert settings.max_attempts == 4
    assert settings.retry_delay == 0.25
    assert settings.distractors == 1
    assert settings.retry_policy().max_attempts == 4


def test_load_settings_missing_file_uses_defaults(tmp_path: Path) -> None:
    assert load_settings(str(tmp_path / "nope.json")) == GameSettings()


@pytest.mark.parametrize(
    "payload",
    [{"max_attempts": 0}, {"retry_delay": -1}, {"distractors": -2}, {"max_attempts": "many"}],
)
def test_load_settings_rejects_bad_values(tmp_path: Path, payload: dict) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(ValueError):
        load_settings(str(path))
