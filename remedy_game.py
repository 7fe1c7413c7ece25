"""Interactive terminal version of the Herbal Remedy Kitchen.

Pick an ailment from the catalog, put the right ingredients in the pot, mix
the remedy and read what it is good for.

Key features:
* Reads the same ``remedies.json`` catalog as the pygame window.
* Ingredients can be picked by number or by name; wrong ones stay in the pot
  until the session ends, just like the cooking screen.
* ``--seed`` replays the same pantry order.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import random
from typing import Callable, List, Optional, Sequence

from assembly import InvalidTransition
from cooking_flow import (
    PHASE_COOKING,
    PHASE_MIXED,
    CookingFlow,
    GameSettings,
    choose_ailment,
    clear_selection,
    configure_logging,
    describe_result,
    load_settings,
    open_store,
    resolve_seed,
)
from remedy_api import DATA_VERSION, CatalogStore, format_recipe_card
from selection_store import JsonSelectionStore, SelectionStore

logger = logging.getLogger(__name__)

Prompt = Callable[[str], str]


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Herbal Remedy Kitchen (terminal)")
    parser.add_argument("--settings", type=str, default=None, help="Optional JSON settings file")
    parser.add_argument("--data-dir", type=str, default=None, help="Folder holding remedies.json")
    parser.add_argument(
        "--selection-file",
        type=str,
        default=None,
        help="Where the chosen ailment is remembered between screens",
    )
    parser.add_argument("--ailment", type=str, default=None, help="Skip the list and cook this ailment")
    parser.add_argument("--seed", type=int, default=None, help="RNG seed for the pantry order")
    parser.add_argument("--max-attempts", type=int, default=None, help="Remedy lookup attempts")
    parser.add_argument("--retry-delay", type=float, default=None, help="Seconds between lookups")
    parser.add_argument("--distractors", type=int, default=None, help="Extra ingredients offered")
    parser.add_argument("--log-level", type=str, default="WARNING", help="Logging level")
    return parser.parse_args(argv)


def _prompt_selection(prompt: str, options: Sequence[str], rng: random.Random, ask: Prompt) -> str:
    """Display numbered options and return the chosen value."""
    for idx, value in enumerate(options, start=1):
        print(f"  {idx:2d}. {value}")
    while True:
        raw = ask(f"{prompt} (number or name, blank for random): ").strip()
        if not raw:
            choice = rng.choice(options)
            print(f"  -> Randomly selected: {choice}\n")
            return choice
        if raw.isdigit():
            pos = int(raw)
            if 1 <= pos <= len(options):
                print()
                return options[pos - 1]
        matches = [value for value in options if value.lower() == raw.lower()]
        if matches:
            print()
            return matches[0]
        print("Invalid selection. Please try again.")


def choose_ailment_screen(store: CatalogStore, rng: random.Random, ask: Prompt) -> Optional[str]:
    catalog = store.current()
    if catalog is None or len(catalog) == 0:
        print("No remedies are available right now.")
        return None
    print("\n=== Choose an ailment ===")
    return _prompt_selection("Ailment", catalog.names(), rng, ask)


def display_pantry(flow: CookingFlow) -> List[str]:
    available = flow.available_ingredients()
    print("\nPantry:")
    for idx, name in enumerate(available, start=1):
        print(f"  {idx}. {name}")
    if flow.session is not None and flow.session.added_in_order:
        print("  In the pot: " + ", ".join(flow.session.added_in_order))
    return available


def _pick_ingredient(raw: str, available: Sequence[str]) -> Optional[str]:
    if raw.isdigit():
        pos = int(raw)
        if 1 <= pos <= len(available):
            return available[pos - 1]
        return None
    for name in available:
        if name.lower() == raw.lower():
            return name
    return None


def cooking_loop(flow: CookingFlow, ask: Prompt = input) -> bool:
    """Let the player fill the pot. Returns ``True`` once the remedy is mixed."""

    print(flow.recipe_heading())
    print(flow.status_message)
    while flow.phase == PHASE_COOKING:
        available = display_pantry(flow)
        options = "number or name to add, 'r' recipe, 'q' leave"
        if flow.can_mix:
            options = "'m' to mix, " + options
        raw = ask(f"Your move ({options}): ").strip()
        command = raw.lower()
        if command == "q":
            return False
        if command == "r":
            if flow.remedy is not None:
                print("\n" + format_recipe_card(flow.remedy))
            continue
        if command == "m":
            try:
                flow.mix()
            except InvalidTransition:
                print("The pot is not ready yet.")
            print(flow.status_message)
            continue
        choice = _pick_ingredient(raw, available)
        if choice is None:
            print("Invalid selection. Please try again.")
            continue
        if flow.add_ingredient(choice):
            print(f"Added {choice} to the pot.")
        print(flow.status_message)
    return flow.phase == PHASE_MIXED


def show_result(flow: CookingFlow) -> None:
    result = flow.result()
    if result is None:
        return
    print("\n=== Your remedy ===")
    print(describe_result(result))


def play(
    store: CatalogStore,
    selection: SelectionStore,
    settings: GameSettings,
    rng: random.Random,
    ailment: Optional[str] = None,
    ask: Prompt = input,
) -> bool:
    name = ailment or choose_ailment_screen(store, rng, ask)
    if not name:
        return False
    choose_ailment(selection, name)

    flow = CookingFlow(store, selection, settings, rng=rng)
    if not asyncio.run(flow.start()):
        print(flow.status_message)
        page = flow.leave()
        print(f"Returning to {page.replace('_', ' ')}.")
        return False

    mixed = cooking_loop(flow, ask)
    if mixed:
        show_result(flow)
    page = flow.leave()
    logger.info("Leaving cooking screen for %s", page)
    return mixed


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    try:
        settings = load_settings(
            args.settings,
            data_dir=args.data_dir,
            selection_path=args.selection_file,
            max_attempts=args.max_attempts,
            retry_delay=args.retry_delay,
            distractors=args.distractors,
        )
    except ValueError as exc:
        print(f"Invalid settings: {exc}")
        return 2

    print(
        f"""
===============================================
 Herbal Remedy Kitchen (terminal edition)
 Data version: {DATA_VERSION}
-----------------------------------------------
 * Choose an ailment, add its ingredients to the pot, then mix.
 * Enter 'r' to read the recipe and 'q' to leave the kitchen.
===============================================
"""
    )
    seed_value, rng = resolve_seed(args.seed)
    print(f"Using RNG seed: {seed_value}\n")

    store = open_store(settings)
    selection = JsonSelectionStore(settings.selection_path)
    clear_selection(selection)

    while True:
        play(store, selection, settings, rng, ailment=args.ailment)
        if args.ailment:
            break
        again = input("Cook another remedy? (y/N): ").strip().lower()
        if again not in {"y", "yes"}:
            break
    print("Thanks for cooking!")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
