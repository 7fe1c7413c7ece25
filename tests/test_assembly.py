from __future__ import annotations

import pytest

from assembly import AssemblySession, AssemblyStatus, InvalidTransition
from remedy_api import Remedy


@pytest.fixture
def session() -> AssemblySession:
    return AssemblySession(["Ginger", "Honey"])


def test_new_session_is_idle(session: AssemblySession) -> None:
    assert session.status is AssemblyStatus.IDLE
    assert session.added == frozenset()
    assert session.required == frozenset({"Ginger", "Honey"})
    assert not session.can_mix
    assert session.status_message() == "Add 2 ingredients to the pot"


def test_correct_completion(session: AssemblySession) -> None:
    assert session.add_ingredient("Ginger")
    assert session.status is AssemblyStatus.IN_PROGRESS
    assert session.status_message() == "Added 1 of 2 ingredients"

    assert session.add_ingredient("Honey")
    assert session.status is AssemblyStatus.READY_TO_MIX
    assert session.can_mix

    session.finalize()
    assert session.status is AssemblyStatus.MIXED
    assert session.is_mixed
    assert session.status_message() == "Remedy prepared successfully!"


def test_duplicate_add_is_a_no_op(session: AssemblySession) -> None:
    session.add_ingredient("Ginger")
    added, status = session.added, session.status

    assert not session.add_ingredient("Ginger")
    assert session.added == added
    assert session.status is status
    assert session.progress() == (1, 2)


def test_same_size_wrong_set_never_ready(session: AssemblySession) -> None:
    session.add_ingredient("Ginger")
    session.add_ingredient("Pepper")

    assert session.status is AssemblyStatus.IN_PROGRESS
    assert not session.can_mix
    assert session.wrong() == ["Pepper"]
    assert session.missing() == ["Honey"]
    assert session.status_message() == "Some ingredients are incorrect. Please check the recipe."


def test_surplus_ingredients_never_ready(session: AssemblySession) -> None:
    session.add_ingredient("Pepper")
    session.add_ingredient("Ginger")
    session.add_ingredient("Honey")

    assert session.status is AssemblyStatus.IN_PROGRESS
    assert session.progress() == (3, 2)


def test_finalize_in_progress_raises_and_changes_nothing(session: AssemblySession) -> None:
    session.add_ingredient("Ginger")
    added = session.added

    with pytest.raises(InvalidTransition) as excinfo:
        session.finalize()

    assert excinfo.value.action == "mix"
    assert excinfo.value.state == "in_progress"
    assert session.added == added
    assert session.status is AssemblyStatus.IN_PROGRESS


def test_finalize_when_idle_raises(session: AssemblySession) -> None:
    with pytest.raises(InvalidTransition):
        session.finalize()
    assert session.status is AssemblyStatus.IDLE


def test_mixed_is_terminal(session: AssemblySession) -> None:
    session.add_ingredient("Ginger")
    session.add_ingredient("Honey")
    session.finalize()

    with pytest.raises(InvalidTransition):
        session.finalize()
    with pytest.raises(InvalidTransition):
        session.add_ingredient("Lemon")
    assert session.status is AssemblyStatus.MIXED


def test_ready_session_does_not_regress(session: AssemblySession) -> None:
    session.add_ingredient("Honey")
    session.add_ingredient("Ginger")

    assert not session.add_ingredient("Pepper")
    assert session.status is AssemblyStatus.READY_TO_MIX
    assert session.added == frozenset({"Ginger", "Honey"})


def test_status_never_moves_backwards() -> None:
    order = {
        AssemblyStatus.IDLE: 0,
        AssemblyStatus.IN_PROGRESS: 1,
        AssemblyStatus.READY_TO_MIX: 2,
        AssemblyStatus.MIXED: 3,
    }
    session = AssemblySession(["Turmeric", "Warm Milk", "Honey"])
    seen = [session.status]
    for name in ["Honey", "Honey", "Turmeric", "Warm Milk", "Salt"]:
        session.add_ingredient(name)
        seen.append(session.status)
    session.finalize()
    seen.append(session.status)

    ranks = [order[status] for status in seen]
    assert ranks == sorted(ranks)
    assert seen[-2:] == [AssemblyStatus.READY_TO_MIX, AssemblyStatus.MIXED]


def test_duplicate_required_ingredients_count_once() -> None:
    session = AssemblySession.for_remedy(
        Remedy(name="Cold", ingredients=("Honey", "Ginger", "Honey"))
    )

    session.add_ingredient("Ginger")
    session.add_ingredient("Honey")

    assert session.required == frozenset({"Ginger", "Honey"})
    assert session.status is AssemblyStatus.READY_TO_MIX


def test_remedy_without_ingredients_can_never_mix() -> None:
    session = AssemblySession.for_remedy(Remedy(name="Rest"))

    assert session.status is AssemblyStatus.IDLE
    assert session.status_message() == "No ingredients required for this remedy"
    with pytest.raises(InvalidTransition):
        session.finalize()


def test_events_record_player_actions(session: AssemblySession) -> None:
    session.add_ingredient("Ginger")
    session.add_ingredient("Honey")
    session.add_ingredient("Lemon")
    session.finalize()

    events = session.consume_events()

    assert [name for name, _ in events] == ["add", "add", "rejected", "mix"]
    assert events[1][1] == {"ingredient": "Honey", "status": "ready_to_mix"}
    assert session.consume_events() == []
