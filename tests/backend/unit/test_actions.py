import pytest

from initracker.backend.actions import InvalidActionError, apply_action
from initracker.backend.engine import EncounterEngine
from initracker.backend.models import Participant


def _engine() -> tuple[EncounterEngine, Participant, Participant]:
    first = Participant(name="Ayla", hp=24, max_hp=24, ac=15, initiative=18, id="ayla")
    second = Participant(name="Goblin", hp=7, max_hp=7, ac=13, initiative=11, id="goblin")
    engine = EncounterEngine()
    engine.add_participants([first, second])
    return engine, first, second


def test_apply_action_cycles_turns() -> None:
    engine, first, second = _engine()

    started = apply_action(engine, {"type": "TOGGLE_RUNNING"})
    advanced = apply_action(engine, {"type": "next_turn"})
    back = apply_action(engine, {"type": "PREVIOUS_TURN"})

    assert started.running is True
    assert started.current_id == "ayla"
    assert advanced.current_id == "goblin"
    assert back.current_id == "ayla"


def test_apply_action_update_participant_uses_field_semantics() -> None:
    engine, _, goblin = _engine()

    apply_action(
        engine,
        {"type": "UPDATE_PARTICIPANT", "participantId": "goblin", "hp": -5, "ac": 15, "initiative": 0, "name": ""},
    )

    assert goblin.hp == 2
    assert goblin.ac == 15
    assert goblin.initiative == 11
    assert goblin.name == "Goblin"


def test_apply_action_set_enabled_and_status() -> None:
    engine, ayla, goblin = _engine()
    apply_action(engine, {"type": "TOGGLE_RUNNING"})

    snapshot = apply_action(engine, {"type": "SET_ENABLED", "participantId": "ayla", "enabled": False})
    apply_action(engine, {"type": "ADD_STATUS", "participantId": "goblin", "tag": "Frightened"})

    assert snapshot.current_id == "goblin"
    assert ayla.enabled is False
    assert goblin.status == {"Frightened"}

    apply_action(engine, {"type": "REMOVE_STATUS", "participantId": "goblin", "tag": "Frightened"})
    assert goblin.status == set()


def test_apply_action_remove_and_reset() -> None:
    engine, ayla, _ = _engine()
    apply_action(engine, {"type": "UPDATE_PARTICIPANT", "participantId": "ayla", "hp": -10})

    removed = apply_action(engine, {"type": "REMOVE_PARTICIPANTS", "participantIds": ["goblin"]})
    reset = apply_action(engine, {"type": "RESET_ENCOUNTER"})

    assert [view.id for view in removed.participants] == ["ayla"]
    assert ayla.hp == 24
    assert reset.current_id == "ayla"


def test_apply_action_ignores_unknown_type_and_participant_without_notifying() -> None:
    engine, _, _ = _engine()
    received = []
    engine.subscribe(received.append)

    apply_action(engine, {"type": "CAST_FIREBALL"})
    apply_action(engine, {"type": "SET_ENABLED", "participantId": "nobody", "enabled": False})
    apply_action(engine, {"type": "ADD_STATUS", "participantId": "goblin"})
    apply_action(engine, {"type": "REMOVE_PARTICIPANTS", "participantIds": ["nobody"]})

    assert received == []
    assert len(engine.roster) == 2


def test_apply_action_rejects_mistyped_fields_without_changing_state() -> None:
    engine, ayla, _ = _engine()

    with pytest.raises(InvalidActionError):
        apply_action(engine, {"type": "UPDATE_PARTICIPANT", "participantId": "ayla", "hp": "lots"})
    with pytest.raises(InvalidActionError):
        apply_action(engine, {"type": "UPDATE_PARTICIPANT", "participantId": "ayla", "ac": True})
    with pytest.raises(InvalidActionError):
        apply_action(engine, {"type": "SET_ENABLED", "participantId": "ayla", "enabled": "false"})

    assert ayla.hp == 24
    assert ayla.ac == 15
    assert ayla.enabled is True
