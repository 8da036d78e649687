"""Dispatcher for host actions sent by the presentation layer."""

from __future__ import annotations

import logging
from typing import Any

from .engine import EncounterEngine
from .models import EncounterSnapshot, Participant, commands_from_fields

logger = logging.getLogger(__name__)


class InvalidActionError(ValueError):
    """Raised when a known action carries fields of the wrong type."""


def apply_action(engine: EncounterEngine, action: dict[str, Any]) -> EncounterSnapshot:
    """Apply a host action to the engine.

    Unknown action types and unknown participant ids leave the encounter
    untouched and return the current snapshot without notifying. Known
    actions with mistyped fields raise :class:`InvalidActionError`.
    """
    action_type = str(action.get("type", "")).upper()
    if action_type == "NEXT_TURN":
        return engine.next_turn()
    if action_type == "PREVIOUS_TURN":
        return engine.previous_turn()
    if action_type == "TOGGLE_RUNNING":
        return engine.toggle_running()
    if action_type == "RESET_ENCOUNTER":
        return engine.reset_encounter()
    if action_type == "SET_ENABLED":
        return _apply_set_enabled(engine=engine, action=action)
    if action_type == "UPDATE_PARTICIPANT":
        return _apply_update(engine=engine, action=action)
    if action_type == "ADD_STATUS":
        return _apply_status(engine=engine, action=action, add=True)
    if action_type == "REMOVE_STATUS":
        return _apply_status(engine=engine, action=action, add=False)
    if action_type == "REMOVE_PARTICIPANTS":
        return _apply_remove(engine=engine, action=action)
    logger.debug("Ignoring unknown action type %r", action_type)
    return engine.snapshot()


def _participant(engine: EncounterEngine, action: dict[str, Any]) -> Participant | None:
    participant_id = action.get("participantId")
    if not isinstance(participant_id, str) or participant_id == "":
        return None
    return engine.find(participant_id)


def _apply_set_enabled(engine: EncounterEngine, action: dict[str, Any]) -> EncounterSnapshot:
    enabled = action.get("enabled")
    if not isinstance(enabled, bool):
        raise InvalidActionError(f"enabled must be a boolean, got {enabled!r}")
    participant = _participant(engine, action)
    if participant is None:
        return engine.snapshot()
    return engine.set_enabled(participant, enabled)


def _apply_update(engine: EncounterEngine, action: dict[str, Any]) -> EncounterSnapshot:
    for key in ("hp", "ac", "initiative"):
        value = action.get(key)
        if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
            raise InvalidActionError(f"{key} must be an integer, got {value!r}")
    name = action.get("name")
    if name is not None and not isinstance(name, str):
        raise InvalidActionError(f"name must be a string, got {name!r}")
    participant = _participant(engine, action)
    if participant is None:
        return engine.snapshot()
    commands = commands_from_fields(
        hp=action.get("hp"),
        ac=action.get("ac"),
        initiative=action.get("initiative"),
        name=action.get("name"),
    )
    return engine.update_participant(participant, *commands)


def _apply_status(engine: EncounterEngine, action: dict[str, Any], add: bool) -> EncounterSnapshot:
    participant = _participant(engine, action)
    tag = action.get("tag")
    if participant is None or not isinstance(tag, str) or tag == "":
        return engine.snapshot()
    if add:
        return engine.add_status(participant, tag)
    return engine.remove_status(participant, tag)


def _apply_remove(engine: EncounterEngine, action: dict[str, Any]) -> EncounterSnapshot:
    participant_ids = action.get("participantIds")
    if not isinstance(participant_ids, list):
        return engine.snapshot()
    doomed = [participant for participant in engine.roster if participant.id in participant_ids]
    if not doomed:
        return engine.snapshot()
    return engine.remove_participants(doomed)
