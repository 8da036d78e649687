"""State builders for encounter snapshots."""

from __future__ import annotations

from typing import Any

from .models import EncounterSnapshot, ParticipantView


def participant_to_dict(view: ParticipantView) -> dict[str, Any]:
    return {
        "id": view.id,
        "name": view.name,
        "hp": view.hp,
        "maxHp": view.max_hp,
        "ac": view.ac,
        "modifier": view.modifier,
        "initiative": view.initiative,
        "enabled": view.enabled,
        "status": list(view.status),
    }


def snapshot_to_dict(snapshot: EncounterSnapshot) -> dict[str, Any]:
    """Return the JSON-ready encounter state sent to the presentation layer."""
    return {
        "participants": [participant_to_dict(view) for view in snapshot.participants],
        "running": snapshot.running,
        "current": snapshot.current,
        "currentId": snapshot.current_id,
        "round": snapshot.round,
        "generation": snapshot.generation,
        "changed": sorted(snapshot.changed),
    }
