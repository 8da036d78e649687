"""Backend package for the initiative tracker."""

from .conditions import Condition
from .config import TrackerSettings, load_party, load_settings
from .engine import BACKWARD, FORWARD, EncounterEngine
from .initiative import HttpDiceRoller, InitiativeResolver, Randomizer, create_resolver
from .models import (
    AdjustHp,
    EncounterSnapshot,
    Participant,
    ParticipantView,
    PartyMember,
    SetAc,
    SetInitiative,
    SetName,
    commands_from_fields,
)
from .state import snapshot_to_dict

__all__ = [
    "AdjustHp",
    "BACKWARD",
    "commands_from_fields",
    "Condition",
    "create_resolver",
    "EncounterEngine",
    "EncounterSnapshot",
    "FORWARD",
    "HttpDiceRoller",
    "InitiativeResolver",
    "load_party",
    "load_settings",
    "Participant",
    "ParticipantView",
    "PartyMember",
    "Randomizer",
    "SetAc",
    "SetInitiative",
    "SetName",
    "snapshot_to_dict",
    "TrackerSettings",
]
