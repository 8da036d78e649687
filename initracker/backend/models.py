"""Domain models for encounter participants, snapshots and update commands."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union
import uuid


def _new_participant_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class PartyMember:
    name: str
    max_hp: int
    ac: int
    modifier: int = 0


@dataclass(eq=False)
class Participant:
    """A combat entrant.

    Participants compare by identity: two entries with identical fields are
    still different combatants, and the same object added twice is two roster
    entries that are removed together.
    """

    name: str
    hp: int
    max_hp: int
    ac: int
    modifier: int = 0
    initiative: int = 0
    enabled: bool = True
    status: set[str] = field(default_factory=set)
    id: str = field(default_factory=_new_participant_id)

    @classmethod
    def from_member(cls, member: PartyMember) -> "Participant":
        return cls(
            name=member.name,
            hp=member.max_hp,
            max_hp=member.max_hp,
            ac=member.ac,
            modifier=member.modifier,
        )


@dataclass(frozen=True)
class ParticipantView:
    id: str
    name: str
    hp: int
    max_hp: int
    ac: int
    modifier: int
    initiative: int
    enabled: bool
    status: tuple[str, ...]

    @classmethod
    def of(cls, participant: Participant) -> "ParticipantView":
        return cls(
            id=participant.id,
            name=participant.name,
            hp=participant.hp,
            max_hp=participant.max_hp,
            ac=participant.ac,
            modifier=participant.modifier,
            initiative=participant.initiative,
            enabled=participant.enabled,
            status=tuple(sorted(participant.status, key=str)),
        )


@dataclass(frozen=True)
class EncounterSnapshot:
    participants: tuple[ParticipantView, ...]
    running: bool
    current: int | None
    current_id: str | None
    round: int
    generation: int
    changed: frozenset[str] = frozenset()


@dataclass(frozen=True)
class SetName:
    name: str


@dataclass(frozen=True)
class SetAc:
    ac: int


@dataclass(frozen=True)
class SetInitiative:
    initiative: int


@dataclass(frozen=True)
class AdjustHp:
    delta: int


UpdateCommand = Union[SetName, SetAc, SetInitiative, AdjustHp]


def commands_from_fields(
    hp: int | None = None,
    ac: int | None = None,
    initiative: int | None = None,
    name: str | None = None,
) -> list[UpdateCommand]:
    """Translate a partial field update into commands.

    Missing, zero and empty values count as "not supplied". ``hp`` is a delta,
    every other field replaces the current value.
    """
    commands: list[UpdateCommand] = []
    if initiative:
        commands.append(SetInitiative(int(initiative)))
    if name:
        commands.append(SetName(name))
    if hp:
        commands.append(AdjustHp(int(hp)))
    if ac:
        commands.append(SetAc(int(ac)))
    return commands
