"""Turn-order engine: ordering, current-turn pointer and roster mutations."""

from __future__ import annotations

from enum import Enum
import logging
from typing import Any, Callable, Iterable, Sequence

from .initiative import InitiativeResolver
from .models import (
    AdjustHp,
    EncounterSnapshot,
    Participant,
    ParticipantView,
    PartyMember,
    SetAc,
    SetInitiative,
    SetName,
    UpdateCommand,
)

logger = logging.getLogger(__name__)

Listener = Callable[[EncounterSnapshot], None]

FORWARD = 1
BACKWARD = -1


def _tag_key(tag: Any) -> Any:
    if isinstance(tag, Enum):
        return tag.value
    return tag


class EncounterEngine:
    """Owns the roster and whose turn it is.

    Every mutating method notifies subscribers exactly once and returns the
    snapshot that was emitted. Normal state transitions never raise; an empty
    active set degrades to "no current turn".
    """

    def __init__(self, party: Sequence[PartyMember] = (), resolver: InitiativeResolver | None = None) -> None:
        self.party: list[PartyMember] = list(party)
        self.resolver = resolver if resolver is not None else InitiativeResolver()
        self.roster: list[Participant] = []
        self.current: Participant | None = None
        self.running = False
        self.round = 1
        self.generation = 0
        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    @property
    def ordered(self) -> list[Participant]:
        # sorted() is stable, so equal initiatives keep roster order.
        return sorted(self.roster, key=lambda participant: participant.initiative, reverse=True)

    @property
    def active_indices(self) -> list[int]:
        return [index for index, participant in enumerate(self.ordered) if participant.enabled]

    @property
    def current_index(self) -> int | None:
        if self.current is None:
            return None
        for index, participant in enumerate(self.ordered):
            if participant is self.current:
                return index
        return None

    def find(self, participant_id: str) -> Participant | None:
        for participant in self.roster:
            if participant.id == participant_id:
                return participant
        return None

    def snapshot(self, changed: Iterable[str] = ()) -> EncounterSnapshot:
        current_index = self.current_index
        current_id = self.current.id if self.current is not None and current_index is not None else None
        return EncounterSnapshot(
            participants=tuple(ParticipantView.of(participant) for participant in self.ordered),
            running=self.running,
            current=current_index,
            current_id=current_id,
            round=self.round,
            generation=self.generation,
            changed=frozenset(changed),
        )

    # ------------------------------------------------------------------
    # Notification sink
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, *changed: str) -> EncounterSnapshot:
        snapshot = self.snapshot(changed)
        for listener in list(self._listeners):
            listener(snapshot)
        return snapshot

    # ------------------------------------------------------------------
    # Roster mutations
    # ------------------------------------------------------------------

    def add_participants(self, participants: Iterable[Participant]) -> EncounterSnapshot:
        self.roster.extend(participants)
        if self.running and self.current is None:
            self.current = self._first_active()
        return self._notify("participants", "current")

    def remove_participants(self, participants: Iterable[Participant]) -> EncounterSnapshot:
        doomed = list(participants)

        def is_doomed(participant: Participant) -> bool:
            return any(participant is candidate for candidate in doomed)

        if self.current is not None and is_doomed(self.current):
            self.current = self._next_active_after(self.current, skip=is_doomed)

        self.roster = [participant for participant in self.roster if not is_doomed(participant)]
        if not self.active_indices:
            self.current = None
        return self._notify("participants", "current")

    async def start_new_encounter(self, party: Sequence[PartyMember] | None = None) -> EncounterSnapshot:
        """Replace the roster with fresh copies of the party and roll initiative.

        The new roster only becomes visible once every roll has resolved.
        """
        members = list(self.party if party is None else party)
        self.generation += 1
        generation = self.generation
        fresh = [Participant.from_member(member) for member in members]
        for participant, initiative in await self.resolver.resolve_all(fresh):
            participant.initiative = initiative

        if generation != self.generation:
            logger.info("Discarding new encounter %s superseded by %s", generation, self.generation)
            return self.snapshot()

        self.roster = fresh
        self.current = None
        self.running = False
        self.round = 1
        logger.info("Started encounter %s with %d participants", generation, len(fresh))
        return self._notify("participants", "running", "current", "round")

    async def reroll_initiatives(self) -> EncounterSnapshot:
        generation = self.generation
        rolls = await self.resolver.resolve_all(list(self.roster))
        if generation != self.generation:
            logger.info("Discarding initiative rolls for stale encounter %s", generation)
            return self.snapshot()

        for participant, initiative in rolls:
            if any(participant is member for member in self.roster):
                participant.initiative = initiative
        return self._notify("participants", "current")

    def reset_encounter(self) -> EncounterSnapshot:
        for participant in self.roster:
            participant.hp = participant.max_hp
            participant.status = set()
            participant.enabled = True

        self.current = self._first_active()
        self.round = 1
        logger.debug("Reset encounter %s", self.generation)
        return self._notify("participants", "current", "round")

    def update_participant(self, participant: Participant, *commands: UpdateCommand) -> EncounterSnapshot:
        for command in commands:
            if isinstance(command, SetInitiative):
                participant.initiative = int(command.initiative)
            elif isinstance(command, SetName):
                if command.name:
                    participant.name = command.name
            elif isinstance(command, AdjustHp):
                participant.hp += int(command.delta)
            elif isinstance(command, SetAc):
                participant.ac = int(command.ac)
            else:
                raise TypeError(f"Unsupported update command: {command!r}")
        return self._notify("participants", "current")

    def set_enabled(self, participant: Participant, enabled: bool) -> EncounterSnapshot:
        if enabled:
            participant.enabled = True
            active = self.active_indices
            if len(active) == 1:
                self.current = self.ordered[active[0]]
        else:
            if self.current is participant:
                self.current = self._next_active_after(participant, skip=lambda candidate: candidate is participant)
            participant.enabled = False

        if not self.active_indices:
            self.current = None
        return self._notify("participants", "current")

    def add_status(self, participant: Participant, tag: Any) -> EncounterSnapshot:
        participant.status.add(_tag_key(tag))
        return self._notify("participants")

    def remove_status(self, participant: Participant, tag: Any) -> EncounterSnapshot:
        participant.status.discard(_tag_key(tag))
        return self._notify("participants")

    # ------------------------------------------------------------------
    # Turn cycling
    # ------------------------------------------------------------------

    def advance(self, direction: int = FORWARD) -> EncounterSnapshot:
        """Move the turn to the next (or previous) enabled participant.

        Wrapping forward past the last active participant starts a new round;
        wrapping backward past the first returns to the previous one.
        """
        if self._advance(direction):
            self.round = self.round + 1 if direction >= 0 else max(1, self.round - 1)
        return self._notify("current", "round")

    def next_turn(self) -> EncounterSnapshot:
        return self.advance(FORWARD)

    def previous_turn(self) -> EncounterSnapshot:
        return self.advance(BACKWARD)

    def toggle_running(self) -> EncounterSnapshot:
        self.running = not self.running
        if self.running and (self.current is None or not self._is_active(self.current)):
            self.current = self._first_active()
        return self._notify("running", "current")

    def _advance(self, direction: int) -> bool:
        """Move the pointer within the live active set; return True on wrap-around."""
        step = FORWARD if direction >= 0 else BACKWARD
        ordered = self.ordered
        active = [index for index, participant in enumerate(ordered) if participant.enabled]
        if not active:
            self.current = None
            return False

        positions = [position for position, index in enumerate(active) if ordered[index] is self.current]
        if not positions:
            # Not in the active set (e.g. just disabled): land on the first or last entry.
            start = -1 if step == FORWARD else len(active)
            self.current = ordered[active[(start + step) % len(active)]]
            return False

        # Step off the outermost repeat of the current participant so duplicates cannot trap the pointer.
        start = positions[-1] if step == FORWARD else positions[0]
        for offset in range(1, len(active) + 1):
            position = start + step * offset
            candidate = ordered[active[position % len(active)]]
            if candidate is not self.current or offset == len(active):
                self.current = candidate
                return position >= len(active) or position < 0
        return False

    def _first_active(self) -> Participant | None:
        ordered = self.ordered
        for participant in ordered:
            if participant.enabled:
                return participant
        return None

    def _is_active(self, participant: Participant) -> bool:
        return participant.enabled and any(participant is member for member in self.roster)

    def _next_active_after(
        self,
        participant: Participant,
        skip: Callable[[Participant], bool],
    ) -> Participant | None:
        ordered = self.ordered
        start = next((index for index, member in enumerate(ordered) if member is participant), -1)
        for offset in range(1, len(ordered) + 1):
            candidate = ordered[(start + offset) % len(ordered)]
            if candidate.enabled and not skip(candidate):
                return candidate
        return None
