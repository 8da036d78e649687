"""Initiative resolution through an optional dice roller with a local d20 fallback."""

from __future__ import annotations

import asyncio
import logging
import math
import random
from typing import Any, Callable, Iterable, Protocol

import httpx

from .config import DEFAULT_INITIATIVE_FORMULA
from .models import Participant

logger = logging.getLogger(__name__)

MOD_PLACEHOLDER = "%mod%"


class Randomizer(Protocol):
    async def roll(self, formula: str) -> Any:
        """Evaluate a dice formula and return its numeric result."""


class HttpDiceRoller:
    """Randomizer backed by a dice-rolling HTTP service.

    The service receives ``POST <base_url>/roll`` with ``{"formula": ...}`` and
    answers with a JSON object carrying a ``result`` field.
    """

    def __init__(self, base_url: str, timeout: float = 5.0, client: httpx.AsyncClient | None = None) -> None:
        self.base_url = base_url.strip().rstrip("/")
        self._timeout = timeout
        self._client = client

    async def roll(self, formula: str) -> Any:
        if self._client is not None:
            return await self._post(self._client, formula)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await self._post(client, formula)

    async def _post(self, client: httpx.AsyncClient, formula: str) -> Any:
        resp = await client.post(f"{self.base_url}/roll", json={"formula": formula})
        resp.raise_for_status()
        payload = resp.json()
        if not isinstance(payload, dict):
            raise ValueError(f"Unexpected dice roller payload: {payload!r}")
        return payload.get("result")


def local_roll(modifier: int, rng: Callable[[int, int], int] = random.randint) -> int:
    """Roll a d20 and add the modifier."""
    return rng(1, 20) + modifier


def build_formula(template: str, modifier: int) -> str:
    return template.replace(MOD_PLACEHOLDER, str(modifier))


def coerce_roll_result(value: Any) -> int | None:
    """Return an integer initiative for a usable result, otherwise None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    return None


class InitiativeResolver:
    def __init__(
        self,
        randomizer: Randomizer | None = None,
        formula: str = DEFAULT_INITIATIVE_FORMULA,
        rng: Callable[[int, int], int] = random.randint,
    ) -> None:
        self.randomizer = randomizer
        self.formula = formula
        self._rng = rng
        self._lock = asyncio.Lock()

    async def resolve(self, participant: Participant) -> int:
        """Return a fresh initiative for one participant. Never raises."""
        if self.randomizer is None:
            return local_roll(participant.modifier, self._rng)

        formula = build_formula(self.formula, participant.modifier)
        try:
            raw = await self.randomizer.roll(formula)
        except Exception as e:
            logger.warning("Dice roller failed for %r (%s); using local roll", formula, e)
            return local_roll(participant.modifier, self._rng)

        result = coerce_roll_result(raw)
        if result is None:
            logger.warning("Dice roller returned unusable result %r for %r; using local roll", raw, formula)
            return local_roll(participant.modifier, self._rng)
        return result

    async def resolve_all(self, participants: Iterable[Participant]) -> list[tuple[Participant, int]]:
        """Roll for every participant in order; concurrent batches are queued."""
        async with self._lock:
            rolls: list[tuple[Participant, int]] = []
            for participant in participants:
                rolls.append((participant, await self.resolve(participant)))
            return rolls


def create_resolver(dice_roller_url: str | None, formula: str, timeout: float = 5.0) -> InitiativeResolver:
    if dice_roller_url:
        return InitiativeResolver(randomizer=HttpDiceRoller(dice_roller_url, timeout=timeout), formula=formula)
    return InitiativeResolver(formula=formula)
