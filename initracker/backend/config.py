"""Configuration helpers for tracker runtime."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .models import PartyMember

DEFAULT_INITIATIVE_FORMULA = "1d20 + %mod%"


@dataclass(frozen=True)
class TrackerSettings:
    initiative_formula: str
    dice_roller_url: str | None
    dice_roller_timeout: float
    party_file: str | None
    host: str
    port: int
    log_level: str


def load_settings() -> TrackerSettings:
    port_raw = os.getenv("INITRACKER_PORT", "8000")
    timeout_raw = os.getenv("INITRACKER_DICE_ROLLER_TIMEOUT", "5")
    return TrackerSettings(
        initiative_formula=os.getenv("INITRACKER_INITIATIVE_FORMULA", DEFAULT_INITIATIVE_FORMULA),
        dice_roller_url=os.getenv("INITRACKER_DICE_ROLLER_URL") or None,
        dice_roller_timeout=float(timeout_raw),
        party_file=os.getenv("INITRACKER_PARTY_FILE") or None,
        host=os.getenv("INITRACKER_HOST", "127.0.0.1"),
        port=int(port_raw),
        log_level=os.getenv("INITRACKER_LOG_LEVEL", "INFO").upper(),
    )


def load_party(path: str | Path | None) -> list[PartyMember]:
    """Read the party template from a JSON list of member objects.

    Both ``maxHp`` and ``max_hp`` are accepted for the hit point maximum.
    """
    if not path:
        return []
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise ValueError(f"Party file {path} must contain a JSON list")

    members: list[PartyMember] = []
    for entry in raw:
        if not isinstance(entry, dict):
            raise ValueError(f"Party entry must be an object, got {entry!r}")
        max_hp = entry.get("maxHp", entry.get("max_hp", 0))
        members.append(
            PartyMember(
                name=str(entry["name"]),
                max_hp=int(max_hp),
                ac=int(entry.get("ac", 0)),
                modifier=int(entry.get("modifier", 0)),
            )
        )
    return members


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
