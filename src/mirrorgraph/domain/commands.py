"""Pipeline directives as a closed set of command variants."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .model import DayKey

TRANSITION_PREFIX: Final[str] = "transition-"


@dataclass(frozen=True, slots=True)
class BuildCommand:
    """Load raw events and every day snapshot, point current at the first day."""


@dataclass(frozen=True, slots=True)
class TransitionCommand:
    day: DayKey


@dataclass(frozen=True, slots=True)
class DeleteCommand:
    """Drop every relation to start over."""


@dataclass(frozen=True, slots=True)
class ShowFixturesCommand:
    """Return the generated sample data without touching storage."""


type Command = BuildCommand | TransitionCommand | DeleteCommand | ShowFixturesCommand


def directive_names() -> tuple[str, ...]:
    transitions = tuple(f"{TRANSITION_PREFIX}{day}" for day in DayKey.transition_targets())
    return ("build", *transitions, "delete")


def parse_directive(value: str | None) -> Command:
    """Turn ``build``, ``transition-<day>``, ``delete`` or nothing into a command."""

    text = (value or "").strip().lower()
    if text in {"", "show"}:
        return ShowFixturesCommand()
    if text == "build":
        return BuildCommand()
    if text == "delete":
        return DeleteCommand()
    if text.startswith(TRANSITION_PREFIX):
        raw_day = text.removeprefix(TRANSITION_PREFIX).replace("-", "_")
        try:
            day = DayKey(raw_day)
        except ValueError as exc:
            raise ValueError(f"Unknown day in directive: {value}") from exc
        if day not in DayKey.transition_targets():
            raise ValueError(f"{day} is the build day and cannot be a transition target")
        return TransitionCommand(day=day)
    raise ValueError(f"Unsupported directive: {value}")
