from __future__ import annotations

import pytest

from mirrorgraph.domain.commands import (
    BuildCommand,
    DeleteCommand,
    ShowFixturesCommand,
    TransitionCommand,
    directive_names,
    parse_directive,
)
from mirrorgraph.domain.model import DayKey


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        (None, ShowFixturesCommand()),
        ("", ShowFixturesCommand()),
        ("show", ShowFixturesCommand()),
        ("build", BuildCommand()),
        ("  DELETE ", DeleteCommand()),
        ("transition-today", TransitionCommand(day=DayKey.TODAY)),
        ("transition-tomorrow", TransitionCommand(day=DayKey.TOMORROW)),
        ("transition-day-after-tomorrow", TransitionCommand(day=DayKey.DAY_AFTER_TOMORROW)),
        ("transition-day_after_tomorrow", TransitionCommand(day=DayKey.DAY_AFTER_TOMORROW)),
    ],
)
def test_parse_directive(text: str | None, expected: object) -> None:
    assert parse_directive(text) == expected


@pytest.mark.parametrize("text", ["rebuild", "transition-", "transition-someday", "transition-yesterday"])
def test_parse_directive_rejects_unknown_values(text: str) -> None:
    with pytest.raises(ValueError, match=r"directive|build day"):
        parse_directive(text)


def test_directive_names_cover_each_transition_target() -> None:
    assert directive_names() == (
        "build",
        "transition-today",
        "transition-tomorrow",
        "transition-day_after_tomorrow",
        "delete",
    )
