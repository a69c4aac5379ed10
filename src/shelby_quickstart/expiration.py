"""Blob lifetimes offered by the uploaders."""
import random
import time
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

MICROS_PER_SECOND = 1_000_000
_MINUTE = 60 * MICROS_PER_SECOND
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR


@dataclass(frozen=True)
class ExpirationChoice:
    label: str
    micros: int


EXPIRATION_CHOICES: Tuple[ExpirationChoice, ...] = (
    ExpirationChoice("1 minute", _MINUTE),
    ExpirationChoice("1 hour", _HOUR),
    ExpirationChoice("1 day", _DAY),
    ExpirationChoice("1 week", 7 * _DAY),
    ExpirationChoice("1 month", 30 * _DAY),
    ExpirationChoice("1 year", 365 * _DAY),
)


def choose_expiration(rng: Optional[random.Random] = None,
                      choices: Sequence[ExpirationChoice] = EXPIRATION_CHOICES) -> ExpirationChoice:
    return (rng or random).choice(list(choices))


def find_expiration(label: str, choices: Sequence[ExpirationChoice] = EXPIRATION_CHOICES) -> ExpirationChoice:
    """Look up a choice by label, case-insensitively ("1 week", "1-week" and "week" all match)."""
    wanted = label.strip().lower().replace("-", " ")
    for choice in choices:
        if wanted in (choice.label, choice.label.split(" ", 1)[1]):
            return choice
    raise ValueError(f"Unknown expiration {label!r}; expected one of: "
                     + ", ".join(c.label for c in choices))


def now_micros() -> int:
    return time.time_ns() // 1000


def expiration_micros(choice: ExpirationChoice, now: Optional[int] = None) -> int:
    """Absolute expiration: now (microseconds since the epoch) plus the choice's duration."""
    return (now_micros() if now is None else now) + choice.micros


def format_duration(micros: int) -> str:
    """Verbose rendering of a duration, e.g. ``1 day 2 hours``."""
    seconds = micros // MICROS_PER_SECOND
    if seconds <= 0:
        return "0 seconds"
    parts = []
    for name, size in (("day", 86400), ("hour", 3600), ("minute", 60), ("second", 1)):
        count, seconds = divmod(seconds, size)
        if count:
            parts.append(f"{count} {name}" + ("" if count == 1 else "s"))
    return " ".join(parts)
