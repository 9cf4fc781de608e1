from __future__ import annotations

import logging
import os
import random
from collections.abc import Mapping
from dataclasses import dataclass

from .ledger import MAX_LIVES

SEED_ENV = "ARITH_DEFENSE_SEED"
LIVES_ENV = "ARITH_DEFENSE_LIVES"
FPS_ENV = "ARITH_DEFENSE_FPS"
LOG_LEVEL_ENV = "ARITH_DEFENSE_LOG_LEVEL"

WINDOW_SIZE = (540, 900)
TARGET_FPS = 60


@dataclass(frozen=True, slots=True)
class DefenseConfig:
    seed: int
    starting_lives: int = MAX_LIVES
    max_input_length: int = 3
    target_fps: int = TARGET_FPS
    window_size: tuple[int, int] = WINDOW_SIZE
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if not 1 <= self.starting_lives <= MAX_LIVES:
            raise ValueError(f"starting_lives must be in 1..{MAX_LIVES}")
        if self.max_input_length <= 0:
            raise ValueError("max_input_length must be > 0")
        if self.target_fps <= 0:
            raise ValueError("target_fps must be > 0")
        if self.window_size[0] <= 0 or self.window_size[1] <= 0:
            raise ValueError("window_size must be positive")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"unknown log level: {self.log_level}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "DefenseConfig":
        env = os.environ if environ is None else environ

        raw_seed = env.get(SEED_ENV, "").strip()
        seed = _parse_int(SEED_ENV, raw_seed) if raw_seed else new_seed()

        kwargs: dict[str, object] = {"seed": seed}
        raw_lives = env.get(LIVES_ENV, "").strip()
        if raw_lives:
            kwargs["starting_lives"] = _parse_int(LIVES_ENV, raw_lives)
        raw_fps = env.get(FPS_ENV, "").strip()
        if raw_fps:
            kwargs["target_fps"] = _parse_int(FPS_ENV, raw_fps)
        raw_level = env.get(LOG_LEVEL_ENV, "").strip()
        if raw_level:
            kwargs["log_level"] = raw_level.upper()
        return cls(**kwargs)  # type: ignore[arg-type]


def new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
