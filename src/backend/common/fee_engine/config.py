from __future__ import annotations

import keyword
import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_DECIMAL_PRECISION = 28
DEFAULT_NULL_NAMES = ["null", "nil"]


class FeeEngineSettings(BaseModel):
    enable_log: bool = False
    # Significant digits kept by div() inside rules. add/sub/mul/neg and per-currency totals are exact.
    decimal_precision: int = Field(default=DEFAULT_DECIMAL_PRECISION, ge=1)
    # Names bound to None inside rule expressions (`emit(...) if cond else nil`).
    null_names: List[str] = Field(default_factory=lambda: list(DEFAULT_NULL_NAMES))


def load_settings() -> FeeEngineSettings:
    """
    Load engine settings from the environment (and a `.env` file, if present).

    Reads:
      FEE_ENGINE_ENABLE_LOG, FEE_ENGINE_DECIMAL_PRECISION,
      FEE_ENGINE_NULL_NAMES (comma-separated identifiers)
    """
    load_dotenv()
    return FeeEngineSettings(
        enable_log=_env_bool("FEE_ENGINE_ENABLE_LOG", False),
        decimal_precision=_env_int("FEE_ENGINE_DECIMAL_PRECISION", DEFAULT_DECIMAL_PRECISION),
        null_names=_env_names("FEE_ENGINE_NULL_NAMES", DEFAULT_NULL_NAMES),
    )


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"{name} must be a boolean (true/false), got {raw!r}.")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}.") from exc
    if value < 1:
        raise ValueError(f"{name} must be >= 1, got {value}.")
    return value


def _env_names(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return list(default)
    names = [part.strip() for part in raw.split(",") if part.strip()]
    invalid = [n for n in names if not n.isidentifier() or keyword.iskeyword(n)]
    if invalid:
        raise ValueError(f"{name} must list identifiers, got {', '.join(invalid)}.")
    return names
