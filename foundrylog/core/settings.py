"""Validated, immutable classification settings."""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from numbers import Real
from typing import Any, Iterable, Tuple

from foundrylog.core.models import RoundingMode
from foundrylog.core.utils import get_config_value

DEFAULT_TEMP_BUCKETS: Tuple[float, ...] = (570.0, 610.0, 650.0)


class SettingsError(ValueError):
    """Raised when a configuration value is rejected before processing."""


def _finite(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (Real, str)):
        raise SettingsError(f"{name} must be a number, got {value!r}")
    try:
        number = float(value)
    except ValueError as exc:
        raise SettingsError(f"{name} must be a number, got {value!r}") from exc
    if not math.isfinite(number):
        raise SettingsError(f"{name} must be finite, got {value!r}")
    return number


@dataclass(frozen=True)
class Settings:
    """Rounding and classification rules applied to every record.

    Instances are hashable so derived results can be cached per settings value.
    ``tombak_band`` sets the width of the Tombak range directly below
    ``tombak_threshold``: alloy values in ``[threshold - band, threshold)`` are
    Tombak, lower values are Messing.
    """

    rounding_mode: RoundingMode = RoundingMode.STANDARD
    tombak_threshold: float = 85.0
    tombak_band: float = 15.0
    temp_buckets: Tuple[float, ...] = field(default=DEFAULT_TEMP_BUCKETS)
    temp_tolerance: float = 5.0
    precision: int = 2
    weight_dot_thousands: bool = False

    def __post_init__(self) -> None:
        try:
            mode = RoundingMode.parse(self.rounding_mode)
        except ValueError as exc:
            raise SettingsError(str(exc)) from exc
        object.__setattr__(self, "rounding_mode", mode)

        object.__setattr__(self, "tombak_threshold", _finite("tombak_threshold", self.tombak_threshold))

        band = _finite("tombak_band", self.tombak_band)
        if band < 0:
            raise SettingsError(f"tombak_band must not be negative, got {band}")
        object.__setattr__(self, "tombak_band", band)

        tolerance = _finite("temp_tolerance", self.temp_tolerance)
        if tolerance < 0:
            raise SettingsError(f"temp_tolerance must not be negative, got {tolerance}")
        object.__setattr__(self, "temp_tolerance", tolerance)

        buckets = tuple(_finite("temp_buckets", value) for value in self._as_iterable(self.temp_buckets))
        if not buckets:
            raise SettingsError("temp_buckets must contain at least one temperature")
        if any(later <= earlier for earlier, later in zip(buckets, buckets[1:])):
            raise SettingsError(f"temp_buckets must be strictly ascending, got {list(buckets)}")
        object.__setattr__(self, "temp_buckets", buckets)

        if isinstance(self.precision, bool) or not isinstance(self.precision, int) or self.precision < 0:
            raise SettingsError(f"precision must be a non-negative integer, got {self.precision!r}")

        if not isinstance(self.weight_dot_thousands, bool):
            raise SettingsError(f"weight_dot_thousands must be a boolean, got {self.weight_dot_thousands!r}")

    @staticmethod
    def _as_iterable(value: Any) -> Iterable[Any]:
        if isinstance(value, (str, bytes)) or not hasattr(value, "__iter__"):
            raise SettingsError(f"temp_buckets must be a sequence of numbers, got {value!r}")
        return value

    @property
    def messing_below(self) -> float:
        """Alloy values below this bound classify as Messing."""

        return self.tombak_threshold - self.tombak_band

    def replace(self, **changes: Any) -> "Settings":
        """Return a validated copy with the given fields changed."""

        return replace(self, **changes)

    @classmethod
    def from_config(cls) -> "Settings":
        """Read defaults from Streamlit secrets or ``FOUNDRY_*`` environment variables."""

        defaults = cls()
        buckets_raw = get_config_value("FOUNDRY_TEMP_BUCKETS", "")
        buckets: Any = defaults.temp_buckets
        if buckets_raw.strip():
            buckets = [part.strip() for part in buckets_raw.split(",") if part.strip()]
        return cls(
            rounding_mode=get_config_value("FOUNDRY_ROUNDING_MODE", defaults.rounding_mode.value),
            tombak_threshold=get_config_value("FOUNDRY_TOMBAK_THRESHOLD", str(defaults.tombak_threshold)),
            tombak_band=get_config_value("FOUNDRY_TOMBAK_BAND", str(defaults.tombak_band)),
            temp_buckets=buckets,
            temp_tolerance=get_config_value("FOUNDRY_TEMP_TOLERANCE", str(defaults.temp_tolerance)),
            weight_dot_thousands=get_config_value("FOUNDRY_WEIGHT_DOT_THOUSANDS", "").strip().lower()
            in {"1", "true", "yes"},
        )
