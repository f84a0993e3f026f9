"""Core building blocks for the foundrylog package."""
from foundrylog.core.logging import configure_logging
from foundrylog.core.models import EnrichedRecord, Material, RawRecord, RoundingMode
from foundrylog.core.settings import Settings, SettingsError

__all__ = [
    "configure_logging",
    "EnrichedRecord",
    "Material",
    "RawRecord",
    "RoundingMode",
    "Settings",
    "SettingsError",
]
