"""Configuration helpers for the foundrylog package."""
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def get_config_value(key: str, default: str = "") -> str:
    """Get configuration value from Streamlit secrets or environment variables.

    Checks Streamlit secrets first (for cloud deployment), then falls back
    to environment variables (for local development).
    """
    try:
        import streamlit as st
        if hasattr(st, "secrets") and key in st.secrets:
            return str(st.secrets[key])
    except (ImportError, FileNotFoundError, KeyError):
        pass

    return os.getenv(key, default)


def load_env_file(path: Path) -> None:
    """Load environment variables from a file if it exists.

    Variables already present in the environment win over the file.
    """
    if not path.exists():
        return

    try:
        with path.open(encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, value = line.split("=", 1)
                key = key.strip()
                if not key or key in os.environ:
                    continue
                os.environ[key] = value.strip().strip('"').strip("'")
    except OSError as exc:
        logger.debug("Could not load env file %s: %s", path, exc)
