"""
Environment parsing for sdrscan.

All SDRSCAN_* environment variables are read here. Callers receive an
EnvConfig snapshot instead of reading os.environ directly.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional


def _str_env(env: Mapping[str, str], name: str, default: Optional[str]) -> Optional[str]:
    val = env.get(name)
    if val is None or not val.strip():
        return default
    return val.strip()


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    """Parse an integer from environment, returning default on missing/invalid."""
    val = env.get(name)
    if not val:
        return default
    try:
        return max(1, int(float(val)))
    except ValueError:
        return default


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    """Parse a float from environment, returning default on missing/invalid."""
    val = env.get(name)
    if not val:
        return default
    try:
        return float(val)
    except ValueError:
        return default


DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 7356
DEFAULT_LOCATION = "United States"
DEFAULT_RECORD_DIR = "/tmp"

AI_ENGINES = ("openai", "ollama", "grok")

# Default endpoints per analysis engine.
AI_DEFAULT_URLS = {
    "openai": "https://api.openai.com/v1",
    "grok": "https://api.x.ai/v1",
    "ollama": "http://127.0.0.1:11434",
}

AI_DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "grok": "grok-3-mini",
    "ollama": "llama3.1",
}


@dataclass(frozen=True)
class EnvConfig:
    host: str = DEFAULT_HOST
    """gqrx remote-control host."""

    port: int = DEFAULT_PORT
    """gqrx remote-control TCP port."""

    location: str = DEFAULT_LOCATION
    """Free-text location hint forwarded to the analysis collaborator."""

    record_dir: str = DEFAULT_RECORD_DIR
    """Directory where gqrx writes its recordings."""

    ai_engine: Optional[str] = None
    """Analysis engine (openai, ollama, grok); None disables analysis."""

    ai_url: Optional[str] = None
    ai_model: Optional[str] = None
    ai_key: Optional[str] = None
    ai_timeout_s: float = 30.0

    @property
    def analysis_enabled(self) -> bool:
        return self.ai_engine in AI_ENGINES


def load_env_config(env: Optional[Mapping[str, str]] = None) -> EnvConfig:
    """Snapshot SDRSCAN_* variables from ``env`` (defaults to os.environ)."""

    if env is None:
        env = os.environ
    engine = _str_env(env, "SDRSCAN_AI_ENGINE", None)
    if engine is not None:
        engine = engine.lower()
        if engine not in AI_ENGINES:
            engine = None
    return EnvConfig(
        host=_str_env(env, "SDRSCAN_HOST", DEFAULT_HOST) or DEFAULT_HOST,
        port=_int_env(env, "SDRSCAN_PORT", DEFAULT_PORT),
        location=_str_env(env, "SDRSCAN_LOCATION", DEFAULT_LOCATION) or DEFAULT_LOCATION,
        record_dir=_str_env(env, "SDRSCAN_RECORD_DIR", DEFAULT_RECORD_DIR) or DEFAULT_RECORD_DIR,
        ai_engine=engine,
        ai_url=_str_env(env, "SDRSCAN_AI_URL", AI_DEFAULT_URLS.get(engine or "")),
        ai_model=_str_env(env, "SDRSCAN_AI_MODEL", AI_DEFAULT_MODELS.get(engine or "")),
        ai_key=_str_env(env, "SDRSCAN_AI_KEY", None),
        ai_timeout_s=_float_env(env, "SDRSCAN_AI_TIMEOUT", 30.0),
    )
