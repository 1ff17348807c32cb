"""
Configuration

Frozen per-layer settings plus one unified config, all loadable from
the environment.

ENVIRONMENT:
    HEMISPHERE_DB_PATH          SQLite file for the reference store
    HEMISPHERE_LOG_LEVEL        DEBUG | INFO | WARNING | ERROR
    NARRATIVE_ENABLED           0/false/no disables the narrative call
    NARRATIVE_API_KEY           falls back to OPENAI_API_KEY
    NARRATIVE_BASE_URL          OpenAI-compatible API root
    NARRATIVE_MODEL             model id
    NARRATIVE_TIMEOUT_SECONDS   hard bound on the single call
    CORE_TRUTH_MODE             permissive | strict
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Mapping, Optional
import os

from narrative import DEFAULT_BASE_URL, DEFAULT_MODEL

from .core.centrality import CENTRAL_COUNT, DRIVER_COUNT
from .core.edges import (
    COOCCUR_SESSION_CAP,
    COOCCUR_STRENGTH,
    SIMILARITY_NODE_CAP,
    SIMILARITY_THRESHOLD,
)
from .ingestion.extractor import EVIDENCE_LIMIT, EVIDENCE_MIN_WORDS
from .synthesis.core_truth import MODE_PERMISSIVE, MODES

DEFAULT_DB_PATH = "data/hemisphere.db"

_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = env.get(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() not in _FALSE_VALUES


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    value = env.get(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")


@dataclass(frozen=True)
class GraphConfig:
    """Caps and thresholds for the core graph stages."""
    similarity_node_cap: int = SIMILARITY_NODE_CAP
    similarity_threshold: float = SIMILARITY_THRESHOLD
    cooccur_session_cap: int = COOCCUR_SESSION_CAP
    cooccur_strength: float = COOCCUR_STRENGTH
    driver_count: int = DRIVER_COUNT
    central_count: int = CENTRAL_COUNT
    evidence_limit: int = EVIDENCE_LIMIT
    evidence_min_words: int = EVIDENCE_MIN_WORDS


@dataclass(frozen=True)
class NarrativeConfig:
    """External narrative service settings."""
    enabled: bool = True
    api_key: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    timeout_seconds: float = 20.0
    temperature: float = 0.2
    max_tokens: int = 200
    mode: str = MODE_PERMISSIVE

    def __post_init__(self):
        if self.mode not in MODES:
            raise ValueError(f"CORE_TRUTH_MODE must be one of {MODES}, got {self.mode!r}")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

    @property
    def is_active(self) -> bool:
        return self.enabled and bool(self.api_key)

    @staticmethod
    def from_env(env: Optional[Mapping[str, str]] = None) -> NarrativeConfig:
        env = os.environ if env is None else env
        return NarrativeConfig(
            enabled=_env_bool(env, "NARRATIVE_ENABLED", True),
            api_key=env.get("NARRATIVE_API_KEY") or env.get("OPENAI_API_KEY") or None,
            base_url=env.get("NARRATIVE_BASE_URL") or DEFAULT_BASE_URL,
            model=env.get("NARRATIVE_MODEL") or DEFAULT_MODEL,
            timeout_seconds=_env_float(env, "NARRATIVE_TIMEOUT_SECONDS", 20.0),
            mode=(env.get("CORE_TRUTH_MODE") or MODE_PERMISSIVE).strip().lower(),
        )


@dataclass(frozen=True)
class StorageConfig:
    """Reference SQLite store location."""
    db_path: str = DEFAULT_DB_PATH

    @staticmethod
    def from_env(env: Optional[Mapping[str, str]] = None) -> StorageConfig:
        env = os.environ if env is None else env
        return StorageConfig(db_path=env.get("HEMISPHERE_DB_PATH") or DEFAULT_DB_PATH)


@dataclass
class HemisphereConfig:
    """Unified configuration for the whole engine."""
    graph: Optional[GraphConfig] = None
    narrative: Optional[NarrativeConfig] = None
    storage: Optional[StorageConfig] = None
    log_level: str = "INFO"

    def __post_init__(self):
        self.graph = self.graph or GraphConfig()
        self.narrative = self.narrative or NarrativeConfig()
        self.storage = self.storage or StorageConfig()

    @staticmethod
    def from_env(env: Optional[Mapping[str, str]] = None) -> HemisphereConfig:
        env = os.environ if env is None else env
        return HemisphereConfig(
            graph=GraphConfig(),
            narrative=NarrativeConfig.from_env(env),
            storage=StorageConfig.from_env(env),
            log_level=(env.get("HEMISPHERE_LOG_LEVEL") or "INFO").upper(),
        )
