"""
books_config -- configuration entrypoint.

Responsibility:
    Provides the engine configuration: the packaged default through
    ``get_default_config()`` or any YAML file through
    ``load_engine_config(path)``.

Architecture position:
    Configuration -- sits above ``books_kernel`` and ``books_engines`` and
    below ``books_services`` / ``books_modules``.  The kernel MUST NEVER
    import from ``books_config``.

Failure modes:
    - ``FileNotFoundError`` / ``yaml.YAMLError`` / ``ValueError`` /
      ``KeyError`` from the loader (see ``books_config.loader``).
"""

from __future__ import annotations

import functools
from pathlib import Path

from books_config.loader import compute_checksum, load_engine_config, load_yaml_file
from books_config.schema import (
    AccountSpec,
    AccountTemplate,
    EngineConfig,
    EngineSettings,
    NegativeFormat,
    PostingConventions,
    Tolerances,
)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "engine.yaml"


@functools.lru_cache(maxsize=1)
def get_default_config() -> EngineConfig:
    """The packaged default configuration (parsed once)."""
    return load_engine_config(DEFAULT_CONFIG_PATH)


__all__ = [
    "AccountSpec",
    "AccountTemplate",
    "DEFAULT_CONFIG_PATH",
    "EngineConfig",
    "EngineSettings",
    "NegativeFormat",
    "PostingConventions",
    "Tolerances",
    "compute_checksum",
    "get_default_config",
    "load_engine_config",
    "load_yaml_file",
]
