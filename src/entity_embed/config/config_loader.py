"""
Configuration loader for the entity embedding trainer.
"""

import copy
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import find_dotenv, load_dotenv

from ..core.exceptions import EmbedConfigError
from ..runner.shard_runner import RunnerConfig


logger = logging.getLogger(__name__)

VECTOR_FORMATS = ("auto", "text", "binary")

DEFAULT_CONFIG: Dict[str, Any] = {
    "input": {
        "corpus": None,
        "vectors": None,
        "vector_format": "auto",
    },
    "output": {
        "prefix": None,
        "merge": False,
        "flush_every": 1000,
    },
    "training": {
        "rho": -1,
        "max_words_per_entity": -1,
        "regularization": 10.0,
        "max_iterations": 50000,
        "tolerance": 1.0e-5,
        "seed": 1234,
    },
    "runner": {
        "workers": 8,
        "timeout_seconds": 48 * 3600,
        "progress_every": 10000,
    },
    "logging": {
        "level": "INFO",
        "structured": False,
    },
}

# Environment variable -> (section, key, type)
ENV_OVERRIDES = {
    "EMBED_CORPUS": ("input", "corpus", str),
    "EMBED_VECTORS": ("input", "vectors", str),
    "EMBED_VECTOR_FORMAT": ("input", "vector_format", str),
    "EMBED_OUTPUT": ("output", "prefix", str),
    "EMBED_WORKERS": ("runner", "workers", int),
    "EMBED_TIMEOUT_SECONDS": ("runner", "timeout_seconds", float),
    "EMBED_SEED": ("training", "seed", int),
    "EMBED_LOG_LEVEL": ("logging", "level", str),
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class EmbedConfig:
    """
    Configuration for the embedding trainer.

    Loads an optional YAML file over built-in defaults, then applies
    ``EMBED_*`` environment overrides. A ``.env`` file in the working
    directory is loaded first; variables already set in the shell win.
    """

    def __init__(self, config_path: Optional[Path] = None, load_env_file: bool = True):
        """
        Initialize configuration.

        Args:
            config_path: Path to YAML config file (optional)
            load_env_file: Whether to read a local .env file
        """
        self.config_path = Path(config_path) if config_path else None
        if load_env_file:
            env_file = find_dotenv(usecwd=True)
            if env_file:
                load_dotenv(env_file, override=False)
        loaded = self._load_config() if self.config_path else {}
        self.config = _merge(DEFAULT_CONFIG, loaded)
        self._apply_env_overrides()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise EmbedConfigError(f"Config file not found: {self.config_path}")

        logger.info(f"Loading config from: {self.config_path}")

        with open(self.config_path, "r", encoding="utf-8") as f:
            try:
                config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise EmbedConfigError(f"Invalid YAML in {self.config_path}: {e}")

        if config is None:
            return {}
        if not isinstance(config, dict):
            raise EmbedConfigError(
                f"Config root must be a mapping, got {type(config).__name__}"
            )
        return config

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides to loaded config."""
        for env_name, (section, key, cast) in ENV_OVERRIDES.items():
            raw = os.environ.get(env_name)
            if raw is None or raw.strip() == "":
                continue
            try:
                value = cast(raw)
            except ValueError:
                raise EmbedConfigError(f"Invalid value for {env_name}: {raw!r}")
            self.config.setdefault(section, {})[key] = value
            logger.debug(f"Applied override {env_name}={raw}")

    def get_input_config(self) -> Dict[str, Any]:
        return self.config.get("input", {})

    def get_output_config(self) -> Dict[str, Any]:
        return self.config.get("output", {})

    def get_training_config(self) -> Dict[str, Any]:
        return self.config.get("training", {})

    def get_runner_config(self) -> Dict[str, Any]:
        return self.config.get("runner", {})

    def get_logging_config(self) -> Dict[str, Any]:
        return self.config.get("logging", {})

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dotted key, e.g. ``runner.workers``."""
        keys = key.split(".")
        value = self.config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

        return value if value is not None else default

    def to_settings(self) -> "TrainSettings":
        """Resolve the configuration into flat training settings."""
        inp = self.get_input_config()
        out = self.get_output_config()
        training = self.get_training_config()
        runner = self.get_runner_config()

        timeout = runner.get("timeout_seconds")
        return TrainSettings(
            corpus=Path(inp["corpus"]) if inp.get("corpus") else None,
            vectors=Path(inp["vectors"]) if inp.get("vectors") else None,
            output=Path(out["prefix"]) if out.get("prefix") else None,
            vector_format=inp.get("vector_format", "auto"),
            merge=bool(out.get("merge", False)),
            flush_every=int(out.get("flush_every", 1000)),
            rho=int(training.get("rho", -1)),
            max_words_per_entity=int(training.get("max_words_per_entity", -1)),
            regularization=float(training.get("regularization", 10.0)),
            max_iterations=int(training.get("max_iterations", 50000)),
            tolerance=float(training.get("tolerance", 1.0e-5)),
            seed=int(training.get("seed", 1234)),
            workers=int(runner.get("workers", 8)),
            timeout_seconds=float(timeout) if timeout is not None else None,
            progress_every=int(runner.get("progress_every", 10000)),
        )


@dataclass
class TrainSettings:
    """
    Fully resolved settings for one training run.

    Every boundary parameter is independently settable; ``validate`` must
    pass before any work starts.
    """
    corpus: Optional[Path] = None
    vectors: Optional[Path] = None
    output: Optional[Path] = None
    vector_format: str = "auto"
    merge: bool = False
    flush_every: int = 1000
    rho: int = -1
    max_words_per_entity: int = -1
    regularization: float = 10.0
    max_iterations: int = 50000
    tolerance: float = 1.0e-5
    seed: int = 1234
    workers: int = 8
    timeout_seconds: Optional[float] = 48 * 3600
    progress_every: int = 10000

    def validate(self) -> None:
        """
        Check required paths and value ranges.

        Raises:
            EmbedConfigError: On the first invalid setting found
        """
        if self.corpus is None:
            raise EmbedConfigError("Input corpus path is required")
        if not Path(self.corpus).is_file():
            raise EmbedConfigError(f"Input corpus not found: {self.corpus}")
        if self.vectors is None:
            raise EmbedConfigError("Word vector path is required")
        if not Path(self.vectors).is_file():
            raise EmbedConfigError(f"Word vector file not found: {self.vectors}")
        if self.output is None:
            raise EmbedConfigError("Output path is required")
        if self.vector_format not in VECTOR_FORMATS:
            raise EmbedConfigError(
                f"vector_format must be one of {VECTOR_FORMATS}, got {self.vector_format!r}"
            )
        if self.workers < 1:
            raise EmbedConfigError(f"workers must be >= 1, got {self.workers}")
        if self.max_iterations < 1:
            raise EmbedConfigError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if self.tolerance < 0:
            raise EmbedConfigError(f"tolerance must be >= 0, got {self.tolerance}")
        if self.regularization < 0:
            raise EmbedConfigError(f"regularization must be >= 0, got {self.regularization}")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise EmbedConfigError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")
        if self.flush_every < 1:
            raise EmbedConfigError(f"flush_every must be >= 1, got {self.flush_every}")

    def binary_vectors(self) -> Optional[bool]:
        """Translate ``vector_format`` into the loader's ``binary`` flag."""
        if self.vector_format == "auto":
            return None
        return self.vector_format == "binary"

    def to_runner_config(self) -> RunnerConfig:
        return RunnerConfig(
            workers=self.workers,
            rho=self.rho,
            max_words_per_entity=self.max_words_per_entity,
            seed=self.seed,
            regularization=self.regularization,
            max_iterations=self.max_iterations,
            tolerance=self.tolerance,
            timeout_seconds=self.timeout_seconds,
            flush_every=self.flush_every,
            progress_every=self.progress_every,
        )
