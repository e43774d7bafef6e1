"""Configuration loader with Pydantic validation and env var expansion."""

import logging
import os
import re
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, model_validator

from ..research.evaluator import (
    HIGH_SATISFACTION,
    HIGH_WORD_THRESHOLD,
    INSUFFICIENT_CONTENT_MESSAGE,
    LOW_SATISFACTION,
    LOW_WORD_THRESHOLD,
    MEDIUM_SATISFACTION,
    NEED_MORE_DETAIL_MESSAGE,
)
from ..settings import PROVIDER_TIMEOUT, READER_MAX_CHARS, SEARXNG_LANGUAGE, SEARXNG_URL

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "profiles.yaml"
DEFAULT_PROFILE = "dev"


class SearchConfig(BaseModel):
    """Configuration for the search provider."""

    backend: Literal["searxng", "mock"] = "searxng"
    url: str | None = None
    language: str | None = None
    timeout: float = 15.0


class ReaderConfig(BaseModel):
    """Configuration for the content reader."""

    backend: Literal["http", "mock"] = "http"
    timeout: float = 15.0
    max_chars: int = READER_MAX_CHARS
    words_per_page: int = 320  # mock backend only


class PlannerConfig(BaseModel):
    """Configuration for the planner."""

    default_breadth: int = Field(6, ge=1)
    breadth_limits: dict[str, int] = Field(
        default_factory=lambda: {"narrow": 4, "standard": 6, "massive": 12}
    )
    refinement_suffix: str = "detailed analysis"


class EvaluatorConfig(BaseModel):
    """Thresholds and scores for the word-count evaluator."""

    low_word_threshold: int = LOW_WORD_THRESHOLD
    high_word_threshold: int = HIGH_WORD_THRESHOLD
    low_satisfaction: float = Field(LOW_SATISFACTION, ge=0, le=1)
    medium_satisfaction: float = Field(MEDIUM_SATISFACTION, ge=0, le=1)
    high_satisfaction: float = Field(HIGH_SATISFACTION, ge=0, le=1)
    insufficient_content_message: str = INSUFFICIENT_CONTENT_MESSAGE
    need_more_detail_message: str = NEED_MORE_DETAIL_MESSAGE


class SynthesizerConfig(BaseModel):
    """Configuration for the synthesizer."""

    max_sources: int = Field(3, ge=1)
    description_chars: int = Field(240, ge=20)


class LoopConfig(BaseModel):
    """Configuration for the research loop."""

    fast_iterations: int = Field(2, ge=1)
    deep_iterations: int = Field(4, ge=1)
    satisfaction_threshold: float = Field(0.85, ge=0, le=1)
    read_top_n: int = Field(2, ge=0)  # references deep-read per search step
    provider_timeout: float = Field(PROVIDER_TIMEOUT, gt=0)
    default_search_limit: int = Field(6, ge=1)

    @model_validator(mode="after")
    def _check_budgets(self) -> "LoopConfig":
        if self.deep_iterations < self.fast_iterations:
            raise ValueError("deep_iterations must be >= fast_iterations")
        return self


class ProfileConfig(BaseModel):
    """Configuration profile containing all component configs."""

    search: SearchConfig = SearchConfig()
    reader: ReaderConfig = ReaderConfig()
    planner: PlannerConfig = PlannerConfig()
    evaluator: EvaluatorConfig = EvaluatorConfig()
    synthesizer: SynthesizerConfig = SynthesizerConfig()
    loop: LoopConfig = LoopConfig()


class ConfigFile(BaseModel):
    """Root configuration file structure."""

    profiles: dict[str, ProfileConfig]


def expand_env_vars(value: str) -> str:
    """Expand ${VAR} references in string with environment variables.

    Args:
        value: String potentially containing env var references

    Returns:
        String with env vars expanded (unknown vars are left as-is)
    """
    if not isinstance(value, str):
        return value

    pattern = r"\$\{([^}]+)\}"

    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))

    return re.sub(pattern, replacer, value)


def expand_env_vars_recursive(data):
    """Recursively expand env vars in nested dict/list structures."""
    if isinstance(data, dict):
        return {k: expand_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [expand_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return expand_env_vars(data)
    else:
        return data


def load_config_from_yaml(config_path: Path, profile_name: str) -> ProfileConfig:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config YAML file
        profile_name: Name of profile to load

    Returns:
        ProfileConfig for the requested profile

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config is invalid
        KeyError: If profile doesn't exist
    """
    with open(config_path) as f:
        raw_data = yaml.safe_load(f) or {}

    expanded_data = expand_env_vars_recursive(raw_data)
    config_file = ConfigFile(**expanded_data)

    if profile_name not in config_file.profiles:
        available = ", ".join(config_file.profiles.keys())
        raise KeyError(
            f"Profile '{profile_name}' not found. " f"Available profiles: {available}"
        )

    return config_file.profiles[profile_name]


def list_profiles(config_path: Path | None = None) -> dict[str, ProfileConfig]:
    """Return every profile defined in the config file."""
    config_path = config_path or DEFAULT_CONFIG_PATH
    with open(config_path) as f:
        raw_data = yaml.safe_load(f) or {}
    return ConfigFile(**expand_env_vars_recursive(raw_data)).profiles


def load_config_from_env() -> ProfileConfig:
    """Load configuration from environment variables (fallback mode).

    Used when the config file is missing or invalid.
    """
    search = SearchConfig(
        backend=os.environ.get("LOOPER_SEARCH_BACKEND", "searxng"),
        url=os.environ.get("SEARXNG_URL", SEARXNG_URL),
        language=os.environ.get("SEARXNG_LANGUAGE", SEARXNG_LANGUAGE),
    )
    reader = ReaderConfig(
        backend=os.environ.get("LOOPER_READER_BACKEND", "http"),
    )

    return ProfileConfig(search=search, reader=reader)


def load_config(
    profile: str | None = None,
    config_path: Path | None = None,
) -> ProfileConfig:
    """Load configuration from YAML file or environment variables.

    Tries the YAML config file first and falls back to environment
    variables if the file doesn't exist or can't be loaded.

    Args:
        profile: Profile name to load. If None, uses LOOPER_PROFILE env var
                or "dev" as default.
        config_path: Path to config file. If None, uses the packaged
                    looper/config/profiles.yaml.

    Returns:
        ProfileConfig with all component configurations

    Raises:
        KeyError: If a profile named by argument or LOOPER_PROFILE is not
                 in the config file
    """
    explicit = profile is not None or "LOOPER_PROFILE" in os.environ
    if profile is None:
        profile = os.environ.get("LOOPER_PROFILE", DEFAULT_PROFILE)

    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if config_path.exists():
        try:
            return load_config_from_yaml(config_path, profile)
        except KeyError:
            if explicit:
                raise
            logger.warning(f"Profile '{profile}' not in {config_path}, using environment variables")
            return load_config_from_env()
        except Exception as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")
            logger.warning("Falling back to environment variables...")
            return load_config_from_env()
    else:
        logger.warning(f"Config file {config_path} not found, using environment variables")
        return load_config_from_env()
