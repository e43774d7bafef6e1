"""Configuration system for providers and the research loop."""

from .loader import (
    load_config,
    load_config_from_yaml,
    load_config_from_env,
    list_profiles,
    expand_env_vars,
    ProfileConfig,
    SearchConfig,
    ReaderConfig,
    PlannerConfig,
    EvaluatorConfig,
    SynthesizerConfig,
    LoopConfig,
    DEFAULT_CONFIG_PATH,
)
from .factory import (
    create_search_provider,
    create_content_reader,
    create_planner,
    create_evaluator,
    create_synthesizer,
    create_research_loop,
)

__all__ = [
    # Loader
    "load_config",
    "load_config_from_yaml",
    "load_config_from_env",
    "list_profiles",
    "expand_env_vars",
    "DEFAULT_CONFIG_PATH",
    "ProfileConfig",
    # Providers config
    "SearchConfig",
    "ReaderConfig",
    # Engine config
    "PlannerConfig",
    "EvaluatorConfig",
    "SynthesizerConfig",
    "LoopConfig",
    # Factory
    "create_search_provider",
    "create_content_reader",
    "create_planner",
    "create_evaluator",
    "create_synthesizer",
    "create_research_loop",
]
