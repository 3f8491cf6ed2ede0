import yaml
import logging
from typing import List, Optional, Dict, Any
from pathlib import Path
from pydantic import BaseModel, Field, field_validator, model_validator

# Default configuration values
DEFAULT_CONFIG_PATH = "codeparity.config.yaml"
DEFAULT_IGNORED_PATTERNS = ["vendor", "node_modules", "target", "bin", "obj", "build", "dist",
                            "__pycache__", "venv", ".venv", "env", "testdata"]
DEFAULT_THRESHOLD = 0.95
DEFAULT_MAX_ITERATIONS = 5
DEFAULT_STUCK_THRESHOLD = 0.02
DEFAULT_STUCK_WINDOW = 3
DEFAULT_STRATEGY = "balanced"
DEFAULT_STRUCTURAL_WEIGHT = 0.20
DEFAULT_TYPE_WEIGHT = 0.25
DEFAULT_BEHAVIORAL_WEIGHT = 0.35
DEFAULT_TEST_WEIGHT = 0.15
DEFAULT_IDIOMATIC_WEIGHT = 0.05

STRATEGIES = ("spec-first", "code-first", "balanced", "adaptive")


class DimensionWeights(BaseModel):
    """
    Weights of the five parity dimensions.

    Weights are expected to sum to 1.0; other configurations are accepted
    with a warning.
    """
    structural: float = Field(default=DEFAULT_STRUCTURAL_WEIGHT, ge=0.0, le=1.0)
    type: float = Field(default=DEFAULT_TYPE_WEIGHT, ge=0.0, le=1.0)
    behavioral: float = Field(default=DEFAULT_BEHAVIORAL_WEIGHT, ge=0.0, le=1.0)
    test: float = Field(default=DEFAULT_TEST_WEIGHT, ge=0.0, le=1.0)
    idiomatic: float = Field(default=DEFAULT_IDIOMATIC_WEIGHT, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def warn_unbalanced(self):
        total = self.total()
        if abs(total - 1.0) > 1e-6:
            logging.warning(f"Dimension weights sum to {total:.3f}, expected 1.0")
        return self

    def total(self) -> float:
        return self.structural + self.type + self.behavioral + self.test + self.idiomatic


class ComparisonConfig(BaseModel):
    weights: DimensionWeights = Field(default_factory=DimensionWeights)
    threshold: float = Field(default=DEFAULT_THRESHOLD, ge=0.0, le=1.0)
    strict: bool = False
    ignore_private: bool = True


class LoopConfig(BaseModel):
    threshold: float = Field(default=DEFAULT_THRESHOLD, ge=0.0, le=1.0)
    max_iterations: int = Field(default=DEFAULT_MAX_ITERATIONS, ge=1)
    stuck_threshold: float = Field(default=DEFAULT_STUCK_THRESHOLD, ge=0.0)
    stuck_window: int = Field(default=DEFAULT_STUCK_WINDOW, ge=2)
    strategy: str = Field(default=DEFAULT_STRATEGY)

    @field_validator('strategy')
    @classmethod
    def check_strategy(cls, v):
        if v not in STRATEGIES:
            raise ValueError(f"strategy must be one of {', '.join(STRATEGIES)}")
        return v


class CodeParityConfig(BaseModel):
    """
    Central configuration model for code_parity.
    """
    source_language: Optional[str] = None
    target_languages: List[str] = Field(default_factory=list)
    ignored_patterns: List[str] = Field(default_factory=lambda: list(DEFAULT_IGNORED_PATTERNS))
    include_tests: bool = False
    comparison: ComparisonConfig = Field(default_factory=ComparisonConfig)
    loop: LoopConfig = Field(default_factory=LoopConfig)

    @model_validator(mode="after")
    def warn_threshold_mismatch(self):
        if self.comparison.threshold != self.loop.threshold:
            logging.warning(f"comparison.threshold ({self.comparison.threshold}) differs from loop.threshold "
                            f"({self.loop.threshold}); loop convergence uses loop.threshold")
        return self

    # Allow extra fields for flexibility
    class Config:
        extra = "allow"


def load_config(
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None
) -> CodeParityConfig:
    """
    Load configuration from file and overrides.

    Priority:
    1. Overrides (if provided and not None)
    2. Config File (if provided or found at default path)
    3. Default Values

    Nested sections ('comparison', 'loop', 'comparison.weights') are merged
    key by key, so an override of a single weight keeps the file's others.

    Args:
        config_path: Path to the YAML config file. If None, tries 'codeparity.config.yaml'.
        overrides: Dictionary of values overriding the file.

    Returns:
        CodeParityConfig: The resolved configuration object.
    """
    config_data: Dict[str, Any] = {}

    target_path = config_path if config_path else DEFAULT_CONFIG_PATH
    path_obj = Path(target_path)

    if path_obj.exists() and path_obj.is_file():
        try:
            with open(path_obj, 'r', encoding='utf-8') as f:
                file_data = yaml.safe_load(f)
                if file_data:
                    config_data.update(file_data)
            logging.info(f"Loaded configuration from {target_path}")
        except (OSError, yaml.YAMLError) as e:
            logging.warning(f"Failed to load config file {target_path}: {e}")
    elif config_path:
        logging.warning(f"Config file not found at explicit path: {config_path}")
    else:
        logging.info(f"No config file found at {DEFAULT_CONFIG_PATH}, using defaults.")

    if overrides:
        _merge(config_data, {k: v for k, v in overrides.items() if v is not None})

    return CodeParityConfig(**config_data)


def _merge(base: Dict[str, Any], updates: Dict[str, Any]) -> None:
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
