"""
settings_loader.py

Configuration management for densecluster.
Loads and validates settings from YAML configuration with environment variable substitution.

Features:
- YAML configuration loading with validation
- Environment variable substitution (${VAR_NAME} syntax)
- Singleton pattern for global settings access
- Type-safe configuration with Pydantic models
- Default values and validation
"""

import os
import re
import yaml
import logging
from typing import Any, Optional
from pydantic import BaseModel, Field, ValidationError, field_validator
from pathlib import Path

from densecluster.core.metrics import METRICS
from densecluster.core.normalization import FeatureNormalization
from densecluster.schemas.data_models import ClusterAlgorithm

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models (Pydantic)
# =============================================================================

class DBSCANSettings(BaseModel):
    """DBSCAN clustering algorithm settings."""
    eps: float = Field(default=0.5, gt=0.0, description="Neighborhood radius")
    min_pts: int = Field(default=5, ge=1, description="Minimum neighborhood size for a core point")
    metric: str = Field(default="euclidean", description="Distance metric")
    scale: bool = Field(default=False, description="Normalize columns before clustering")
    normalizer: FeatureNormalization = Field(default=FeatureNormalization.STANDARD_SCALE, description="Column normalizer")

    @field_validator("metric")
    @classmethod
    def validate_metric(cls, v: str) -> str:
        if v.lower() not in METRICS:
            raise ValueError(f"metric must be one of {list(METRICS.keys())}")
        return v.lower()


class KMeansSettings(BaseModel):
    """K-Means clustering algorithm settings."""
    n_clusters: int = Field(default=8, ge=1, description="Number of clusters")
    n_init: int = Field(default=10, ge=1, description="Number of initializations")
    max_iter: int = Field(default=300, ge=1, description="Maximum iterations")
    metric: str = Field(default="euclidean", description="Distance metric (euclidean only)")
    scale: bool = Field(default=False, description="Normalize columns before clustering")
    normalizer: FeatureNormalization = Field(default=FeatureNormalization.STANDARD_SCALE, description="Column normalizer")


class ClusteringAlgorithmsSettings(BaseModel):
    """Algorithm-specific settings."""
    dbscan: DBSCANSettings = Field(default_factory=DBSCANSettings)
    kmeans: KMeansSettings = Field(default_factory=KMeansSettings)


class ClusteringSettings(BaseModel):
    """Main clustering configuration."""
    default_algorithm: ClusterAlgorithm = Field(default=ClusterAlgorithm.DBSCAN, description="Default clustering algorithm")
    algorithms: ClusteringAlgorithmsSettings = Field(default_factory=ClusteringAlgorithmsSettings)
    seed: Optional[int] = Field(default=None, description="Random seed")
    verbose: bool = Field(default=False, description="Emit model log events")

    @field_validator("default_algorithm", mode="before")
    @classmethod
    def normalize_algorithm(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v


class ParallelismSettings(BaseModel):
    """Intra-process parallelism configuration."""
    enabled: bool = Field(default=True, description="Allow thread-pool execution")
    max_workers: Optional[int] = Field(default=None, ge=1, description="Worker threads (null = all cores)")
    memory_headroom: float = Field(default=0.1, ge=0.0, lt=1.0, description="Fraction of memory kept free")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="console", description="Log format (json or console)")
    file: Optional[str] = Field(default=None, description="Optional log file path")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        if v.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError("level must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v.lower() not in ("json", "console"):
            raise ValueError("format must be 'json' or 'console'")
        return v.lower()

    @field_validator("file")
    @classmethod
    def validate_file(cls, v: Optional[str]) -> Optional[str]:
        # an unset ${LOG_FILE} substitutes to an empty string
        return v or None


class Settings(BaseModel):
    """Root configuration model."""
    clustering: ClusteringSettings = Field(default_factory=ClusteringSettings)
    parallelism: ParallelismSettings = Field(default_factory=ParallelismSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# =============================================================================
# Configuration Manager (Singleton)
# =============================================================================

class ConfigManager:
    """
    Singleton configuration manager that loads and caches settings.

    Features:
    - Loads YAML configuration from file
    - Substitutes environment variables using ${VAR_NAME} syntax
    - Validates configuration using Pydantic models
    - Provides global access to settings
    """

    _instance: Optional['ConfigManager'] = None
    _settings: Optional[Settings] = None

    def __new__(cls):
        """Ensure singleton pattern."""
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
        return cls._instance

    @classmethod
    def load_config(cls, config_path: Optional[str] = None) -> Settings:
        """
        Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to configuration file. If None, returns the cached
                settings or loads them from the default path. An explicit path
                is always read and replaces the cached settings.

        Returns:
            Settings object with validated configuration

        Raises:
            FileNotFoundError: If configuration file not found
            ValueError: If configuration is invalid
        """
        if config_path is None and cls._settings is not None:
            return cls._settings

        if config_path is None:
            possible_paths = [
                Path(os.getenv("DENSECLUSTER_CONFIG", "config/settings.yaml")),
                Path("config/settings.yaml"),
                Path(__file__).resolve().parents[2] / "config" / "settings.yaml",
            ]

            config_path_obj = None
            for path in possible_paths:
                if path.exists():
                    config_path_obj = path
                    break

            if config_path_obj is None:
                raise FileNotFoundError(
                    f"Configuration file not found in any of: {[str(p) for p in possible_paths]}"
                )
        else:
            config_path_obj = Path(config_path)
            if not config_path_obj.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")

        logger.info(f"Loading configuration from: {config_path_obj}")

        try:
            with open(config_path_obj, 'r') as f:
                raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Failed to load YAML configuration: {e}")
            raise ValueError(f"Invalid YAML configuration: {e}")

        config_dict = cls._substitute_env_vars(raw_config)

        try:
            cls._settings = Settings(**config_dict)
            logger.info("Configuration loaded and validated successfully")
            return cls._settings
        except (ValidationError, TypeError) as e:
            logger.error(f"Configuration validation failed: {e}")
            raise ValueError(f"Invalid configuration: {e}")

    @classmethod
    def get_settings(cls) -> Settings:
        """
        Get cached settings. Loads from default path if not already loaded.

        Returns:
            Settings object
        """
        if cls._settings is None:
            cls.load_config()
        return cls._settings

    @classmethod
    def _substitute_env_vars(cls, config: Any) -> Any:
        """
        Recursively substitute environment variables in configuration.

        Supports ${VAR_NAME} and ${VAR_NAME:default_value} syntax.

        Args:
            config: Configuration dictionary or value

        Returns:
            Configuration with substituted values
        """
        if isinstance(config, dict):
            return {k: cls._substitute_env_vars(v) for k, v in config.items()}
        elif isinstance(config, list):
            return [cls._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

            def replace_var(match):
                var_name = match.group(1)
                default_value = match.group(2) if match.group(2) is not None else ""
                return os.getenv(var_name, default_value)

            return re.sub(pattern, replace_var, config)
        else:
            return config

    @classmethod
    def reload_config(cls, config_path: Optional[str] = None) -> Settings:
        """
        Reload configuration from file.

        Args:
            config_path: Path to configuration file

        Returns:
            Reloaded Settings object
        """
        cls._settings = None
        return cls.load_config(config_path)

    @classmethod
    def reset(cls) -> None:
        """Forget cached settings."""
        cls._settings = None


# =============================================================================
# Convenience Functions
# =============================================================================

def get_settings() -> Settings:
    """
    Get application settings (convenience function).

    Returns:
        Settings object
    """
    return ConfigManager.get_settings()
