"""
Configuration management for Codehint.
"""

import copy
import os
import yaml
import toml
import json
from pathlib import Path
from typing import Dict, Any, List, Optional
from pydantic import BaseModel, Field

from .constants import CONFIG_FILES, DEFAULT_CONFIG, DEFAULT_PROFILE_NAME, ANALYZABLE_EXTENSIONS
from .utils import logger, merge_dicts


class AnalysisConfig(BaseModel):
    """Analyzer and scheduler configuration."""
    debounce_interval_ms: int = Field(default=5000, ge=0)
    emit_placeholder: bool = Field(default=False)
    max_file_lines: int = Field(default=500, ge=1)
    max_method_lines: int = Field(default=50, ge=1)
    max_method_complexity: int = Field(default=10, ge=1)
    max_line_length: int = Field(default=120, ge=1)
    extensions: List[str] = Field(default_factory=lambda: list(ANALYZABLE_EXTENSIONS))


class LearningConfig(BaseModel):
    """Learning engine and profile persistence configuration."""
    profile_name: str = Field(default=DEFAULT_PROFILE_NAME)
    store_backend: str = Field(default="sqlite", pattern="^(sqlite|json)$")
    profile_path: Optional[str] = None


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO")


class CodehintConfig(BaseModel):
    """Main configuration model."""
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    learning: LearningConfig = Field(default_factory=LearningConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class Config:
    """Configuration manager for Codehint."""

    def __init__(self, config_file: Optional[str] = None):
        self.config_file = config_file
        self.config_data = self._load_config()
        self.config = CodehintConfig(**self.config_data)
        self._apply_environment_overrides()

    def _find_config_file(self) -> Optional[Path]:
        """Find configuration file in current directory or parent directories."""
        current_dir = Path.cwd()

        for parent in [current_dir] + list(current_dir.parents):
            for config_name in CONFIG_FILES:
                config_path = parent / config_name
                if config_path.exists():
                    logger.debug(f"Found config file: {config_path}")
                    return config_path

        return None

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file."""
        config = copy.deepcopy(DEFAULT_CONFIG)

        if self.config_file:
            config_path = Path(self.config_file)
        else:
            config_path = self._find_config_file()

        if not config_path or not config_path.exists():
            logger.debug("No config file found, using defaults")
            return config

        try:
            if config_path.suffix in ['.yaml', '.yml']:
                with open(config_path, 'r') as f:
                    file_config = yaml.safe_load(f) or {}
            elif config_path.suffix == '.toml':
                with open(config_path, 'r') as f:
                    file_config = toml.load(f)
            elif config_path.suffix == '.json':
                with open(config_path, 'r') as f:
                    file_config = json.load(f)
            else:
                logger.warning(f"Unknown config file format: {config_path}")
                return config

            if not isinstance(file_config, dict):
                logger.error(f"Config file {config_path} does not contain a mapping")
                return config

            config = merge_dicts(config, file_config)
            logger.info(f"Loaded config from: {config_path}")

        except (OSError, yaml.YAMLError, toml.TomlDecodeError, json.JSONDecodeError) as e:
            logger.error(f"Error loading config file: {e}")

        return config

    def _apply_environment_overrides(self):
        """Apply environment variable overrides to configuration."""
        log_level = os.getenv('CODEHINT_LOG_LEVEL')
        if log_level:
            self.config.logging.level = log_level

        profile_path = os.getenv('CODEHINT_PROFILE_PATH')
        if profile_path:
            self.config.learning.profile_path = profile_path

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot-notation key."""
        keys = key.split('.')
        value = self.config_data

        try:
            for k in keys:
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any):
        """Set configuration value by dot-notation key."""
        keys = key.split('.')
        config_dict = self.config_data

        for k in keys[:-1]:
            if k not in config_dict:
                config_dict[k] = {}
            config_dict = config_dict[k]

        config_dict[keys[-1]] = value

        # Recreate config object
        self.config = CodehintConfig(**self.config_data)

    def save(self, path: Optional[str] = None):
        """Save configuration to file."""
        if path:
            save_path = Path(path)
        else:
            save_path = Path(self.config_file or '.codehint.yaml')

        if save_path.suffix in ['.yaml', '.yml']:
            with open(save_path, 'w') as f:
                yaml.dump(self.config_data, f, default_flow_style=False)
        elif save_path.suffix == '.toml':
            with open(save_path, 'w') as f:
                toml.dump(self.config_data, f)
        elif save_path.suffix == '.json':
            with open(save_path, 'w') as f:
                json.dump(self.config_data, f, indent=2)
        else:
            # Default to YAML
            save_path = save_path.with_suffix('.yaml')
            with open(save_path, 'w') as f:
                yaml.dump(self.config_data, f, default_flow_style=False)

        logger.info(f"Configuration saved to: {save_path}")
        return save_path

    def validate(self) -> bool:
        """Validate configuration."""
        try:
            CodehintConfig(**self.config_data)
            return True
        except ValueError as e:
            logger.error(f"Configuration validation failed: {e}")
            return False

    @property
    def analysis(self) -> AnalysisConfig:
        return self.config.analysis

    @property
    def learning(self) -> LearningConfig:
        return self.config.learning
