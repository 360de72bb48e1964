"""
Configuration system for implgen

Provides configuration management with support for files and environment variables.
Includes validation, default value handling, and configuration merging.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from .errors import ImplgenError
from .synthesis.formatter import FORMATTER_CHOICES

logger = logging.getLogger(__name__)


class ConfigurationError(ImplgenError):
    """Raised when configuration validation fails."""

    pass


class ConfigurationManager:
    """Manages configuration loading, validation, and merging."""

    DEFAULT_CONFIG_PATHS = [
        "implgen.yaml",
        "implgen.yml",
        "implgen.json",
        ".implgen.yaml",
        ".implgen.yml",
        ".implgen.json",
    ]

    @staticmethod
    def find_config_file(search_paths: Optional[List[str]] = None) -> Optional[str]:
        """Find the first existing configuration file."""
        paths = search_paths or ConfigurationManager.DEFAULT_CONFIG_PATHS

        for path in paths:
            if os.path.exists(path):
                return path
        return None

    @staticmethod
    def load_config_file(config_path: str) -> Dict[str, Any]:
        """Load configuration from file (JSON or YAML)."""
        if not os.path.exists(config_path):
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                if config_path.endswith((".yaml", ".yml")):
                    data = yaml.safe_load(f) or {}
                else:
                    data = json.load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Invalid configuration file format: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Error reading configuration file: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {config_path}")
        return data

    @staticmethod
    def load_env_config() -> Dict[str, Any]:
        """Load the directory settings from environment variables."""
        paths = {}
        if os.getenv("IMPLGEN_ROOT"):
            paths["root"] = os.getenv("IMPLGEN_ROOT")
        if os.getenv("IMPLGEN_API_DIR"):
            paths["api_dir"] = os.getenv("IMPLGEN_API_DIR")
        if os.getenv("IMPLGEN_IMPL_DIR"):
            paths["impl_dir"] = os.getenv("IMPLGEN_IMPL_DIR")

        return {"paths": paths} if paths else {}

    @staticmethod
    def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
        """Merge multiple configuration dictionaries, with later ones taking precedence."""
        result = {}

        for config in configs:
            if not config:
                continue

            for key, value in config.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = ConfigurationManager.merge_configs(result[key], value)
                else:
                    result[key] = value

        return result

    @staticmethod
    def validate_config(config_data: Dict[str, Any]) -> None:
        """Validate configuration data."""
        if "paths" in config_data:
            paths = config_data["paths"]
            for key in ("root", "api_dir", "impl_dir"):
                if key in paths and (not isinstance(paths[key], str) or not paths[key].strip()):
                    raise ConfigurationError(f"paths.{key} must be a non-empty string")

        if "generation" in config_data:
            generation = config_data["generation"]

            if "formatter" in generation and generation["formatter"] not in FORMATTER_CHOICES:
                raise ConfigurationError(f"formatter must be one of: {list(FORMATTER_CHOICES)}")

            if "registry_filename" in generation:
                filename = generation["registry_filename"]
                if not isinstance(filename, str) or not filename.endswith(".go") or "/" in filename:
                    raise ConfigurationError("registry_filename must be a .go file name")


@dataclass
class PathsConfig:
    """Directories the generator works on."""

    root: str = "."
    api_dir: str = "api"
    impl_dir: str = "internal"


@dataclass
class GenerationConfig:
    """Configuration for generation runs."""

    formatter: str = "auto"
    registry_filename: str = "repositories.go"
    dry_run: bool = False


@dataclass
class ImplgenConfig:
    """Main configuration class for implgen."""

    paths_settings: PathsConfig = field(default_factory=PathsConfig)
    generation_settings: GenerationConfig = field(default_factory=GenerationConfig)

    @classmethod
    def default(cls) -> "ImplgenConfig":
        """Create default configuration."""
        return cls()

    @classmethod
    def load(
        cls,
        config_path: Optional[str] = None,
        use_env: bool = True,
        validate: bool = True,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "ImplgenConfig":
        """
        Load configuration from multiple sources with precedence:
        1. Default values
        2. Configuration file
        3. Environment variables (if use_env=True)
        4. Explicit overrides (command-line flags)

        Args:
            config_path: Path to configuration file. If None, searches for default files.
            use_env: Whether to load environment variables
            validate: Whether to validate the configuration
            overrides: Nested dictionary applied last
        """
        configs_to_merge = []

        file_config = {}
        if config_path:
            file_config = ConfigurationManager.load_config_file(config_path)
        else:
            found_config = ConfigurationManager.find_config_file()
            if found_config:
                file_config = ConfigurationManager.load_config_file(found_config)
                logger.info(f"Loaded configuration from: {found_config}")

        configs_to_merge.append(file_config)

        if use_env:
            configs_to_merge.append(ConfigurationManager.load_env_config())

        if overrides:
            configs_to_merge.append(overrides)

        merged_config = ConfigurationManager.merge_configs(*configs_to_merge)

        if validate:
            ConfigurationManager.validate_config(merged_config)

        paths_config = PathsConfig()
        for key, value in merged_config.get("paths", {}).items():
            if hasattr(paths_config, key):
                setattr(paths_config, key, value)

        generation_config = GenerationConfig()
        for key, value in merged_config.get("generation", {}).items():
            if hasattr(generation_config, key):
                setattr(generation_config, key, value)

        return cls(paths_settings=paths_config, generation_settings=generation_config)

    @classmethod
    def from_file(cls, config_path: str) -> "ImplgenConfig":
        """Load configuration from a JSON or YAML file."""
        return cls.load(config_path=config_path, use_env=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "paths": asdict(self.paths_settings),
            "generation": asdict(self.generation_settings),
        }

    def to_file(self, config_path: str, format: str = "yaml") -> None:
        """
        Save configuration to file.

        Args:
            config_path: Path to save configuration
            format: File format ('json' or 'yaml')
        """
        config_data = self.to_dict()

        try:
            with open(config_path, "w", encoding="utf-8") as f:
                if format.lower() == "yaml":
                    yaml.dump(config_data, f, default_flow_style=False, indent=2)
                else:
                    json.dump(config_data, f, indent=2)
        except OSError as e:
            raise ConfigurationError(f"Error saving configuration file: {e}") from e

    def validate(self) -> None:
        """Validate the current configuration."""
        ConfigurationManager.validate_config(self.to_dict())

    def get_config_summary(self) -> str:
        """Get a human-readable summary of the configuration."""
        return f"""implgen Configuration Summary:
Paths:
  - Root: {self.paths_settings.root}
  - API directory: {self.paths_settings.api_dir}
  - Implementation directory: {self.paths_settings.impl_dir}

Generation:
  - Formatter: {self.generation_settings.formatter}
  - Registry file: {self.generation_settings.registry_filename}
  - Dry run: {self.generation_settings.dry_run}
"""


def load_config(
    config_path: Optional[str] = None,
    use_env: bool = True,
    overrides: Optional[Dict[str, Any]] = None,
) -> ImplgenConfig:
    """
    Load configuration from file and/or environment variables.

    Args:
        config_path: Path to configuration file
        use_env: Whether to load environment variables
        overrides: Nested dictionary applied after file and environment

    Returns:
        ImplgenConfig: Loaded configuration
    """
    return ImplgenConfig.load(config_path=config_path, use_env=use_env, overrides=overrides)
