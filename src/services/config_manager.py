import os
from pathlib import Path
from string import Template
from typing import Mapping, Optional

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from src.models.config import ResearchSettings
from src.utils.exceptions import ConfigValidationError

logger = structlog.get_logger()

DEFAULT_CONFIG_PATH = "config/research_config.yaml"


class ConfigManager:
    """Loads and validates the orchestrator configuration"""

    def __init__(
        self,
        config_path: str = DEFAULT_CONFIG_PATH,
        allow_defaults: bool = False,
        environ: Optional[Mapping[str, str]] = None,
        load_env_file: bool = True,
    ):
        """Initialize config manager.

        Args:
            config_path: YAML configuration file
            allow_defaults: Use built-in defaults when the file is missing
            environ: Mapping used for ${VAR} substitution (os.environ by default)
            load_env_file: Load .env into the process environment first
        """
        self.config_path = Path(config_path)
        self.allow_defaults = allow_defaults
        self._environ = environ
        self.env_loaded = not load_env_file
        self._config: Optional[ResearchSettings] = None

    def load_config(self) -> ResearchSettings:
        """Load and validate configuration"""
        if self._config:
            return self._config

        # 1. Load environment
        if not self.env_loaded:
            load_dotenv()
            self.env_loaded = True

        # 2. Check file existence
        if not self.config_path.exists():
            if not self.allow_defaults:
                raise ConfigValidationError(
                    f"Configuration file not found: {self.config_path}"
                )
            logger.info("config_defaults_used", path=str(self.config_path))
            self._config = ResearchSettings()
            return self._config

        # 3. Read YAML
        try:
            raw_content = self.config_path.read_text()
        except OSError as e:
            raise ConfigValidationError(f"Failed to read config file: {e}")

        # 4. Substitute env vars
        try:
            environ = self._environ if self._environ is not None else os.environ
            substituted_content = Template(raw_content).safe_substitute(environ)
            config_data = yaml.safe_load(substituted_content) or {}
        except yaml.YAMLError as e:
            raise ConfigValidationError(
                f"Failed to parse YAML or substitute variables: {e}"
            )

        if not isinstance(config_data, dict):
            raise ConfigValidationError(
                f"Configuration root must be a mapping, got {type(config_data).__name__}"
            )

        # 5. Validate with Pydantic
        try:
            self._config = ResearchSettings(**config_data)
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid configuration: {e}")

        logger.info(
            "config_loaded",
            path=str(self.config_path),
            providers=self._config.enabled_providers(),
        )
        return self._config

    def get_output_dir(self) -> Path:
        """Output directory for persisted results, created on demand"""
        config = self.load_config()
        output_dir = Path(config.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        return output_dir
