"""
Configuration management for Regulation Search.

Loads configuration from config.yaml with ENV variable override support.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

ENV_PREFIX = 'RS_'
SECTIONS = ['store', 'llm', 'search', 'metrics', 'api']
LLM_SUBSECTIONS = ['scorer']

MAX_STORE_LIMIT = 100
MAX_MIN_RELEVANCE = 0.15
MAX_TEMPERATURE = 2.0


class Config:
    """
    Centralized configuration manager.

    Priority order:
    1. CLI arguments (handled in the CLI)
    2. ENV variables (RS_<SECTION>_<KEY>)
    3. config.yaml values
    4. Code defaults
    """

    def __init__(self, config_dict: Dict[str, Any], config_path: Optional[Path] = None):
        """
        Initialize config from dictionary.

        Args:
            config_dict: Configuration dictionary
            config_path: Path to config file (for logging)
        """
        self._config = config_dict
        self._config_path = config_path

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> 'Config':
        """
        Load configuration from YAML file with ENV overrides.

        Args:
            config_path: Path to config.yaml (default: project_root/config.yaml)

        Returns:
            Config instance

        Raises:
            ValueError: If the YAML is invalid or a value is out of range
        """
        if config_path is None:
            current = Path(__file__).parent
            while current.parent != current:
                potential_config = current / "config.yaml"
                if potential_config.exists():
                    config_path = potential_config
                    break
                current = current.parent

            if config_path is None:
                config_path = Path("config.yaml")

        config_dict = {}

        if config_path.exists():
            try:
                with open(config_path, 'r', encoding='utf-8') as f:
                    config_dict = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                logger.error(f"Invalid YAML in config file {config_path}: {e}")
                raise ValueError(f"Invalid YAML syntax in config file: {e}")
            if not isinstance(config_dict, dict):
                raise ValueError(f"Config file {config_path} must contain a mapping")
            logger.info(f"Loaded configuration from {config_path}")
        else:
            logger.info(f"Config file not found at {config_path}. Using defaults and ENV variables.")

        config_dict = cls._apply_env_overrides(config_dict)
        cls._validate_config(config_dict)

        return cls(config_dict, config_path)

    @staticmethod
    def _validate_config(config_dict: Dict[str, Any]) -> None:
        """
        Validate configuration values.

        Args:
            config_dict: Configuration dictionary

        Raises:
            ValueError: If a value is out of range
        """
        for section in SECTIONS:
            if section in config_dict and not isinstance(config_dict[section], dict):
                raise ValueError(f"Config section '{section}' must be a mapping")

        store = config_dict.get('store', {})
        if 'limit' in store:
            limit = store['limit']
            if isinstance(limit, bool) or not isinstance(limit, int) or not (1 <= limit <= MAX_STORE_LIMIT):
                raise ValueError(f"store.limit must be an integer between 1 and {MAX_STORE_LIMIT}, got {limit}")

        search = config_dict.get('search', {})
        if 'min_relevance' in search:
            threshold = search['min_relevance']
            if isinstance(threshold, bool) or not isinstance(threshold, (int, float)) \
                    or not (0 < threshold <= MAX_MIN_RELEVANCE):
                raise ValueError(
                    f"search.min_relevance must be a float in (0, {MAX_MIN_RELEVANCE}], got {threshold}"
                )
        if 'max_query_length' in search:
            max_len = search['max_query_length']
            if isinstance(max_len, bool) or not isinstance(max_len, int) or max_len < 1:
                raise ValueError(f"search.max_query_length must be a positive integer, got {max_len}")

        scorer = config_dict.get('llm', {}).get('scorer', {})
        if 'temperature' in scorer:
            temperature = scorer['temperature']
            if isinstance(temperature, bool) or not isinstance(temperature, (int, float)) \
                    or not (0 <= temperature <= MAX_TEMPERATURE):
                raise ValueError(f"llm.scorer.temperature must be a number between 0 and {MAX_TEMPERATURE}, got {temperature}")
        if 'max_tokens' in scorer:
            max_tokens = scorer['max_tokens']
            if isinstance(max_tokens, bool) or not isinstance(max_tokens, int) or max_tokens < 1:
                raise ValueError(f"llm.scorer.max_tokens must be a positive integer, got {max_tokens}")

    @classmethod
    def _apply_env_overrides(cls, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply environment variable overrides to config.

        ENV format: RS_<SECTION>_<KEY>
        Examples:
        - RS_STORE_TABLE -> store.table
        - RS_SEARCH_MIN_RELEVANCE -> search.min_relevance
        - RS_LLM_SCORER_TEMPERATURE -> llm.scorer.temperature

        Args:
            config_dict: Configuration dictionary

        Returns:
            Updated configuration dictionary
        """
        for section in SECTIONS:
            if section not in config_dict or config_dict[section] is None:
                config_dict[section] = {}
        if isinstance(config_dict['llm'], dict):
            for subsection in LLM_SUBSECTIONS:
                if config_dict['llm'].get(subsection) is None:
                    config_dict['llm'][subsection] = {}

        for env_key, env_value in os.environ.items():
            if not env_key.startswith(ENV_PREFIX):
                continue

            parts = env_key[len(ENV_PREFIX):].split('_')
            if len(parts) < 2:
                continue

            section = parts[0].lower()
            key_parts = [p.lower() for p in parts[1:]]
            value = cls._parse_env_value(env_value)

            if section == 'llm' and len(key_parts) >= 2:
                subsection = key_parts[0]
                subkey = '_'.join(key_parts[1:])
                config_dict['llm'].setdefault(subsection, {})
                config_dict['llm'][subsection][subkey] = value
                logger.info(f"ENV override: {env_key} -> llm.{subsection}.{subkey}")
            else:
                key = '_'.join(key_parts)
                config_dict.setdefault(section, {})
                config_dict[section][key] = value
                logger.info(f"ENV override: {env_key} -> {section}.{key}")

        return config_dict

    @staticmethod
    def _parse_env_value(value: str) -> Any:
        """Parse environment variable value to appropriate type."""
        if value.lower() in ('true', 'yes', 'on'):
            return True
        if value.lower() in ('false', 'no', 'off'):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        if value.lower() in ('null', 'none', ''):
            return None

        return value

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """
        Get configuration value.

        Args:
            section: Configuration section (e.g., 'store', 'search')
            key: Configuration key
            default: Default value if not found

        Returns:
            Configuration value
        """
        section_config = self._config.get(section)
        if isinstance(section_config, dict):
            return section_config.get(key, default)
        return default

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get entire configuration section."""
        return self._config.get(section, {})

    @property
    def config_path(self) -> Optional[Path]:
        return self._config_path

    @property
    def store(self) -> Dict[str, Any]:
        """Record store configuration."""
        return self.get_section('store')

    @property
    def llm(self) -> Dict[str, Any]:
        """LLM configuration."""
        return self.get_section('llm')

    @property
    def search(self) -> Dict[str, Any]:
        """Search configuration."""
        return self.get_section('search')

    @property
    def metrics(self) -> Dict[str, Any]:
        """Metrics configuration."""
        return self.get_section('metrics')

    @property
    def api(self) -> Dict[str, Any]:
        """API configuration."""
        return self.get_section('api')

    def to_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary, with credentials masked."""
        result = json.loads(json.dumps(self._config, default=str))
        if result.get('store', {}).get('key'):
            result['store']['key'] = '***'
        return result

    def show(self):
        """Print effective configuration for debugging."""
        print("=" * 80)
        print("Effective Configuration:")
        print("=" * 80)
        print(json.dumps(self.to_dict(), indent=2, ensure_ascii=False))
        print("=" * 80)


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Convenience function to load configuration.

    Args:
        config_path: Optional path to config.yaml

    Returns:
        Config instance
    """
    return Config.load(config_path)
