"""
Diff Deletes Configuration Loader

This module provides functionality to load and validate the service configuration
from YAML files. It supports loading from multiple possible locations, environment
variable overrides and provides default values for missing configuration sections.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
import logging

logger = logging.getLogger(__name__)


XSD_STRING = "http://www.w3.org/2001/XMLSchema#string"
RDF_LANG_STRING = "http://www.w3.org/1999/02/22-rdf-syntax-ns#langString"

DEFAULT_CONFIG_PATHS = [
    "diffdeletes_config/diffdeletes-config.yaml",  # Standard location
    "/app/diffdeletes_config/diffdeletes-config.yaml",  # Docker location
    "config/diffdeletes-config.yaml",  # Alternative location
]


class ConfigurationError(Exception):
    """Raised when there are configuration loading or validation errors."""
    pass


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class DiffDeletesConfig:
    """
    Service configuration loader and manager.

    Loads configuration from YAML files and provides access to configuration
    sections with validation and default values.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the configuration loader.

        Args:
            config_path: Path to configuration file. When None, only defaults
                and environment overrides are used.
        """
        self.config_data: Dict[str, Any] = {}
        self.config_path: Optional[str] = None

        if config_path is not None:
            self.load_config(config_path)

    def load_config(self, config_path: str) -> None:
        """
        Load configuration from a specific file path.

        Args:
            config_path: Path to the YAML configuration file

        Raises:
            ConfigurationError: If the file cannot be loaded or parsed
        """
        config_file = Path(config_path)

        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                self.config_data = yaml.safe_load(f) or {}

            self.config_path = str(config_file.absolute())
            logger.info(f"Loaded configuration from: {self.config_path}")

        except yaml.YAMLError as e:
            raise ConfigurationError(f"Error parsing YAML configuration: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error loading configuration file: {e}")

        if not isinstance(self.config_data, dict):
            raise ConfigurationError("Configuration file must contain a mapping at the top level")

    def _get_default_config(self) -> Dict[str, Any]:
        """
        Get the default configuration values.

        Returns:
            Dictionary containing default configuration values
        """
        return {
            'sparql': {
                'query_url': 'http://database:8890/sparql',
                'update_url': 'http://database:8890/sparql',
                'timeout': 60,
                'sudo': True,
                'username': None,
                'password': None
            },
            'graphs': {
                'target_graph': 'http://mu.semte.ch/graphs/public',
                'error_graph': 'http://mu.semte.ch/graphs/error'
            },
            'deletes': {
                'max_batch_size': 100,
                'explicit_datatypes': [XSD_STRING, RDF_LANG_STRING],
                'deletes_filename': 'to-remove-triples.ttl',
                'share_prefix': 'share://',
                'share_root': '/share/'
            },
            'task': {
                'operation': 'http://lblod.data.gift/id/jobs/concept/TaskOperation/execute-diff-deletes'
            },
            'errors': {
                'write_errors': False,
                'error_base': 'http://redpencil.data.gift/id/jobs/error/',
                'creator': 'harvesting-execute-diff-deletes-service'
            },
            'app': {
                'log_level': 'INFO',
                'host': '0.0.0.0',
                'port': 80
            }
        }

    def _get_section(self, name: str) -> Dict[str, Any]:
        defaults = self._get_default_config()[name]
        config = self.config_data.get(name) or {}
        # Merge with defaults
        return {**defaults, **config}

    def get_sparql_config(self) -> Dict[str, Any]:
        """
        Get SPARQL endpoint configuration section.

        Supports environment variable override:
        - DIFFDELETES_SPARQL_ENDPOINT: Override both query and update URLs

        Returns:
            Dictionary containing SPARQL endpoint configuration
        """
        sparql_config = self._get_section('sparql')
        endpoint = os.getenv('DIFFDELETES_SPARQL_ENDPOINT')
        if endpoint:
            sparql_config['query_url'] = endpoint
            sparql_config['update_url'] = endpoint
        return sparql_config

    def get_graphs_config(self) -> Dict[str, Any]:
        """
        Get graphs configuration section.

        Supports environment variable overrides:
        - DIFFDELETES_TARGET_GRAPH: Graph the deletes are executed against
        - DIFFDELETES_ERROR_GRAPH: Graph error records are written to

        Returns:
            Dictionary containing graph URIs
        """
        graphs_config = self._get_section('graphs')
        graphs_config['target_graph'] = os.getenv('DIFFDELETES_TARGET_GRAPH', graphs_config['target_graph'])
        graphs_config['error_graph'] = os.getenv('DIFFDELETES_ERROR_GRAPH', graphs_config['error_graph'])
        return graphs_config

    def get_deletes_config(self) -> Dict[str, Any]:
        """
        Get deletes configuration section.

        Supports environment variable override:
        - DIFFDELETES_MAX_BATCH_SIZE: Override the maximum batch size

        Returns:
            Dictionary containing deletes configuration
        """
        deletes_config = self._get_section('deletes')
        max_batch_size = os.getenv('DIFFDELETES_MAX_BATCH_SIZE')
        if max_batch_size is not None:
            deletes_config['max_batch_size'] = max_batch_size
        return deletes_config

    def get_task_config(self) -> Dict[str, Any]:
        """
        Get task configuration section.

        Returns:
            Dictionary containing task configuration
        """
        return self._get_section('task')

    def get_errors_config(self) -> Dict[str, Any]:
        """
        Get error record configuration section.

        Supports environment variable override:
        - DIFFDELETES_WRITE_ERRORS: Persist errors not attributable to a task

        Returns:
            Dictionary containing error record configuration
        """
        errors_config = self._get_section('errors')
        write_errors = os.getenv('DIFFDELETES_WRITE_ERRORS')
        if write_errors is not None:
            errors_config['write_errors'] = _env_bool(write_errors)
        return errors_config

    def get_app_config(self) -> Dict[str, Any]:
        """
        Get application configuration section.

        Supports environment variable override:
        - DIFFDELETES_LOG_LEVEL: Override the log level

        Returns:
            Dictionary containing app configuration
        """
        app_config = self._get_section('app')
        app_config['log_level'] = os.getenv('DIFFDELETES_LOG_LEVEL', app_config['log_level'])
        return app_config

    def get_max_batch_size(self) -> int:
        """
        Get the maximum number of triples sent in one delete request.

        Raises:
            ConfigurationError: If the value is not a positive integer
        """
        value = self.get_deletes_config().get('max_batch_size')
        try:
            max_batch_size = int(value)
        except (ValueError, TypeError):
            raise ConfigurationError(f"max_batch_size must be an integer, got: {value!r}")
        if max_batch_size <= 0:
            raise ConfigurationError(f"max_batch_size must be greater than 0, got: {max_batch_size}")
        return max_batch_size

    def get_explicit_datatypes(self) -> List[str]:
        """
        Get the datatype URIs that are always written explicitly in delete requests.

        Returns:
            List of datatype URIs
        """
        datatypes = self.get_deletes_config().get('explicit_datatypes') or []
        return [str(datatype) for datatype in datatypes]

    def validate_config(self) -> None:
        """
        Validate the loaded configuration.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        sparql_config = self.get_sparql_config()
        for field in ['query_url', 'update_url']:
            if not sparql_config.get(field):
                raise ConfigurationError(f"Missing required sparql configuration: {field}")

        try:
            timeout = float(sparql_config.get('timeout'))
            if timeout <= 0:
                raise ConfigurationError(f"Invalid sparql timeout: {timeout}")
        except (ValueError, TypeError):
            raise ConfigurationError("SPARQL timeout must be a number")

        graphs_config = self.get_graphs_config()
        for field in ['target_graph', 'error_graph']:
            if not graphs_config.get(field):
                raise ConfigurationError(f"Missing required graphs configuration: {field}")

        if not self.get_task_config().get('operation'):
            raise ConfigurationError("Missing required task configuration: operation")

        if not self.get_deletes_config().get('deletes_filename'):
            raise ConfigurationError("Missing required deletes configuration: deletes_filename")

        # Raises on invalid values
        self.get_max_batch_size()

        logger.info("Configuration validation passed")

    def __str__(self) -> str:
        """String representation of the configuration."""
        return f"DiffDeletesConfig(path={self.config_path}, sections={list(self.config_data.keys())})"


# Global configuration instance
_config_instance: Optional[DiffDeletesConfig] = None


def find_config_path() -> Optional[str]:
    """
    Find the configuration file in the expected locations.

    The DIFFDELETES_CONFIG environment variable takes precedence.

    Returns:
        Path of the first existing configuration file, or None
    """
    explicit_path = os.getenv('DIFFDELETES_CONFIG')
    if explicit_path:
        return explicit_path

    for config_path in DEFAULT_CONFIG_PATHS:
        if Path(config_path).exists():
            return config_path
    return None


def get_config(config_path: Optional[str] = None) -> DiffDeletesConfig:
    """
    Get the global configuration instance.

    Args:
        config_path: Optional path to configuration file. Only used on first call.

    Returns:
        DiffDeletesConfig instance
    """
    global _config_instance

    if _config_instance is None:
        _config_instance = DiffDeletesConfig(config_path)
        _config_instance.validate_config()

    return _config_instance

