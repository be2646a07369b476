"""
Centralized configuration management for the XML Row Extractor.

This module provides the ConfigManager class that serves as the single source
of truth for extraction settings, database sink connection settings, and
saved extraction jobs, including environment variable handling.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union
from dataclasses import dataclass

import yaml

from .extraction_defaults import ExtractionDefaults
from ..exceptions import ConfigurationError
from ..models import ExtractionConfig, ExtractionJob
from ..utils import NamespaceUtils


ENV_PREFIX = 'XML_ROW_EXTRACTOR_'


def _env(name: str, default: Any = None) -> Any:
    return os.environ.get(f'{ENV_PREFIX}{name}', default)


def _env_bool(name: str, default: bool) -> bool:
    value = _env(name)
    if value is None:
        return default
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def _env_int(name: str, default: int) -> int:
    value = _env(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be an integer, got '{value}'")


@dataclass
class DatabaseConfig:
    """Database sink configuration with environment variable support."""
    connection_string: str = ""
    driver: str = "ODBC Driver 17 for SQL Server"
    server: str = "localhost\\SQLEXPRESS"
    database: str = "XmlRowExtractor"
    trusted_connection: bool = True
    connection_timeout: int = ExtractionDefaults.CONNECTION_TIMEOUT
    target_schema: str = ExtractionDefaults.TARGET_SCHEMA

    @classmethod
    def from_environment(cls) -> 'DatabaseConfig':
        """Create database configuration from environment variables."""
        target_schema = _env('DB_SCHEMA', cls.target_schema)
        connection_timeout = _env_int('DB_CONNECTION_TIMEOUT', cls.connection_timeout)

        # Primary connection string from environment
        connection_string = _env('CONNECTION_STRING')
        if connection_string:
            return cls(connection_string=connection_string, connection_timeout=connection_timeout,
                       target_schema=target_schema)

        # Build connection string from individual components
        driver = _env('DB_DRIVER', cls.driver)
        server = _env('DB_SERVER', cls.server)
        database = _env('DB_DATABASE', cls.database)
        trusted_connection = _env_bool('DB_TRUSTED_CONNECTION', True)

        connection_string = (
            f"DRIVER={{{driver}}};"
            f"SERVER={server};"
            f"DATABASE={database};"
        )
        if trusted_connection:
            connection_string += "Trusted_Connection=yes;"
        else:
            username = _env('DB_USERNAME', '')
            password = _env('DB_PASSWORD', '')
            connection_string += f"UID={username};PWD={password};"
        connection_string += (
            f"Connection Timeout={connection_timeout};"
            f"Application Name=XML Row Extractor;"
            f"TrustServerCertificate=yes;"
        )

        return cls(
            connection_string=connection_string,
            driver=driver,
            server=server,
            database=database,
            trusted_connection=trusted_connection,
            connection_timeout=connection_timeout,
            target_schema=target_schema,
        )


@dataclass
class ExtractionParameters:
    """Extraction parameters with environment variable support."""
    huge_tree: bool = ExtractionDefaults.HUGE_TREE
    strip_whitespace: bool = ExtractionDefaults.STRIP_WHITESPACE
    empty_as_absent: bool = ExtractionDefaults.EMPTY_AS_ABSENT
    allow_scalar_results: bool = ExtractionDefaults.ALLOW_SCALAR_RESULTS
    cell_notice_mode: str = ExtractionDefaults.CELL_NOTICE_MODE
    max_notices: int = ExtractionDefaults.MAX_NOTICES
    batch_size: int = ExtractionDefaults.BATCH_SIZE
    log_level: str = ExtractionDefaults.LOG_LEVEL

    @classmethod
    def from_environment(cls) -> 'ExtractionParameters':
        """Create extraction parameters from environment variables."""
        return cls(
            huge_tree=_env_bool('HUGE_TREE', cls.huge_tree),
            strip_whitespace=_env_bool('STRIP_WHITESPACE', cls.strip_whitespace),
            empty_as_absent=_env_bool('EMPTY_AS_ABSENT', cls.empty_as_absent),
            allow_scalar_results=_env_bool('ALLOW_SCALAR_RESULTS', cls.allow_scalar_results),
            cell_notice_mode=_env('CELL_NOTICE_MODE', cls.cell_notice_mode),
            max_notices=_env_int('MAX_NOTICES', cls.max_notices),
            batch_size=_env_int('BATCH_SIZE', cls.batch_size),
            log_level=str(_env('LOG_LEVEL', cls.log_level)).upper(),
        )


class ConfigManager:
    """
    Centralized configuration manager serving as single source of truth.

    This class consolidates:
    - Database sink connection configuration
    - Extraction parameters (cell handling, notices, batch size)
    - Extraction job loading (JSON or YAML) with caching
    - Environment variable handling
    """

    def __init__(self, base_config_path: Optional[Union[str, Path]] = None):
        """
        Initialize the centralized configuration manager.

        Args:
            base_config_path: Base path for relative job files. If None, uses
                XML_ROW_EXTRACTOR_CONFIG_PATH or the current directory.
        """
        self.logger = logging.getLogger(__name__)

        self.base_config_path = Path(base_config_path or _env('CONFIG_PATH', Path.cwd()))
        self.database_config = DatabaseConfig.from_environment()
        self.extraction_params = ExtractionParameters.from_environment()

        # Cache for loaded jobs
        self._job_cache: Dict[str, ExtractionJob] = {}

        self.logger.debug(f"ConfigManager initialized with base path: {self.base_config_path}")

    def get_database_connection_string(self) -> str:
        """
        Get database connection string.

        Returns:
            Database connection string configured from environment variables
        """
        return self.database_config.connection_string

    def get_qualified_table_name(self, table_name: str) -> str:
        """
        Get schema-qualified table name.

        Args:
            table_name: Base table name (e.g., "items")

        Returns:
            Qualified table name (e.g., "[dbo].[items]")
        """
        if '.' in table_name or table_name.startswith('['):
            return table_name
        return f"[{self.database_config.target_schema}].[{table_name}]"

    def get_extraction_config(self, namespaces: Optional[Dict[str, str]] = None, **overrides) -> ExtractionConfig:
        """
        Get extraction configuration from environment parameters.

        Args:
            namespaces: Optional prefix to URI mapping for the selectors
            **overrides: ExtractionConfig fields that take precedence over the environment

        Returns:
            ExtractionConfig object

        Raises:
            ConfigurationError: If the resulting configuration is invalid
        """
        values = {
            'namespaces': namespaces,
            'huge_tree': self.extraction_params.huge_tree,
            'strip_whitespace': self.extraction_params.strip_whitespace,
            'empty_as_absent': self.extraction_params.empty_as_absent,
            'allow_scalar_results': self.extraction_params.allow_scalar_results,
            'cell_notice_mode': self.extraction_params.cell_notice_mode,
            'max_notices': self.extraction_params.max_notices,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        try:
            return ExtractionConfig(**values)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid extraction configuration: {e}") from e

    def load_job(self, job_path: Union[str, Path]) -> ExtractionJob:
        """
        Load an extraction job with caching.

        Args:
            job_path: Path to a .json, .yaml or .yml job file, absolute or
                relative to the base config path

        Returns:
            Loaded and validated extraction job

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid
        """
        cache_key = str(job_path)
        if cache_key in self._job_cache:
            self.logger.debug(f"Returning cached extraction job for {cache_key}")
            return self._job_cache[cache_key]

        full_path = Path(job_path)
        if not full_path.is_absolute():
            full_path = self.base_config_path / full_path

        if not full_path.exists():
            raise ConfigurationError(f"Extraction job file not found: {full_path}")

        try:
            with open(full_path, 'r', encoding='utf-8') as file:
                if full_path.suffix.lower() in ['.yaml', '.yml']:
                    job_data = yaml.safe_load(file)
                elif full_path.suffix.lower() == '.json':
                    job_data = json.load(file)
                else:
                    raise ConfigurationError(f"Unsupported file format: {full_path.suffix}")
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to parse extraction job file {full_path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read extraction job file {full_path}: {e}") from e

        job = self._parse_job(job_data, full_path)

        self._job_cache[cache_key] = job
        self.logger.info(f"Loaded extraction job from {full_path}")
        return job

    def _parse_job(self, job_data: Any, job_path: Path) -> ExtractionJob:
        """
        Build an ExtractionJob from decoded job file content.

        Columns may be given as a list of selectors, a list of
        {"name": ..., "selector": ...} objects, or a name -> selector mapping.
        Relative source/output paths are resolved against the job file's directory.
        """
        if not isinstance(job_data, dict):
            raise ConfigurationError(f"Extraction job {job_path} must contain an object")

        columns = job_data.get('columns', job_data.get('column_selectors'))
        column_names = job_data.get('column_names')
        if isinstance(columns, dict):
            column_names = list(columns.keys())
            column_selectors = [str(selector) for selector in columns.values()]
        elif isinstance(columns, list) and columns and all(isinstance(col, dict) for col in columns):
            try:
                column_selectors = [str(col['selector']) for col in columns]
            except KeyError as e:
                raise ConfigurationError(f"Column entry in {job_path} is missing {e}") from e
            column_names = [str(col.get('name', col['selector'])) for col in columns]
        elif isinstance(columns, list):
            column_selectors = [str(col) for col in columns]
        else:
            raise ConfigurationError(f"Extraction job {job_path} must define 'columns'")

        namespaces = job_data.get('namespaces')
        if isinstance(namespaces, list):
            try:
                namespaces = NamespaceUtils.parse_mapping(namespaces)
            except ValueError as e:
                raise ConfigurationError(f"Invalid namespaces in {job_path}: {e}") from e

        sink = job_data.get('sink') or {}
        try:
            return ExtractionJob(
                row_selector=job_data.get('row_selector') or job_data.get('rows', ''),
                column_selectors=column_selectors,
                column_names=column_names,
                source_path=self._resolve_relative(job_data.get('source'), job_path),
                namespaces=namespaces,
                output_path=self._resolve_relative(sink.get('output'), job_path),
                target_table=sink.get('table'),
                null_marker=str(sink.get('null_marker', ExtractionDefaults.NULL_MARKER)),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid extraction job {job_path}: {e}") from e

    @staticmethod
    def _resolve_relative(value: Optional[str], job_path: Path) -> Optional[str]:
        if not value or value == '-':
            return value
        path = Path(value)
        if not path.is_absolute():
            path = job_path.parent / path
        return str(path)

    def validate_configuration(self) -> bool:
        """
        Validate the environment-driven configuration.

        Returns:
            True if configuration is valid, False otherwise
        """
        try:
            self.get_extraction_config()
        except ConfigurationError as e:
            self.logger.error(f"Configuration validation failed: {e}")
            return False

        if self.extraction_params.batch_size <= 0:
            self.logger.error("Configuration validation failed: batch size must be positive")
            return False
        return True

    def get_configuration_summary(self) -> Dict[str, Any]:
        """
        Get configuration summary for logging and diagnostics.

        Returns:
            Dictionary with configuration details, credentials excluded
        """
        return {
            'base_config_path': str(self.base_config_path),
            'database': {
                'server': self.database_config.server,
                'database': self.database_config.database,
                'target_schema': self.database_config.target_schema,
                'connection_timeout': self.database_config.connection_timeout,
            },
            'extraction': {
                'cell_notice_mode': self.extraction_params.cell_notice_mode,
                'strip_whitespace': self.extraction_params.strip_whitespace,
                'empty_as_absent': self.extraction_params.empty_as_absent,
                'allow_scalar_results': self.extraction_params.allow_scalar_results,
                'batch_size': self.extraction_params.batch_size,
            },
            'cached_jobs': len(self._job_cache),
        }

    def clear_cache(self) -> None:
        """Clear all cached jobs."""
        self._job_cache.clear()
        self.logger.debug("Configuration cache cleared")


# Global configuration manager instance
_global_config_manager: Optional[ConfigManager] = None


def get_config_manager(base_config_path: Optional[Union[str, Path]] = None) -> ConfigManager:
    """
    Get the global configuration manager instance.

    Args:
        base_config_path: Base path for configuration files. Only used on first call.

    Returns:
        Global ConfigManager instance
    """
    global _global_config_manager

    if _global_config_manager is None:
        _global_config_manager = ConfigManager(base_config_path)

    return _global_config_manager


def reset_config_manager() -> None:
    """Reset the global configuration manager instance."""
    global _global_config_manager
    _global_config_manager = None
