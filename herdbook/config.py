"""
Configuration Management

Unified configuration for the Herdbook API. Settings come from dataclass
defaults, an optional .config.json file and environment variable overrides,
in increasing order of precedence.

Author: Herdbook Developers
Copyright: © 2025 Herdbook Project
"""

import os
import json
import logging
import logging.handlers
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


class Environment(Enum):
    """Supported environments"""
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class LogLevel(Enum):
    """Supported log levels"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class DatabaseConfig:
    """Database configuration with connection settings"""
    # Database type: 'sqlite' or 'postgresql'
    db_type: str = "sqlite"

    # SQLite settings
    path: Path = field(default_factory=lambda: Path("data/database/herdbook.db"))
    journal_mode: str = "WAL"

    # PostgreSQL settings (libpq-style names kept for the PG* env vars)
    postgresql_host: str = "localhost"
    postgresql_port: int = 5432
    postgresql_database: str = "farmdb"
    postgresql_username: str = "user"
    postgresql_password: str = "password"

    connection_timeout: int = 30
    auto_create_schema: bool = True
    seed_reference_data: bool = True


@dataclass
class DirectoryConfig:
    """Directory structure configuration"""
    logs_dir: Path = field(default_factory=lambda: Path("data/logs"))
    reports_dir: Path = field(default_factory=lambda: Path("data/reports"))


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: LogLevel = LogLevel.INFO
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    file_rotation_size: int = 10 * 1024 * 1024  # 10MB
    file_retention_count: int = 5
    enable_console: bool = True
    enable_file: bool = True


@dataclass
class WebConfig:
    """Web interface configuration"""
    host: str = "0.0.0.0"
    port: int = 7071
    reload: bool = False
    log_level: str = "info"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


@dataclass
class AuthConfig:
    """Mock tier lookup settings"""
    # One of 'free', 'premium', 'enterprise'
    mock_user_tier: str = "free"


@dataclass
class JobsConfig:
    """Background report job worker settings"""
    enabled: bool = False
    poll_interval_seconds: int = 30


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class UnifiedConfig:
    """
    Central configuration management system
    Implements singleton pattern and environment-aware configuration
    Loads from .config.json file with environment variable overrides
    """

    _instance: Optional['UnifiedConfig'] = None
    _initialized: bool = False
    _config_file = Path(".config.json")
    _json_config: Optional[Dict[str, Any]] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self.load()
        self._initialized = True

    def load(self):
        """(Re)load every configuration section from file and environment"""
        self._load_json_config()

        env_mode = self._get_config_value('environment', 'mode', default='development')
        if not env_mode or not isinstance(env_mode, str):
            env_mode = 'development'
        env_var = os.getenv('HERDBOOK_ENVIRONMENT')
        if env_var:
            env_mode = env_var
        self.environment = Environment(env_mode)

        self.database = self._load_database_config()
        self.directories = self._load_directory_config()
        self.logging = self._load_logging_config()
        self.web = self._load_web_config()
        self.auth = self._load_auth_config()
        self.jobs = self._load_jobs_config()

    def _load_json_config(self):
        """Load configuration from .config.json file"""
        if self._config_file.exists():
            try:
                with open(self._config_file, 'r', encoding='utf-8') as f:
                    self._json_config = json.load(f)
                logging.getLogger(__name__).info(f"Loaded configuration from {self._config_file}")
            except (json.JSONDecodeError, IOError) as e:
                logging.getLogger(__name__).warning(f"Error loading {self._config_file}: {e}. Using defaults.")
                self._json_config = None
        else:
            logging.getLogger(__name__).debug(f"Config file {self._config_file} not found. Using defaults.")
            self._json_config = None

    def _get_config_value(self, *keys, default=None):
        """
        Get a value from JSON config using nested keys
        Example: _get_config_value('database', 'postgresql', 'host', default='localhost')
        """
        if not self._json_config:
            return default

        value = self._json_config
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def _load_database_config(self) -> DatabaseConfig:
        """Load database configuration from JSON and environment overrides"""
        db_config = DatabaseConfig()

        db_config.db_type = self._get_config_value('database', 'type', default=db_config.db_type)
        db_config.path = Path(self._get_config_value('database', 'sqlite', 'path', default=str(db_config.path)))
        db_config.journal_mode = self._get_config_value('database', 'sqlite', 'journal_mode',
                                                        default=db_config.journal_mode)

        pg = self._get_config_value('database', 'postgresql', default={}) or {}
        db_config.postgresql_host = pg.get('host', db_config.postgresql_host)
        db_config.postgresql_port = int(pg.get('port', db_config.postgresql_port))
        db_config.postgresql_database = pg.get('database', db_config.postgresql_database)
        db_config.postgresql_username = pg.get('username', db_config.postgresql_username)
        db_config.postgresql_password = pg.get('password', db_config.postgresql_password)

        db_config.connection_timeout = int(self._get_config_value(
            'database', 'connection_timeout', default=db_config.connection_timeout))
        db_config.auto_create_schema = bool(self._get_config_value(
            'database', 'auto_create_schema', default=db_config.auto_create_schema))
        db_config.seed_reference_data = bool(self._get_config_value(
            'database', 'seed_reference_data', default=db_config.seed_reference_data))

        # Environment overrides
        if os.getenv('HERDBOOK_DB_TYPE'):
            db_config.db_type = os.getenv('HERDBOOK_DB_TYPE')
        if os.getenv('HERDBOOK_DB_PATH'):
            db_config.path = Path(os.getenv('HERDBOOK_DB_PATH'))
        if os.getenv('PGHOST'):
            db_config.postgresql_host = os.getenv('PGHOST')
        if os.getenv('PGPORT'):
            db_config.postgresql_port = int(os.getenv('PGPORT'))
        if os.getenv('PGUSER'):
            db_config.postgresql_username = os.getenv('PGUSER')
        if os.getenv('PGPASSWORD'):
            db_config.postgresql_password = os.getenv('PGPASSWORD')
        if os.getenv('PGDATABASE'):
            db_config.postgresql_database = os.getenv('PGDATABASE')

        return db_config

    def _load_directory_config(self) -> DirectoryConfig:
        dir_config = DirectoryConfig()
        paths = self._get_config_value('directories', default={}) or {}
        for name in ('logs_dir', 'reports_dir'):
            if name in paths:
                setattr(dir_config, name, Path(paths[name]))
        return dir_config

    def _load_logging_config(self) -> LoggingConfig:
        """Load logging configuration from JSON and environment overrides"""
        log_config = self._get_config_value('logging', default={}) or {}
        logging_config = LoggingConfig()

        level = os.getenv('HERDBOOK_LOG_LEVEL') or log_config.get('level')
        if level:
            try:
                logging_config.level = LogLevel(level.upper())
            except ValueError:
                logging.getLogger(__name__).warning(f"Unknown log level '{level}', keeping INFO")

        logging_config.format = log_config.get('format', logging_config.format)
        logging_config.date_format = log_config.get('date_format', logging_config.date_format)
        logging_config.file_rotation_size = log_config.get('file_rotation_size', logging_config.file_rotation_size)
        logging_config.file_retention_count = log_config.get('file_retention_count',
                                                             logging_config.file_retention_count)
        logging_config.enable_console = log_config.get('enable_console', logging_config.enable_console)
        logging_config.enable_file = log_config.get('enable_file', logging_config.enable_file)
        return logging_config

    def _load_web_config(self) -> WebConfig:
        web = self._get_config_value('web', default={}) or {}
        web_config = WebConfig(
            host=web.get('host', WebConfig.host),
            port=int(web.get('port', WebConfig.port)),
            reload=web.get('reload', WebConfig.reload),
            log_level=web.get('log_level', WebConfig.log_level),
        )
        if 'cors_origins' in web:
            web_config.cors_origins = list(web['cors_origins'])
        if os.getenv('HERDBOOK_HOST'):
            web_config.host = os.getenv('HERDBOOK_HOST')
        if os.getenv('HERDBOOK_PORT'):
            web_config.port = int(os.getenv('HERDBOOK_PORT'))
        return web_config

    def _load_auth_config(self) -> AuthConfig:
        auth_config = AuthConfig()
        auth_config.mock_user_tier = self._get_config_value(
            'auth', 'mock_user_tier', default=auth_config.mock_user_tier)
        if os.getenv('HERDBOOK_USER_TIER'):
            auth_config.mock_user_tier = os.getenv('HERDBOOK_USER_TIER')
        return auth_config

    def _load_jobs_config(self) -> JobsConfig:
        jobs_config = JobsConfig()
        jobs_config.enabled = bool(self._get_config_value('jobs', 'enabled', default=jobs_config.enabled))
        jobs_config.poll_interval_seconds = int(self._get_config_value(
            'jobs', 'poll_interval_seconds', default=jobs_config.poll_interval_seconds))
        if os.getenv('HERDBOOK_JOBS_ENABLED'):
            jobs_config.enabled = _env_bool(os.getenv('HERDBOOK_JOBS_ENABLED'))
        return jobs_config

    def is_production(self) -> bool:
        """Check if running in production mode"""
        return self.environment == Environment.PRODUCTION

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for serialization"""
        return {
            'environment': self.environment.value,
            'database': {
                'type': self.database.db_type,
                'path': str(self.database.path),
                'postgresql_host': self.database.postgresql_host,
                'postgresql_database': self.database.postgresql_database,
                'connection_timeout': self.database.connection_timeout,
            },
            'web': {
                'host': self.web.host,
                'port': self.web.port,
                'reload': self.web.reload
            },
            'auth': {'mock_user_tier': self.auth.mock_user_tier},
            'jobs': {
                'enabled': self.jobs.enabled,
                'poll_interval_seconds': self.jobs.poll_interval_seconds
            }
        }


# Global configuration instance (singleton)
config = UnifiedConfig()


def get_config() -> UnifiedConfig:
    """Get the global configuration instance"""
    return config


def setup_logging():
    """Setup logging configuration based on current config"""
    log_config = config.logging
    root_logger = logging.getLogger()

    logging.basicConfig(
        level=getattr(logging, log_config.level.value),
        format=log_config.format,
        datefmt=log_config.date_format,
        force=True
    )

    if log_config.enable_file:
        logs_dir = config.directories.logs_dir
        logs_dir.mkdir(parents=True, exist_ok=True)
        log_file = logs_dir / f"herdbook_{datetime.now().strftime('%Y%m%d')}.log"

        existing_file_handler = None
        for handler in root_logger.handlers:
            if isinstance(handler, logging.handlers.RotatingFileHandler):
                if handler.baseFilename == str(log_file.resolve()):
                    existing_file_handler = handler
                    break

        if existing_file_handler is None:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=log_config.file_rotation_size,
                backupCount=log_config.file_retention_count
            )
            file_handler.setFormatter(logging.Formatter(log_config.format, log_config.date_format))
            root_logger.addHandler(file_handler)

    # Disable console logging in production if configured
    if not log_config.enable_console and config.is_production():
        root_logger.handlers = [h for h in root_logger.handlers
                                if isinstance(h, logging.FileHandler)]
