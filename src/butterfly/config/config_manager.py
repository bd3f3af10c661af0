"""
Configuration Management

YAML-based configuration with environment variable substitution.

Loading order:
1. ``.env`` is loaded into the process environment (existing variables win)
2. ``config.yaml`` is read and ``${VAR}`` / ``${VAR:default}`` are substituted
3. When no config file exists the configuration is built from environment
   variables alone (MEXC_API_KEY, MEXC_API_SECRET, KRAKEN_API_KEY,
   KRAKEN_API_SECRET, ENVIRONMENT, ALLOW_LIVE_TRADING, HOST, PORT)

Usage:
    from butterfly.config import load_config

    config = load_config()
    mexc = config.get_exchange_config('mexc')
"""

import os
import re
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import msgspec
import yaml
from dotenv import load_dotenv

from butterfly.infrastructure.exceptions import ConfigurationError
from butterfly.infrastructure.logging.structs import LoggingConfig
from .structs import (
    AppConfig, ExchangeConfig, ExchangeCredentials, NetworkConfig,
    ServerConfig, TradingConfig
)

_ENV_VAR_PATTERN = re.compile(r'\$\{([^}]+)\}')
_TRUE_VALUES = {'true', '1', 'yes', 'on'}

# Environment variable names per exchange for the env-only configuration
_EXCHANGE_ENV = {
    'mexc': ('MEXC_API_KEY', 'MEXC_API_SECRET', 'MEXC_BASE_URL'),
    'kraken': ('KRAKEN_API_KEY', 'KRAKEN_API_SECRET', 'KRAKEN_BASE_URL'),
}


class ConfigManager:
    """
    Loads ``AppConfig`` from YAML and environment.

    ``config_path`` and ``env_file`` pin the files to use; otherwise the
    project root and the current working directory are searched.
    """

    def __init__(self, config_path: Union[str, Path, None] = None,
                 env_file: Union[str, Path, None] = None):
        self._logger = logging.getLogger(__name__)
        self.config_path = Path(config_path) if config_path else None
        self.env_file = Path(env_file) if env_file else None

    def load(self) -> AppConfig:
        self._load_env_file()

        config_file = self._find_config_file()
        if config_file is None:
            self._logger.info("No config.yaml found - using environment variables only")
            raw = self._raw_from_env()
        else:
            raw = self._load_yaml_config(config_file)
            self._logger.info(f"Configuration loaded from: {config_file}")

        config = self._build(raw)
        self._validate(config)
        self._logger.info(f"Configuration initialized for environment: {config.environment}")
        return config

    def _load_env_file(self) -> None:
        env_paths = [self.env_file] if self.env_file else [
            Path.cwd() / '.env',
            Path(__file__).parent.parent.parent.parent / '.env',
        ]

        for env_path in env_paths:
            if env_path.exists():
                load_dotenv(dotenv_path=env_path, override=False)
                self._logger.info(f"Loaded environment variables from: {env_path}")
                return

        self._logger.debug("No .env file found - using system environment variables only")

    def _find_config_file(self) -> Optional[Path]:
        if self.config_path is not None:
            if not self.config_path.exists():
                raise ConfigurationError(f"Config file not found: {self.config_path}", 'config_path')
            return self.config_path

        env_path = os.getenv('BUTTERFLY_CONFIG')
        if env_path:
            return self._find_config_file_at(Path(env_path))

        search_paths: List[Path] = [
            Path.cwd() / 'config.yaml',
            Path(__file__).parent.parent.parent.parent / 'config.yaml',
        ]
        for path in search_paths:
            if path.exists():
                return path
        return None

    @staticmethod
    def _find_config_file_at(path: Path) -> Path:
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}", 'BUTTERFLY_CONFIG')
        return path

    def _load_yaml_config(self, path: Path) -> Dict[str, Any]:
        with open(path, 'r', encoding='utf-8') as f:
            raw_content = f.read()

        try:
            data = yaml.safe_load(self._substitute_env_vars(raw_content))
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Top level of {path} must be a mapping")
        return data

    def _substitute_env_vars(self, content: str) -> str:
        """
        Substitute environment variables in configuration content.

        Supports ``${VAR_NAME}`` (empty when unset) and ``${VAR_NAME:default}``.
        """
        def replace_var(match):
            var_expr = match.group(1)

            if ':' in var_expr:
                var_name, default_value = var_expr.split(':', 1)
                env_value = os.getenv(var_name.strip())
                if env_value is None:
                    return default_value
                return env_value

            var_name = var_expr.strip()
            env_value = os.getenv(var_name)
            if env_value is None:
                self._logger.warning(f"Environment variable {var_name} not set - using empty value")
                return ""
            return env_value

        return _ENV_VAR_PATTERN.sub(replace_var, content)

    def _raw_from_env(self) -> Dict[str, Any]:
        exchanges = {}
        for name, (key_var, secret_var, url_var) in _EXCHANGE_ENV.items():
            exchanges[name] = {
                'api_key': os.getenv(key_var, ''),
                'secret_key': os.getenv(secret_var, ''),
                'base_url': os.getenv(url_var, ''),
            }

        return {
            'environment': {'name': os.getenv('ENVIRONMENT', 'development')},
            'trading': {'allow_live_trading': os.getenv('ALLOW_LIVE_TRADING', 'false')},
            'server': {
                'host': os.getenv('HOST', '0.0.0.0'),
                'port': os.getenv('PORT', '3000'),
            },
            'exchanges': exchanges,
        }

    def _build(self, raw: Dict[str, Any]) -> AppConfig:
        env_section = raw.get('environment') or {}
        environment = str(env_section.get('name') or 'development').strip()

        trading_section = raw.get('trading') or {}
        trading = TradingConfig(
            allow_live_trading=self._parse_bool(trading_section.get('allow_live_trading', False))
        )

        server_section = raw.get('server') or {}
        network_section = raw.get('network') or {}
        try:
            server = ServerConfig(
                host=str(server_section.get('host') or '0.0.0.0'),
                port=int(server_section.get('port') or 3000),
            )
            network = NetworkConfig(
                request_timeout=float(network_section.get('request_timeout', 10.0)),
                connect_timeout=float(network_section.get('connect_timeout', 5.0)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid server/network setting: {e}") from e

        exchanges = {}
        for name, section in (raw.get('exchanges') or {}).items():
            section = section or {}
            exchanges[name.lower()] = ExchangeConfig(
                name=name.lower(),
                credentials=ExchangeCredentials(
                    api_key=str(section.get('api_key') or ''),
                    secret_key=str(section.get('secret_key') or ''),
                ),
                base_url=str(section.get('base_url') or ''),
                enabled=self._parse_bool(section.get('enabled', True)),
            )

        logging_config = None
        if raw.get('logging'):
            logging_section = dict(raw['logging'])
            logging_section.setdefault('environment', environment)
            try:
                logging_config = LoggingConfig.from_dict(logging_section)
            except msgspec.ValidationError as e:
                raise ConfigurationError(f"Invalid logging configuration: {e}", 'logging') from e

        return AppConfig(
            environment=environment,
            trading=trading,
            server=server,
            network=network,
            exchanges=exchanges,
            logging=logging_config,
        )

    @staticmethod
    def _parse_bool(value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if value is None:
            return False
        return str(value).strip().lower() in _TRUE_VALUES

    def _validate(self, config: AppConfig) -> None:
        for name, exchange_config in config.exchanges.items():
            credentials = exchange_config.credentials
            if credentials.api_key and not credentials.secret_key:
                raise ConfigurationError(
                    f"{name.upper()}_API_KEY configured but {name.upper()}_API_SECRET is missing",
                    f'{name.upper()}_API_SECRET'
                )
            if credentials.secret_key and not credentials.api_key:
                raise ConfigurationError(
                    f"{name.upper()}_API_SECRET configured but {name.upper()}_API_KEY is missing",
                    f'{name.upper()}_API_KEY'
                )
            try:
                exchange_config.validate()
            except ValueError as e:
                raise ConfigurationError(str(e), f'exchanges.{name}') from e

        for setting_name, section in (('network', config.network), ('server', config.server)):
            try:
                section.validate()
            except ValueError as e:
                raise ConfigurationError(str(e), setting_name) from e

        if config.logging is not None:
            try:
                config.logging.validate()
            except ValueError as e:
                raise ConfigurationError(str(e), 'logging') from e


def load_config(config_path: Union[str, Path, None] = None,
                env_file: Union[str, Path, None] = None) -> AppConfig:
    """Load application configuration."""
    return ConfigManager(config_path, env_file).load()
