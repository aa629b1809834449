#!/usr/bin/env python3
"""
Configuration Management for the vSphere datastore report.

Settings come from three layers, highest precedence first:
- command line flags
- environment variables
- a dotenv file (``.env`` by default)

``Configuration`` merges the environment and the dotenv file.
``build_settings`` then overlays the parsed command line and returns an
immutable ``ReportSettings`` that is passed explicitly through the run.

Usage:
    from config import Configuration, build_settings

    configuration = Configuration()
    settings = build_settings(args, configuration)
"""
import os
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from dotenv import dotenv_values

from error_handler import ConfigurationError

logger = logging.getLogger('config')

OUTPUT_TEXT = 'text'
OUTPUT_JSON = 'json'
OUTPUT_FORMATS = (OUTPUT_TEXT, OUTPUT_JSON)


class Configuration:
    """
    Configuration lookup over environment variables and a dotenv file.
    """
    CONFIG_GROUPS = {
        'vsphere': [
            'VSPHERE_URL', 'VSPHERE_USERNAME', 'VSPHERE_PASSWORD',
            'VSPHERE_DATACENTER', 'VSPHERE_INSECURE'
        ],
        'logging': [
            'LOG_LEVEL', 'LOG_FORMAT', 'LOG_FILE', 'LOG_COLORS'
        ]
    }

    # Sensitive values that should be masked in logs
    SENSITIVE_KEYS = {'VSPHERE_PASSWORD'}

    DEFAULTS = {
        'VSPHERE_INSECURE': 'true',
        'LOG_LEVEL': 'WARNING',
        'LOG_FORMAT': 'standard',
        'LOG_COLORS': 'true'
    }

    def __init__(self, env_file: Optional[str] = '.env', environ: Optional[Dict[str, str]] = None):
        """
        Initialize configuration.

        Args:
            env_file: Path of the dotenv file to read, None to skip it
            environ: Environment mapping (default: os.environ)
        """
        self._config: Dict[str, str] = {}
        self._load(env_file, os.environ if environ is None else environ)

    def _load(self, env_file, environ):
        """Load known keys from the environment, then fill gaps from the dotenv file."""
        for key in self._get_all_config_keys():
            value = environ.get(key)
            if value is not None:
                self._config[key] = value

        if env_file and Path(env_file).is_file():
            for key, value in dotenv_values(env_file).items():
                if key in self._get_all_config_keys() and key not in self._config and value is not None:
                    self._config[key] = value
            logger.debug(f"Read configuration file {env_file}")

        for key, value in self.DEFAULTS.items():
            self._config.setdefault(key, value)

    def _get_all_config_keys(self) -> Set[str]:
        keys = set()
        for group_keys in self.CONFIG_GROUPS.values():
            keys.update(group_keys)
        return keys

    def log_configuration(self):
        """Log the current configuration, masking sensitive values."""
        for group in self.CONFIG_GROUPS:
            group_values = self.get_group(group, masked=True)
            if group_values:
                logger.info(f"{group.upper()} configuration: {json.dumps(group_values)}")

    def get(self, key: str, default: Any = None) -> Optional[str]:
        """Get a configuration value as a string."""
        return self._config.get(key, default)

    def get_bool(self, key: str, default: Optional[bool] = None) -> Optional[bool]:
        """Get a configuration value as a boolean."""
        value = self.get(key)
        if value is None:
            return default

        if value.lower() in ('true', 'yes', 'y', '1'):
            return True
        if value.lower() in ('false', 'no', 'n', '0'):
            return False

        logger.warning(f"Invalid boolean value for {key}: {value}, using default: {default}")
        return default

    def get_group(self, group: str, masked: bool = False) -> Dict[str, str]:
        """Get all configuration values for a specific group."""
        if group not in self.CONFIG_GROUPS:
            return {}

        values = {}
        for key in self.CONFIG_GROUPS[group]:
            if key in self._config:
                values[key] = '*' * 8 if masked and key in self.SENSITIVE_KEYS else self._config[key]
        return values


@dataclass(frozen=True)
class ReportSettings:
    """Immutable settings for one report run."""
    url: str
    username: str
    password: str
    datacenter: Optional[str] = None
    insecure: bool = True
    output: str = OUTPUT_TEXT
    log_level: str = 'WARNING'
    log_format: str = 'standard'
    log_file: Optional[str] = None
    log_colors: bool = True

    @property
    def output_json(self) -> bool:
        return self.output == OUTPUT_JSON

    def __repr__(self):
        return (f"ReportSettings(url={self.url!r}, username={self.username!r}, password='********', "
                f"datacenter={self.datacenter!r}, insecure={self.insecure}, output={self.output!r})")


def missing_credentials(args, configuration: Configuration) -> List[str]:
    """Return the flag names of the required connection values that are not set."""
    missing = []
    for flag, key in (('url', 'VSPHERE_URL'), ('username', 'VSPHERE_USERNAME'), ('password', 'VSPHERE_PASSWORD')):
        if not (getattr(args, flag, None) or configuration.get(key)):
            missing.append(flag)
    return missing


def build_settings(args, configuration: Configuration) -> ReportSettings:
    """
    Build the run settings from parsed arguments and configuration.

    Command line values take precedence over the configuration. Raises
    ConfigurationError when URL, username or password is missing.
    """
    missing = missing_credentials(args, configuration)
    if missing:
        raise ConfigurationError(
            "Must specify vSphere URL, username, and password",
            {'missing': missing}
        )

    insecure = getattr(args, 'insecure', None)
    if insecure is None:
        insecure = configuration.get_bool('VSPHERE_INSECURE', True)

    output = getattr(args, 'output', None) or OUTPUT_TEXT
    if output not in OUTPUT_FORMATS:
        raise ConfigurationError(f"Unsupported output format: {output}", {'output': output})

    log_colors = configuration.get_bool('LOG_COLORS', True)

    return ReportSettings(
        url=getattr(args, 'url', None) or configuration.get('VSPHERE_URL'),
        username=getattr(args, 'username', None) or configuration.get('VSPHERE_USERNAME'),
        password=getattr(args, 'password', None) or configuration.get('VSPHERE_PASSWORD'),
        datacenter=getattr(args, 'datacenter', None) or configuration.get('VSPHERE_DATACENTER') or None,
        insecure=insecure,
        output=output,
        log_level=(getattr(args, 'log_level', None) or configuration.get('LOG_LEVEL', 'WARNING')).upper(),
        log_format=getattr(args, 'log_format', None) or configuration.get('LOG_FORMAT', 'standard'),
        log_file=getattr(args, 'log_file', None) or configuration.get('LOG_FILE'),
        log_colors=bool(log_colors)
    )
