"""
nftjson Configuration Module

Settings for running the nft binary and for logging.

Configuration precedence (highest to lowest):
1. Environment variables (NFTJSON_*)
2. config.conf file (INI format, [nftables] and [logs] sections)
3. Default values

Config file search locations (first found wins):
1. Path specified in NFTJSON_CONFIG_FILE environment variable
2. /etc/nftjson/config.conf (system-wide)
3. ~/.config/nftjson/config.conf (user-specific)
4. ./config.conf (current directory)

Example config.conf:
    [nftables]
    nft_program = /usr/sbin/nft
    list_args = list ruleset

    [logs]
    verbose = true
    log_file = /var/log/nftjson.log

Author: nftjson Project
License: GNU GPL v3
"""

from pydantic_settings import BaseSettings
from pydantic import Field, model_validator
from typing import List, Optional
from pathlib import Path
import configparser
import logging
import os
import shlex
import warnings


ENV_PREFIX = 'NFTJSON_'
CONFIG_SECTIONS = ('nftables', 'logs')


def find_config_file() -> Optional[Path]:
    """
    Search for config.conf in standard locations.

    Returns:
        Path to config file if found, None otherwise
    """
    env_config = os.environ.get('NFTJSON_CONFIG_FILE')
    if env_config:
        path = Path(env_config)
        if path.exists():
            return path
        warnings.warn(f"NFTJSON_CONFIG_FILE={env_config} does not exist")

    search_paths = [
        Path('/etc/nftjson/config.conf'),
        Path.home() / '.config' / 'nftjson' / 'config.conf',
        Path('config.conf'),
    ]

    for path in search_paths:
        if path.exists():
            return path

    return None


def load_config_file(config_file: Optional[Path] = None) -> dict:
    """
    Load settings from config.conf.

    Args:
        config_file: File to read (searched with find_config_file() if None)

    Returns:
        Dictionary keyed like the environment variables (NFTJSON_NFT_PROGRAM, ...)
    """
    logger = logging.getLogger(__name__)
    config_file = config_file or find_config_file()

    if not config_file:
        logger.debug("No config.conf found, using environment variables and defaults")
        return {}

    parser = configparser.ConfigParser()
    try:
        parser.read(config_file)
    except configparser.Error as e:
        logger.warning(f"Failed to parse {config_file}: {e}. Using defaults.")
        return {}

    logger.debug(f"Loaded configuration from: {config_file}")

    config = {}
    for section in CONFIG_SECTIONS:
        if parser.has_section(section):
            for key, value in parser.items(section):
                # Strip inline comments
                value = value.split('#')[0].strip()
                config[f'{ENV_PREFIX}{key.upper()}'] = os.path.expanduser(value)

    return config


def _parse_bool(value: str, field_name: str = "field") -> bool:
    """
    Parse boolean value from string with validation.

    Raises:
        ValueError: If value is not a valid boolean string
    """
    value_lower = value.lower().strip()
    if value_lower in ('true', '1', 'yes', 'on'):
        return True
    elif value_lower in ('false', '0', 'no', 'off', ''):
        return False
    else:
        raise ValueError(
            f"Invalid boolean value for {field_name}: '{value}'. "
            f"Use: true/false, 1/0, yes/no, on/off"
        )


class NftjsonConfig(BaseSettings):
    """
    nftjson settings with validation.

    Values come from NFTJSON_* environment variables, then config.conf,
    then the defaults below.
    """

    # === nft Binary ===
    nft_program: str = Field(
        default="nft",
        description="nft binary (name looked up in PATH, or absolute path)"
    )
    apply_args: str = Field(
        default="",
        description="Extra arguments placed before '-j -f -' when applying"
    )
    list_args: str = Field(
        default="list ruleset",
        description="Arguments following '-j' when reading the ruleset"
    )
    timeout: Optional[float] = Field(
        default=None,
        description="Seconds to wait for nft (unset: wait indefinitely)"
    )

    # === Logging ===
    verbose: bool = False
    log_file: Optional[str] = None
    log_max_bytes: int = 10485760  # 10MB
    log_backup_count: int = 5

    config_file: Optional[str] = Field(
        default=None,
        description="config.conf to read (searched in standard locations if unset)"
    )

    model_config = {
        'env_prefix': ENV_PREFIX,
        'case_sensitive': False
    }

    @model_validator(mode='after')
    def apply_config_file(self):
        """Fill settings not given by environment variables from config.conf."""
        config_file = Path(self.config_file) if self.config_file else None
        config_dict = load_config_file(config_file)

        for name, field in type(self).model_fields.items():
            env_key = f'{ENV_PREFIX}{name.upper()}'
            if name == 'config_file' or env_key in os.environ:
                continue
            if name in self.model_fields_set:
                continue
            value = config_dict.get(env_key)
            if value is None:
                continue
            if field.annotation is bool:
                value = _parse_bool(value, name)
            elif field.annotation is int:
                value = int(value)
            elif name == 'timeout':
                value = float(value) if value else None
            setattr(self, name, value)

        return self

    def get_apply_args(self) -> List[str]:
        return shlex.split(self.apply_args)

    def get_list_args(self) -> List[str]:
        return shlex.split(self.list_args)


_config_instance = None


def get_config() -> NftjsonConfig:
    """
    Get global configuration instance with lazy initialization.

    Ensures configuration is loaded once and shared across modules.
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = NftjsonConfig()
    return _config_instance
