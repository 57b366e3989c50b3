"""
Configuration for the Asset Registry CLI

Settings are layered: built-in defaults, an optional profile, the first
configuration file found (or the one given explicitly) and finally
ASSETREG_* environment variables. Each section is described by a pydantic
model that supplies its defaults and validates the merged result.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from registry.cache import DEFAULT_CAPACITY
from registry.ledger import DEFAULT_ORGANIZATION
from registry.manager import PRIVATE_DATA_COLLECTION


logger = logging.getLogger('assetreg-cli.config')

# Searched in order; the first existing file is used
CONFIG_SEARCH_PATHS = [
    Path.cwd() / '.assetreg.yml',
    Path.cwd() / '.assetreg.json',
    Path.home() / '.assetreg' / 'config.yml',
    Path.home() / '.assetreg' / 'config.json',
    Path('/etc/assetreg/config.yml'),
]

ENV_PREFIX = 'ASSETREG_'

OUTPUT_FORMATS = ['table', 'json', 'yaml']
LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


class RegistrySettings(BaseModel):
    cache_capacity: int = Field(DEFAULT_CAPACITY, gt=0, strict=True)
    private_collection: str = PRIVATE_DATA_COLLECTION

    @field_validator('private_collection')
    @classmethod
    def validate_collection(cls, v):
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class LedgerSettings(BaseModel):
    data_dir: str = '~/.assetreg/ledger'
    organization: str = DEFAULT_ORGANIZATION
    lock_timeout: float = Field(30.0, gt=0)

    @field_validator('data_dir', 'organization')
    @classmethod
    def validate_not_blank(cls, v):
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class CLISettings(BaseModel):
    output_format: str = 'table'
    verbose: int = Field(0, ge=0)

    @field_validator('output_format')
    @classmethod
    def validate_output_format(cls, v):
        if v not in OUTPUT_FORMATS:
            raise ValueError(f"must be one of {', '.join(OUTPUT_FORMATS)}")
        return v


class LoggingSettings(BaseModel):
    level: str = 'WARNING'

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        if str(v).upper() not in LOG_LEVELS:
            raise ValueError(f"must be one of {', '.join(LOG_LEVELS)}")
        return str(v).upper()


class Settings(BaseModel):
    """Complete CLI settings."""
    registry: RegistrySettings = Field(default_factory=RegistrySettings)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
    cli: CLISettings = Field(default_factory=CLISettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


DEFAULT_CONFIG = Settings().model_dump()

PROFILES = {
    'production': {
        'logging': {'level': 'WARNING'},
        'cli': {'verbose': 0},
    },
    'development': {
        'ledger': {'data_dir': './ledger_data'},
        'registry': {'cache_capacity': 100},
        'logging': {'level': 'DEBUG'},
        'cli': {'verbose': 2},
    },
}


def read_config_file(path: Path) -> Optional[Dict[str, Any]]:
    """Parse a YAML or JSON settings file; unreadable files yield None."""
    if path.suffix not in ('.yml', '.yaml', '.json'):
        logger.warning(f"Unsupported config file type: {path}")
        return None

    try:
        text = path.read_text()
        data = json.loads(text) if path.suffix == '.json' else yaml.safe_load(text)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Could not read config {path}: {e}")
        return None

    if data is not None and not isinstance(data, dict):
        logger.error(f"Config {path} must hold a mapping, got {type(data).__name__}")
        return None
    return data


def parse_env_value(value: str) -> Union[str, int, float, bool]:
    """Interpret booleans and numbers in environment values."""
    lowered = value.lower()
    if lowered in ('true', 'yes'):
        return True
    if lowered in ('false', 'no'):
        return False

    for convert in (int, float):
        try:
            return convert(value)
        except ValueError:
            continue
    return value


def environment_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    """
    Collect ASSETREG_* variables into a nested mapping.

    The first word after the prefix selects the section when it names one,
    so ASSETREG_REGISTRY_CACHE_CAPACITY sets registry.cache_capacity.
    """
    overrides: Dict[str, Any] = {}

    for name, raw in environ.items():
        if not name.startswith(ENV_PREFIX):
            continue

        key = name[len(ENV_PREFIX):].lower()
        section, _, option = key.partition('_')
        if section in DEFAULT_CONFIG and option:
            overrides.setdefault(section, {})[option] = parse_env_value(raw)
        else:
            overrides[key] = parse_env_value(raw)

    return overrides


def merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Return base updated recursively with override."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def expand_paths(config: Dict[str, Any]) -> Dict[str, Any]:
    """Expand ~ and $VARS in string values, in place."""
    for key, value in config.items():
        if isinstance(value, dict):
            expand_paths(value)
        elif isinstance(value, str) and ('~' in value or '$' in value):
            config[key] = os.path.expanduser(os.path.expandvars(value))
    return config


class ConfigurationManager:
    """Layered settings lookup for the CLI."""

    def __init__(self, config_file: Optional[str] = None, profile: Optional[str] = None):
        self.config_file = config_file
        self.profile = profile
        self._config: Optional[Dict[str, Any]] = None
        self._sources: List[str] = []

    def _locate_config_file(self) -> Optional[Path]:
        if self.config_file:
            return Path(self.config_file)
        return next((path for path in CONFIG_SEARCH_PATHS if path.exists()), None)

    def load(self) -> Dict[str, Any]:
        """Merge all layers once and return the result."""
        if self._config is not None:
            return self._config

        layers = [("defaults", DEFAULT_CONFIG)]

        if self.profile in PROFILES:
            layers.append((f"profile:{self.profile}", PROFILES[self.profile]))

        path = self._locate_config_file()
        if path is not None:
            data = read_config_file(path)
            if data:
                layers.append((f"file:{path}", data))
                logger.debug(f"Using config file {path}")

        env = environment_overrides(os.environ)
        if env:
            layers.append(("environment", env))

        config: Dict[str, Any] = {}
        for _, layer in layers:
            config = merge(config, layer)

        self._sources = [name for name, _ in layers]
        self._config = expand_paths(config)
        return self._config

    def get(self, key_path: str, default: Any = None) -> Any:
        """Look up a dotted key such as 'registry.cache_capacity'."""
        node: Any = self.load()
        for part in key_path.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def settings(self) -> Settings:
        """Return the merged configuration as a validated model."""
        return Settings.model_validate(self.load())

    def validate(self) -> List[str]:
        """Return one message per invalid setting; empty when valid."""
        try:
            self.settings()
        except ValidationError as e:
            return [
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in e.errors()
            ]
        return []

    def get_sources(self) -> List[str]:
        """Names of the layers that contributed, lowest precedence first."""
        self.load()
        return list(self._sources)
