"""
Configuration management and loading.

Handles vial constants, display, storage and logging settings.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml

CONFIG_ENV_VAR = "VIAL_TRACKER_CONFIG"

CATEGORY_FIELDS = ("brand", "type", "location")


@dataclass(frozen=True)
class VialConfig:
    """Vial capacity and dosing constants."""
    capacity_ml: float = 10.0
    shot_size_ml: float = 0.11
    shots_per_day: float = 1.0

    def __post_init__(self):
        """Validate vial values are positive."""
        if self.capacity_ml <= 0:
            raise ValueError("capacity_ml must be > 0")
        if self.shot_size_ml <= 0:
            raise ValueError("shot_size_ml must be > 0")
        if self.shots_per_day <= 0:
            raise ValueError("shots_per_day must be > 0")


@dataclass(frozen=True)
class DisplayConfig:
    """Settings for paged record listings."""
    page_size: int = 10

    def __post_init__(self):
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")


@dataclass(frozen=True)
class StorageConfig:
    db_path: str = "vial_tracker.db"


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    json: bool = False


@dataclass(frozen=True)
class DraftDefaults:
    """Field values a fresh draft starts with (date is always today)."""
    brand: str = ""
    type: str = ""
    location: str = ""
    amount_ml: str = ""
    amount_mg: str = ""


@dataclass(frozen=True)
class TrackerConfig:
    """Complete tracker configuration."""
    vial: VialConfig = field(default_factory=VialConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    draft_defaults: DraftDefaults = field(default_factory=DraftDefaults)
    presets: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    def is_custom(self, category: str, value: str) -> bool:
        """Whether a category value falls outside the configured presets.

        Categories without presets treat every non-empty value as custom.
        """
        if not value:
            return False
        return value not in self.presets.get(category, ())


def resolve_config_path(path: Optional[str] = None) -> Optional[str]:
    """Pick the config file from an explicit path or the environment."""
    return path or os.environ.get(CONFIG_ENV_VAR) or None


def load_config(path: Optional[str] = None) -> TrackerConfig:
    """Load and validate tracker configuration from a YAML file.

    Every section is optional. Unknown keys are rejected so that a typo
    never silently falls back to a default capacity or shot size.

    Args:
        path: Path to YAML configuration file; None returns the defaults

    Returns:
        Validated TrackerConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    if path is None:
        return TrackerConfig()

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if raw_config is None:
        return TrackerConfig()
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a mapping")

    allowed_top_keys = {'vial', 'display', 'storage', 'logging', 'draft_defaults', 'presets'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    vial_data = _section(raw_config, 'vial', {'capacity_ml', 'shot_size_ml', 'shots_per_day'})
    vial = VialConfig(**{
        key: _positive_number(value, f"vial.{key}") for key, value in vial_data.items()
    })

    display_data = _section(raw_config, 'display', {'page_size'})
    if 'page_size' in display_data:
        page_size = display_data['page_size']
        if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1:
            raise ValueError("'display.page_size' must be an integer >= 1")
        display = DisplayConfig(page_size=page_size)
    else:
        display = DisplayConfig()

    storage_data = _section(raw_config, 'storage', {'db_path'})
    if 'db_path' in storage_data and not isinstance(storage_data['db_path'], str):
        raise ValueError("'storage.db_path' must be a string")
    storage = StorageConfig(**storage_data)

    logging_data = _section(raw_config, 'logging', {'level', 'json'})
    if 'level' in logging_data:
        level = logging_data['level']
        if not isinstance(level, str) or level.upper() not in {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}:
            raise ValueError("'logging.level' must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")
        logging_data['level'] = level.upper()
    if 'json' in logging_data and not isinstance(logging_data['json'], bool):
        raise ValueError("'logging.json' must be true or false")
    logging_config = LoggingConfig(**logging_data)

    defaults_data = _section(
        raw_config, 'draft_defaults', {'brand', 'type', 'location', 'amount_ml', 'amount_mg'}
    )
    draft_defaults = DraftDefaults(**{
        key: _text(value, f"draft_defaults.{key}") for key, value in defaults_data.items()
    })

    presets_data = _section(raw_config, 'presets', set(CATEGORY_FIELDS))
    presets = {}
    for category, values in presets_data.items():
        if not isinstance(values, list):
            raise ValueError(f"'presets.{category}' must be a list")
        presets[category] = tuple(_text(v, f"presets.{category}") for v in values)

    return TrackerConfig(
        vial=vial,
        display=display,
        storage=storage,
        logging=logging_config,
        draft_defaults=draft_defaults,
        presets=presets
    )


def _section(raw_config: Dict, name: str, allowed_keys: set) -> Dict:
    """Extract an optional section and reject unknown keys in it.

    Args:
        raw_config: Parsed YAML document
        name: Section name
        allowed_keys: Keys permitted inside the section

    Returns:
        A copy of the section (empty if absent)

    Raises:
        ValueError: If the section is not a mapping or has unknown keys
    """
    data = raw_config.get(name)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {name}: {unknown_keys}")
    return dict(data)


def _positive_number(value, path: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ValueError(f"'{path}' must be > 0")
    return float(value)


def _text(value, path: str) -> str:
    # YAML turns bare 0.11 into a float; amounts are stored as text
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValueError(f"'{path}' must be a string")
    return str(value)
