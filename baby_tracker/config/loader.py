"""
Configuration management and loading.

Handles remote endpoints, local storage location and display settings.
"""

from dataclasses import dataclass, field
from datetime import tzinfo
from pathlib import Path
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml


IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1"

DEFAULT_DB_PATH = "baby_tracker.db"
DEFAULT_WINDOW_DAYS = 14
DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class FirebaseConfig:
    """Remote realtime store and identity provider settings."""
    database_url: str
    api_key: str

    def __post_init__(self):
        """Validate both values are present."""
        if not self.database_url or not self.database_url.strip():
            raise ValueError("database_url is required and cannot be empty")
        if not self.api_key or not self.api_key.strip():
            raise ValueError("api_key is required and cannot be empty")

    @property
    def signup_url(self) -> str:
        return f"{IDENTITY_TOOLKIT_URL}/accounts:signUp?key={self.api_key}"

    @property
    def login_url(self) -> str:
        return f"{IDENTITY_TOOLKIT_URL}/accounts:signInWithPassword?key={self.api_key}"

    @property
    def refresh_url(self) -> str:
        return f"{SECURE_TOKEN_URL}/token?key={self.api_key}"


@dataclass(frozen=True)
class DisplayConfig:
    """Settings for the derived daily views."""
    window_days: int = DEFAULT_WINDOW_DAYS
    timezone: Optional[str] = None

    def __post_init__(self):
        """Validate window size and timezone name."""
        if self.window_days <= 0:
            raise ValueError("window_days must be > 0")
        if self.timezone is not None:
            try:
                ZoneInfo(self.timezone)
            except (ZoneInfoNotFoundError, ValueError):
                raise ValueError(f"Unknown timezone: {self.timezone}")

    def get_tzinfo(self) -> Optional[tzinfo]:
        """Configured zone, or None for system local time."""
        return ZoneInfo(self.timezone) if self.timezone else None


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    firebase: FirebaseConfig
    db_path: str = DEFAULT_DB_PATH
    display: DisplayConfig = field(default_factory=DisplayConfig)
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self):
        """Validate HTTP timeout."""
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")


def load_app_config(path: str) -> AppConfig:
    """Load and validate application configuration from a YAML file.

    Unknown keys are rejected so that typos do not silently fall back
    to defaults.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated AppConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    allowed_top_keys = {'firebase', 'storage', 'display', 'http'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    # Firebase is the only required section
    if 'firebase' not in raw_config:
        raise ValueError("Missing required 'firebase' section")
    firebase_data = _section(raw_config, 'firebase', {'database_url', 'api_key'})
    for key in ('database_url', 'api_key'):
        if key not in firebase_data:
            raise ValueError(f"Missing required '{key}' in firebase")
        if not isinstance(firebase_data[key], str):
            raise ValueError(f"'{key}' in firebase must be a string")
    firebase = FirebaseConfig(
        database_url=firebase_data['database_url'].rstrip('/'),
        api_key=firebase_data['api_key'],
    )

    storage_data = _section(raw_config, 'storage', {'path'})
    db_path = storage_data.get('path', DEFAULT_DB_PATH)
    if not isinstance(db_path, str) or not db_path:
        raise ValueError("'path' in storage must be a non-empty string")

    display_data = _section(raw_config, 'display', {'window_days', 'timezone'})
    window_days = display_data.get('window_days', DEFAULT_WINDOW_DAYS)
    if isinstance(window_days, bool) or not isinstance(window_days, int):
        raise ValueError("'window_days' in display must be an integer")
    timezone_name = display_data.get('timezone')
    if timezone_name is not None and not isinstance(timezone_name, str):
        raise ValueError("'timezone' in display must be a string")
    display = DisplayConfig(window_days=window_days, timezone=timezone_name)

    http_data = _section(raw_config, 'http', {'timeout'})
    timeout = http_data.get('timeout', DEFAULT_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        raise ValueError("'timeout' in http must be a number")

    return AppConfig(
        firebase=firebase,
        db_path=db_path,
        display=display,
        timeout=float(timeout),
    )


def _section(raw_config: Dict[str, Any], name: str, allowed_keys: set) -> Dict[str, Any]:
    """Return an optional section as a dict, rejecting unknown keys.

    Args:
        raw_config: Parsed top-level configuration
        name: Section name
        allowed_keys: Keys permitted inside the section

    Returns:
        Section contents, or an empty dict if absent

    Raises:
        ValueError: If the section is not a dictionary or has unknown keys
    """
    data = raw_config.get(name)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {name}: {unknown_keys}")
    return data
