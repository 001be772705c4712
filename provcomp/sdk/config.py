"""Configuration management for prov-comp.

Configuration is split into two files:

1. settings.json - Machine-specific settings
   - profile: path to profile.yaml (optional, if not colocated)
   - default_output_format: "table" or "json"

2. profile.yaml - Modeling configuration
   - optimizer: OptimizerSettings fields
   - targets: ProductivityTargetSettings fields
   - synonyms: inline specialty synonym map
   - synonyms_file: path to a YAML/JSON synonym map (merged under inline entries)

Config directory resolution:
1. PROV_COMP_CONFIG_PATH environment variable (if set)
2. ~/.config/prov-comp/ (XDG_CONFIG_HOME fallback)

The engine itself never reads files; the CLI loads configuration here and
passes fully-formed settings objects in.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from .optimizer.settings import OptimizerSettings
from .targets.schemas import ProductivityTargetSettings

logger = logging.getLogger(__name__)


APP_NAME = "prov-comp"
CONFIG_PATH_ENV = "PROV_COMP_CONFIG_PATH"
SETTINGS_FILENAME = "settings.json"
PROFILE_FILENAME = "profile.yaml"

DEFAULT_PROFILE = {
    "optimizer": {
        "objective": {"kind": "align_percentile"},
        "error_metric": "squared",
        "cf_bounds": {"min_change_pct": 30, "max_change_pct": 30},
        "max_recommended_cf_percentile": 50,
        "exclusion_rules": {"min_clinical_fte": 0.5, "min_wrvu_per_cfte": 1000},
    },
    "targets": {
        "target_approach": "wrvu_percentile",
        "target_percentile": 50,
        "alignment_tolerance": 10,
    },
    "synonyms": {},
}


class ConfigNotFoundError(Exception):
    """Raised when a requested configuration file is missing."""
    pass


class ProfileNotFoundError(Exception):
    """Raised when no profile is found."""
    pass


class ConfigValidationError(Exception):
    """Raised when a profile section does not validate."""
    pass


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Resolution order:
    1. PROV_COMP_CONFIG_PATH environment variable
    2. ~/.config/prov-comp/ (XDG_CONFIG_HOME)
    """
    env_path = os.environ.get(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path)

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
    return Path(xdg_config_home) / APP_NAME


def get_settings_path() -> Path:
    """Path to settings.json (may not exist yet)."""
    return get_config_dir() / SETTINGS_FILENAME


def load_settings() -> dict:
    """Load machine-specific settings (empty dict if the file doesn't exist)."""
    settings_file = get_settings_path()

    if not settings_file.exists():
        return {}

    with open(settings_file, "r") as f:
        return json.load(f)


def save_settings(settings: dict) -> Path:
    """Save machine-specific settings to settings.json.

    Returns:
        Path to the saved settings file
    """
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)

    settings_file = config_dir / SETTINGS_FILENAME

    with open(settings_file, "w") as f:
        json.dump(settings, f, indent=2)

    return settings_file


def get_setting(key: str, default: Any = None) -> Any:
    """Get a setting value from settings.json."""
    return load_settings().get(key, default)


def set_setting(key: str, value: Any) -> Path:
    """Set a setting value in settings.json."""
    settings = load_settings()
    settings[key] = value
    return save_settings(settings)


def get_profile_path(require_exists: bool = False) -> Path:
    """Get the path to profile.yaml.

    Resolution order:
    1. settings.json "profile" key (if set)
    2. profile.yaml in config directory

    Raises:
        ProfileNotFoundError: If require_exists=True and no profile found
    """
    custom_profile = load_settings().get("profile")
    if custom_profile:
        profile_path = Path(custom_profile).expanduser()
        if require_exists and not profile_path.exists():
            raise ProfileNotFoundError(
                f"Profile not found at configured path: {profile_path}\n\n"
                f"Update with: prov-comp settings set profile /path/to/profile.yaml"
            )
        return profile_path

    profile_path = get_config_dir() / PROFILE_FILENAME
    if require_exists and not profile_path.exists():
        raise ProfileNotFoundError(
            f"No profile found at {profile_path}\n\n"
            f"Create one with: prov-comp settings init"
        )
    return profile_path


def _read_mapping(path: Path) -> dict:
    """Read a YAML or JSON file that must contain a mapping."""
    try:
        with open(path, "r") as f:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigValidationError(f"{path}: could not parse file: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigValidationError(f"{path}: expected a mapping at the top level")
    return data


def load_profile(path: Optional[Path] = None, require_exists: bool = False) -> dict:
    """Load profile.yaml (or an explicit profile file).

    Args:
        path: Explicit profile path; must exist when given
        require_exists: Raise when the default profile is missing

    Returns:
        Profile dictionary (empty when no default profile exists)

    Raises:
        ConfigNotFoundError: If an explicit path does not exist
        ProfileNotFoundError: If require_exists=True and no profile found
    """
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise ConfigNotFoundError(f"Config file not found: {path}")
        return _read_mapping(path)

    profile_path = get_profile_path(require_exists=require_exists)
    if not profile_path.exists():
        logger.debug(f"No profile at {profile_path}, using defaults")
        return {}
    return _read_mapping(profile_path)


def save_profile(profile: dict, path: Optional[Path] = None) -> Path:
    """Write profile.yaml (default location unless path is given)."""
    profile_path = Path(path) if path else get_profile_path()
    profile_path.parent.mkdir(parents=True, exist_ok=True)
    with open(profile_path, "w") as f:
        yaml.safe_dump(profile, f, default_flow_style=False, sort_keys=False)
    return profile_path


def init_profile(force: bool = False) -> Path:
    """Create a profile.yaml with default settings.

    Raises:
        FileExistsError: If a profile already exists and force is False
    """
    profile_path = get_profile_path()
    if profile_path.exists() and not force:
        raise FileExistsError(f"Profile already exists: {profile_path}")
    return save_profile(DEFAULT_PROFILE, profile_path)


def _section(profile: dict, name: str) -> dict:
    section = profile.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigValidationError(f"'{name}' section must be a mapping")
    return section


def load_optimizer_settings(path: Optional[Path] = None) -> OptimizerSettings:
    """Build OptimizerSettings from the profile's optimizer section.

    Raises:
        ConfigValidationError: If the section does not validate
    """
    section = _section(load_profile(path), "optimizer")
    try:
        return OptimizerSettings.model_validate(section)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid optimizer settings:\n{e}") from e


def load_target_settings(path: Optional[Path] = None) -> ProductivityTargetSettings:
    """Build ProductivityTargetSettings from the profile's targets section.

    Raises:
        ConfigValidationError: If the section does not validate
    """
    section = _section(load_profile(path), "targets")
    try:
        return ProductivityTargetSettings.model_validate(section)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid target settings:\n{e}") from e


def load_synonym_map(path: Optional[Path] = None, synonyms_file: Optional[Path] = None) -> Dict[str, str]:
    """Specialty synonym map from the profile and/or a standalone file.

    Precedence (later wins): profile synonyms_file, profile inline synonyms,
    the synonyms_file argument.
    """
    profile = load_profile(path)
    synonyms: Dict[str, str] = {}

    profile_file = profile.get("synonyms_file")
    if profile_file:
        synonyms.update(_read_synonym_file(Path(profile_file).expanduser()))
    synonyms.update({str(k): str(v) for k, v in _section(profile, "synonyms").items()})
    if synonyms_file is not None:
        synonyms.update(_read_synonym_file(Path(synonyms_file)))
    return synonyms


def _read_synonym_file(path: Path) -> Dict[str, str]:
    if not path.exists():
        raise ConfigNotFoundError(f"Synonym file not found: {path}")
    data = _read_mapping(path)
    # Allow {synonyms: {...}} as well as a bare mapping
    if isinstance(data.get("synonyms"), dict):
        data = data["synonyms"]
    return {str(k): str(v) for k, v in data.items()}
