# sitefiles/config/loader.py
"""
Handles loading and merging of configuration from TOML files.
"""
import toml
from pathlib import Path
from typing import Dict, Any, Optional
import structlog

from sitefiles.exceptions import ConfigError

log = structlog.get_logger(__name__)

PROJECT_CONFIG_FILENAMES = [".sitefiles.toml", "sitefiles.toml", "pyproject.toml"]
USER_CONFIG_DIR = Path.home() / ".config" / "sitefiles"
USER_CONFIG_FILE = USER_CONFIG_DIR / "config.toml"

# toml key -> BuildConfig attribute
CONFIG_KEY_TO_BUILDCONFIG_ATTR_MAP: Dict[str, str] = {
    "src": "src_patterns",
    "exclude": "exclude_patterns",
    "dest": "dest_dir",
    "ext": "ext",
    "options": "options",
    "locals": "locals",
    "helpers": "helper_files",
    "partials": "partial_patterns",
    "include_file_data": "include_file_data",
    "buffer": "buffer",
    "hidden": "hidden",
    "base": "base_dir",
}

# keys whose values must be tables in the file.
TABLE_KEYS = ("options", "locals")


def _load_toml_file_data(file_path: Path) -> Dict[str, Any]:
    if not file_path.is_file(): return {}
    log.debug("loading_toml_config_file", path=str(file_path))
    try:
        data = toml.load(file_path)
    except (toml.TomlDecodeError, OSError) as e:
        raise ConfigError(f"failed to read config file '{file_path}': {e}") from e
    settings = data.get("tool", {}).get("sitefiles", {}) if file_path.name == "pyproject.toml" else data
    return _anchor_base_dirs(settings, file_path.parent)


def _anchor_base_dirs(settings: Dict[str, Any], config_dir: Path) -> Dict[str, Any]:
    # a relative `base` is relative to the file that sets it, not to the cwd.
    tables = [settings]
    profiles = settings.get("profiles")
    if isinstance(profiles, dict):
        tables.extend(p for p in profiles.values() if isinstance(p, dict))
    for table in tables:
        base = table.get("base")
        if base is None:
            continue
        if not isinstance(base, str):
            raise ConfigError(f"'base' must be a path string, got {type(base).__name__}")
        table["base"] = str((config_dir / Path(base).expanduser()).resolve())
    return settings


def load_and_merge_configs(project_dir: Optional[Path] = None) -> Dict[str, Any]:
    # user-level file first, then the first project file found in project_dir.
    project_dir = project_dir or Path.cwd()
    merged_toml_data: Dict[str, Any] = {}
    if USER_CONFIG_FILE.is_file():
        log.info("loading_user_global_config", path=str(USER_CONFIG_FILE))
        merged_toml_data.update(_load_toml_file_data(USER_CONFIG_FILE))

    for filename in PROJECT_CONFIG_FILENAMES:
        candidate = project_dir / filename
        if not candidate.is_file():
            continue
        project_settings = _load_toml_file_data(candidate)
        if not project_settings:
            continue
        log.info("loading_project_local_config", path=str(candidate))
        user_profiles = merged_toml_data.get("profiles") or {}
        project_profiles = project_settings.pop("profiles", None) or {}
        if not isinstance(user_profiles, dict) or not isinstance(project_profiles, dict):
            raise ConfigError("'profiles' must be a table of tables")
        if user_profiles or project_profiles:
            merged_toml_data["profiles"] = {**user_profiles, **project_profiles}
        merged_toml_data.update(project_settings)
        break

    if not merged_toml_data: log.debug("no_configuration_files_loaded")
    return merged_toml_data


def resolve_profile(raw_config: Dict[str, Any], profile_name: Optional[str]) -> Dict[str, Any]:
    """Flattens file-level settings and an optional profile into BuildConfig kwargs.

    Profile values override file-level values. Table keys (`options`, `locals`)
    are merged key by key rather than replaced.
    """
    layers = [{k: v for k, v in raw_config.items() if k != "profiles"}]
    if profile_name:
        profile = raw_config.get("profiles", {}).get(profile_name)
        if profile is None:
            raise ConfigError(f"profile '{profile_name}' not found in config files")
        log.info("applying_profile_settings", profile=profile_name)
        layers.append(profile)

    resolved: Dict[str, Any] = {}
    for layer in layers:
        for toml_key, attr in CONFIG_KEY_TO_BUILDCONFIG_ATTR_MAP.items():
            if toml_key not in layer:
                continue
            value = layer[toml_key]
            if toml_key in TABLE_KEYS:
                if not isinstance(value, dict):
                    raise ConfigError(f"'{toml_key}' must be a table, got {type(value).__name__}")
                resolved[attr] = {**resolved.get(attr, {}), **value}
            elif toml_key in ("src", "exclude", "helpers", "partials") and isinstance(value, str):
                resolved[attr] = [value]
            else:
                resolved[attr] = value

    if "dest_dir" in resolved: resolved["dest_dir"] = Path(resolved["dest_dir"])
    if "base_dir" in resolved: resolved["base_dir"] = Path(resolved["base_dir"])
    if "helper_files" in resolved: resolved["helper_files"] = [Path(p) for p in resolved["helper_files"]]
    return resolved
