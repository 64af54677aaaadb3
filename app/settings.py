from constants import *
import copy
import yaml
import os

import logging

# Retrieve main logger
logger = logging.getLogger("main")


# Cache variable
_cached_settings = None


def load_settings(force=False, config_file=None):
    global _cached_settings

    if _cached_settings and not force:
        return _cached_settings

    config_file = config_file or CONFIG_FILE

    if os.path.exists(config_file):
        logger.debug(f"Reading configuration file: {config_file}")
        with open(config_file, "r") as yaml_file:
            settings = yaml.safe_load(yaml_file) or {}

        # Deep merge with defaults to ensure new keys are present
        merged_settings = copy.deepcopy(DEFAULT_SETTINGS)
        for section, values in settings.items():
            if isinstance(values, dict) and section in merged_settings and isinstance(merged_settings[section], dict):
                merged_settings[section].update(values)
            else:
                merged_settings[section] = values
        settings = merged_settings

    else:
        settings = copy.deepcopy(DEFAULT_SETTINGS)
        os.makedirs(os.path.dirname(config_file), exist_ok=True)
        with open(config_file, "w") as yaml_file:
            yaml.dump(settings, yaml_file)

    database_url = os.environ.get("TAGSYNC_DATABASE_URL")
    if database_url:
        settings["database"]["url"] = database_url

    _cached_settings = settings
    return settings


def verify_settings(section, data):
    success = True
    errors = []
    if section == "tags":
        marker = data.get("marker", TAG_MARKER)
        if not isinstance(marker, str) or len(marker) != 1 or marker.isalnum() or marker == "_":
            success = False
            errors.append({"path": "tags/marker", "error": f"Marker {marker!r} must be a single non-word character."})
        for key in ("max_length", "max_manual_tags", "retry_attempts"):
            value = data.get(key, 1)
            if not isinstance(value, int) or value < 1:
                success = False
                errors.append({"path": f"tags/{key}", "error": f"{key} must be a positive integer."})
        delay = data.get("retry_delay", 0)
        if not isinstance(delay, (int, float)) or delay < 0:
            success = False
            errors.append({"path": "tags/retry_delay", "error": "retry_delay must be a non-negative number."})
    return success, errors


def set_tags_settings(data, config_file=None):
    success, errors = verify_settings("tags", data)
    if not success:
        return success, errors
    config_file = config_file or CONFIG_FILE
    settings = load_settings(config_file=config_file)
    settings["tags"].update(data)
    with open(config_file, "w") as yaml_file:
        yaml.dump(settings, yaml_file)
    reload_conf(config_file=config_file)
    return success, errors


def reload_conf(config_file=None):
    """Reload application settings cache"""
    global _cached_settings
    _cached_settings = None
    return load_settings(force=True, config_file=config_file)
