#!/usr/bin/env python3

import os
import json
import tomllib
from pathlib import Path

import logging
import sys

import yaml

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr) # Default to stderr
    ]
)
logger = logging.getLogger("gourcers")

ENV_PREFIX = "GOURCERS_"
CONFIG_FILENAMES = ['config.json', 'config.toml', 'config.yaml', 'config.yml']


def configure_logging(level="INFO", fmt="%(levelname)s: %(message)s"):
    """Reconfigure the root logger (e.g. after -v/-q or a config file)."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format=fmt,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True
    )


def get_config_path():
    """Get the path to the configuration file.

    Checks in order:
    1. GOURCERS_CONFIG environment variable
    2. ~/.gourcers/ directory
    """
    if 'GOURCERS_CONFIG' in os.environ:
        path = Path(os.environ['GOURCERS_CONFIG'])
        if path.exists():
            return path

    config_dir = Path.home() / '.gourcers'
    for filename in CONFIG_FILENAMES:
        path = config_dir / filename
        if path.exists():
            return path

    # If no file exists, return default path
    return config_dir / 'config.json'


def load_config():
    """Load configuration from file."""
    config_path = get_config_path()

    # Start with default config
    config = get_default_config()

    # Load from file if it exists
    if config_path.exists():
        try:
            if config_path.suffix.lower() in ['.toml']:
                with open(config_path, 'rb') as f:
                    file_config = tomllib.load(f)
            elif config_path.suffix.lower() in ['.yaml', '.yml']:
                with open(config_path, 'r') as f:
                    file_config = yaml.safe_load(f) or {}
            else:
                # Default to JSON format
                with open(config_path, 'r') as f:
                    file_config = json.load(f)

            # Merge file config with defaults
            config = merge_configs(config, file_config)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Error loading config from {config_path}: {e}")

    # Apply environment variable overrides
    config = apply_env_overrides(config)

    return config


def get_default_config():
    """Get default configuration."""
    return {
        "general": {
            "data_directory": "",              # Empty = temporary directory
            "output": "./gource.mp4",
            "max_concurrent_tasks": 8,
            "failure_policy": "isolate",       # isolate | abort
            "skip_clone": False
        },
        "rules": {
            "include_file": "",
            "include": []
        },
        "github": {
            "token": "",
            "api_url": "https://api.github.com",
            "per_page": 100,
            "clone_protocol": "ssh",           # ssh | https
            "dump_requests": False,
            "max_retries": 3,                  # rate-limited requests
            "base_delay_seconds": 1,
            "max_delay_seconds": 60
        },
        "git": {
            "binary": "git",
            "timeout_seconds": 0               # 0 = no timeout
        },
        "gource": {
            "binary": "gource",
            "args": "--hide root -a 1 -s 1 -c 4 --key --multi-sampling",
            "resolution": "1920x1080"
        },
        "ffmpeg": {
            "enabled": True,
            "binary": "ffmpeg",
            "framerate": 60,
            "args": "-c:v libx264 -preset ultrafast -crf 1 -bf 0"
        },
        "sort": {
            "external": False,
            "binary": "qsv"
        },
        "logging": {
            "level": "INFO",
            "format": "%(levelname)s: %(message)s"
        }
    }


def merge_configs(base_config, override_config):
    """
    Overlay ``override_config`` onto ``base_config`` section by section.

    Both are ``{section: {key: value}}``; keys missing from an override
    section keep their base value. Neither argument is modified.
    """
    merged = {
        section: dict(values) if isinstance(values, dict) else values
        for section, values in base_config.items()
    }

    for section, values in (override_config or {}).items():
        if values is None:
            continue
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section].update(values)
        else:
            merged[section] = values

    return merged


def _coerce_env_value(value):
    lowered = value.lower()
    if lowered in ('true', 'yes', 'on'):
        return True
    if lowered in ('false', 'no', 'off'):
        return False
    if value.isdigit():
        return int(value)
    return value


def apply_env_overrides(config):
    """
    Apply ``GOURCERS_<SECTION>_<KEY>`` environment variables to ``config``.

    Section names contain no underscore, so the first one splits section
    from key: GOURCERS_GENERAL_MAX_CONCURRENT_TASKS=4 sets
    general.max_concurrent_tasks. Unknown sections or keys are ignored.
    """
    for env_key, value in os.environ.items():
        if not env_key.startswith(ENV_PREFIX) or env_key == "GOURCERS_CONFIG":
            continue

        section, _, key = env_key[len(ENV_PREFIX):].lower().partition('_')
        values = config.get(section)
        if not isinstance(values, dict) or key not in values:
            logger.debug(f"ignoring unknown config override {env_key}")
            continue

        values[key] = _coerce_env_value(value)

    return config
