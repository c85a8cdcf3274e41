import copy
import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "bot_login": None,  # GitHub login Atlantis comments as; required
    # Seconds allowed between the reference time (PR creation) and the bot's comment.
    "plan_tolerance": 65,
    "apply_tolerance": 120,
    "approval": "approve",  # "approve" | "request_reviewers"
    "reviewers": [],
    "apply_delay": 2,  # seconds between approving and posting the apply command
    "backoff": {
        "initial_interval": 0.8,
        "multiplier": 3,
        "randomization_factor": 0.5,
        "max_interval": 15,
        "max_elapsed": 1200,  # per watch
    },
}

APPROVAL_MODES = ("approve", "request_reviewers")


def load_config(config_path: str = ".plangate.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .plangate.yml in the current directory
      3. CLI argument overrides
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        _merge(config, file_config)

    if cli_overrides:
        apply_overrides(config, cli_overrides)

    # Resolve credentials and repository from environment variables
    config["github_token"] = os.environ.get("GITHUB_API_TOKEN") or os.environ.get("GITHUB_TOKEN")
    if not config.get("repository"):
        config["repository"] = os.environ.get("GITHUB_REPOSITORY")

    return config


def apply_overrides(config: dict, overrides: dict) -> dict:
    """Apply CLI overrides in place, skipping options the user did not pass (None)."""
    for key, value in overrides.items():
        if value is not None:
            config[key] = value
    return config


def _merge(config: dict, file_config: dict) -> None:
    for key, value in file_config.items():
        if key == "backoff" and isinstance(value, dict):
            config["backoff"].update(value)
        else:
            config[key] = value


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: dict) -> None:
    """Raise ValueError describing the first invalid setting, if any."""
    if config.get("approval") not in APPROVAL_MODES:
        raise ValueError(f"approval must be one of {', '.join(APPROVAL_MODES)}; got {config.get('approval')!r}.")
    if config["approval"] == "request_reviewers" and not config.get("reviewers"):
        raise ValueError("approval: request_reviewers needs at least one entry in reviewers.")

    for key in ("plan_tolerance", "apply_tolerance", "apply_delay"):
        value = config.get(key)
        if not _is_number(value) or value < 0:
            raise ValueError(f"{key} must be a non-negative number of seconds; got {value!r}.")

    backoff = config.get("backoff") or {}
    if not isinstance(backoff, dict):
        raise ValueError(f"backoff must be a mapping of settings; got {backoff!r}.")
    unknown = sorted(set(backoff) - set(DEFAULT_CONFIG["backoff"]))
    if unknown:
        raise ValueError(f"Unknown backoff setting(s): {', '.join(unknown)}.")

    settings = {**DEFAULT_CONFIG["backoff"], **backoff}
    for key, value in settings.items():
        if not _is_number(value):
            raise ValueError(f"backoff.{key} must be a number; got {value!r}.")

    if settings["initial_interval"] <= 0:
        raise ValueError(f"backoff.initial_interval must be positive; got {settings['initial_interval']!r}.")
    if settings["multiplier"] < 1:
        raise ValueError(f"backoff.multiplier must be at least 1; got {settings['multiplier']!r}.")
    if not 0 <= settings["randomization_factor"] < 1:
        raise ValueError(
            f"backoff.randomization_factor must be in [0, 1); got {settings['randomization_factor']!r}."
        )
    if settings["max_interval"] < settings["initial_interval"]:
        raise ValueError(
            f"backoff.max_interval must be at least initial_interval ({settings['initial_interval']!r}); "
            f"got {settings['max_interval']!r}."
        )
    if settings["max_elapsed"] <= 0:
        raise ValueError(f"backoff.max_elapsed must be a positive number of seconds; got {settings['max_elapsed']!r}.")
