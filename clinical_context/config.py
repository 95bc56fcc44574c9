"""
Configuration for patient context assembly.

Settings load from a YAML file and fall back to built-in defaults when the
file is absent.
"""

import os
from dataclasses import dataclass, fields
from typing import Optional

import yaml
from dotenv import load_dotenv


DEFAULT_CONFIG_PATH = "config/context.yaml"


@dataclass(frozen=True)
class ContextSettings:
    """Engine constants for assembly, estimation and degradation."""

    context_version: str = "1.0.0"
    chars_per_token: int = 4
    transcript_char_budget: int = 1000
    pruned_session_count: int = 1
    pruned_assessment_count: int = 3
    default_session_count: int = 5
    default_assessment_count: int = 10
    diagnosis_status: str = "active"
    medication_status: str = "active"
    treatment_plan_status: str = "active"
    session_status: str = "ended"
    alert_status: str = "new"

    def __post_init__(self):
        if self.chars_per_token <= 0:
            raise ValueError("chars_per_token must be positive")
        if self.pruned_session_count < 1 or self.pruned_assessment_count < 0:
            raise ValueError("Pruned counts must be non-negative and keep at least one session")

    @classmethod
    def from_config(cls, config_path: str = DEFAULT_CONFIG_PATH) -> "ContextSettings":
        """
        Load settings from a YAML file.

        Unknown keys are ignored. A missing file yields the defaults.

        Args:
            config_path: Path to the YAML settings file

        Returns:
            ContextSettings instance
        """
        try:
            with open(config_path) as f:
                config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            return cls()

        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in config.items() if key in known})


def load_settings(config_path: Optional[str] = None) -> ContextSettings:
    """
    Load settings, honouring a .env file and CONTEXT_CONFIG_PATH.

    Args:
        config_path: Explicit path; overrides the environment

    Returns:
        ContextSettings instance
    """
    load_dotenv()
    path = config_path or os.getenv("CONTEXT_CONFIG_PATH", DEFAULT_CONFIG_PATH)
    return ContextSettings.from_config(path)
