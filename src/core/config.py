import os
import re
from dataclasses import dataclass
from pathlib import Path

import yaml


class ConfigurationError(Exception):
    """Settings or rule data are missing or malformed."""


@dataclass
class RulesConfig:
    path: str
    skip_lines: int = 2
    metadata_columns: int = 2


@dataclass
class ClassificationConfig:
    min_pose_confidence: float = 0.5
    min_part_confidence: float | None = None
    angle_tolerance: int = 40
    model_height: float = 257


@dataclass
class DetectionConfig:
    model: str
    confidence: float


@dataclass
class Config:
    rules: RulesConfig
    classification: ClassificationConfig
    detection: DetectionConfig


def _substitute_env_vars(value: str) -> str:
    pattern = r"\$\{([^}]+)\}"

    def replace(match):
        env_var = match.group(1)
        return os.environ.get(env_var, match.group(0))

    return re.sub(pattern, replace, value)


def _process_config_values(data: dict) -> dict:
    result = {}
    for key, value in data.items():
        if isinstance(value, dict):
            result[key] = _process_config_values(value)
        elif isinstance(value, str):
            result[key] = _substitute_env_vars(value)
        else:
            result[key] = value
    return result


def _section(config_data: dict, name: str, cls: type):
    section = config_data.get(name)
    if not isinstance(section, dict):
        raise ConfigurationError(f"Missing config section: {name}")
    try:
        return cls(**section)
    except TypeError as e:
        raise ConfigurationError(f"Invalid config section '{name}': {e}") from e


def load_config(config_path: str = "config/settings.yaml") -> Config:
    try:
        with open(config_path, encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigurationError(f"Config file {config_path} is empty or not a mapping")

    config_data = _process_config_values(raw_config)

    rules = _section(config_data, "rules", RulesConfig)
    # 相對路徑以設定檔所在目錄為基準
    rules_path = Path(rules.path)
    if not rules_path.is_absolute():
        rules.path = str(Path(config_path).parent / rules_path)

    return Config(
        rules=rules,
        classification=_section(config_data, "classification", ClassificationConfig),
        detection=_section(config_data, "detection", DetectionConfig),
    )
