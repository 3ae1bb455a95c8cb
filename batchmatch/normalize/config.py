"""
Configuration utilities for BatchMatch.

Provides configuration loading and validation for the matching engine.
"""

import logging
import yaml
from typing import Dict, Any
from pathlib import Path

logger = logging.getLogger(__name__)


DEFAULT_CONFIG_PATH = "config/batch_match.yaml"


def load_matching_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load matching configuration from YAML file.

    Values in the file override the defaults section by section, so a file
    only needs to list what it changes.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary
    """
    try:
        config_file = Path(config_path)
        if not config_file.exists():
            logger.warning(f"Configuration file {config_path} not found, using defaults")
            return get_default_matching_config()

        with open(config_file, 'r') as f:
            config = yaml.safe_load(f) or {}

        merged = merge_configs(get_default_matching_config(), config)

        logger.info(f"Loaded matching configuration from {config_path}")
        return merged

    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load configuration from {config_path}: {e}")
        return get_default_matching_config()


def get_default_matching_config() -> Dict[str, Any]:
    """
    Get default matching configuration.

    Returns:
        Default configuration dictionary
    """
    return {
        "matching": {
            "identifier_threshold": 0.75,
            "nearest_match_floor": 0.60,
            "max_nearest_matches": 2
        },
        "identifier": {
            "early_exit_similarity": 0.95,
            "max_length_difference": 3,
            "window_max_identifier_length": 6,
            "window_stride": 2,
            "quick_reject_ratio": 0.5
        },
        "expiry": {
            "label_prefixes": [
                "EXP", "EXPIRY", "EXPIRES", "EXP DATE", "USE BY", "BEST BY",
                "BEST BEFORE", "MFG", "LOT", "BATCH", "VALID UNTIL", "DO NOT USE AFTER"
            ],
            "label_separators": [" ", ": "]
        },
        "label_fields": {
            "keyword_min_ratio": 80
        },
        "ocr": {
            "min_confidence": 0.7
        },
        "cache": {
            "enabled": True
        }
    }


def _is_unit_interval(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and 0 <= value <= 1


def validate_matching_config(config: Dict[str, Any]) -> bool:
    """
    Validate matching configuration.

    Args:
        config: Configuration dictionary

    Returns:
        True if configuration is valid, False otherwise
    """
    required_sections = ["matching", "identifier", "expiry"]

    for section in required_sections:
        if section not in config:
            logger.error(f"Missing required configuration section: {section}")
            return False

    # Validate thresholds
    matching_config = config.get("matching", {})
    for key in ["identifier_threshold", "nearest_match_floor"]:
        if not _is_unit_interval(matching_config.get(key, 0.0)):
            logger.error(f"matching.{key} must be a number between 0 and 1")
            return False

    max_nearest = matching_config.get("max_nearest_matches", 2)
    if not isinstance(max_nearest, int) or max_nearest < 0:
        logger.error("matching.max_nearest_matches must be a non-negative integer")
        return False

    # Validate identifier search configuration
    identifier_config = config.get("identifier", {})
    for key in ["early_exit_similarity", "quick_reject_ratio"]:
        if not _is_unit_interval(identifier_config.get(key, 0.5)):
            logger.error(f"identifier.{key} must be a number between 0 and 1")
            return False

    for key in ["max_length_difference", "window_max_identifier_length"]:
        value = identifier_config.get(key, 0)
        if not isinstance(value, int) or value < 0:
            logger.error(f"identifier.{key} must be a non-negative integer")
            return False

    stride = identifier_config.get("window_stride", 2)
    if not isinstance(stride, int) or stride < 1:
        logger.error("identifier.window_stride must be a positive integer")
        return False

    # Validate expiry configuration
    expiry_config = config.get("expiry", {})
    if not isinstance(expiry_config.get("label_prefixes", []), list):
        logger.error("expiry.label_prefixes must be a list")
        return False

    if not isinstance(expiry_config.get("label_separators", []), list):
        logger.error("expiry.label_separators must be a list")
        return False

    # Validate OCR gate
    min_confidence = config.get("ocr", {}).get("min_confidence", 0.0)
    if not _is_unit_interval(min_confidence):
        logger.error("ocr.min_confidence must be a number between 0 and 1")
        return False

    logger.info("Configuration validation passed")
    return True


def merge_configs(base_config: Dict[str, Any], override_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge two configuration dictionaries.

    Args:
        base_config: Base configuration
        override_config: Override configuration

    Returns:
        Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def save_matching_config(config: Dict[str, Any], config_path: str) -> bool:
    """
    Save matching configuration to YAML file.

    Args:
        config: Configuration dictionary
        config_path: Path to save configuration

    Returns:
        True if successful, False otherwise
    """
    try:
        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w') as f:
            yaml.dump(config, f, default_flow_style=False, indent=2)

        logger.info(f"Saved configuration to {config_path}")
        return True

    except OSError as e:
        logger.error(f"Failed to save configuration to {config_path}: {e}")
        return False
