import json
import os
from typing import List, Union
from hdrstack.domain.models import HdrConfig
from hdrstack.features.accumulate.models import MAX_FRAMES
from hdrstack.kernel.system.logging import get_logger

logger = get_logger("config")

# The modular default tuning every capture starts from
DEFAULT_HDR_CONFIG = HdrConfig()


class ConfigError(ValueError):
    """Raised when a configuration file or value is unusable."""


def validate_config(cfg: HdrConfig) -> List[str]:
    """
    Validate configuration values are within acceptable ranges.

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    if not (1 <= cfg.accumulate.num_frames <= MAX_FRAMES):
        errors.append(f"num_frames must be in range [1, {MAX_FRAMES}]")

    if cfg.accumulate.reference_frames < 1:
        errors.append("reference_frames must be >= 1")

    if not (cfg.lp_filter.strength > 0):
        errors.append("strength must be > 0")

    if cfg.lp_filter.threshold.empty():
        errors.append("threshold curve must have at least one point")
    elif min(y for _, y in cfg.lp_filter.threshold.points) <= 0:
        errors.append("threshold curve must be strictly positive")

    if not (0 < cfg.tone_curve.fixed_q < 0.25):
        errors.append("fixed_q must be in range (0, 0.25)")

    if not (0 < cfg.tone_curve.q25_factor <= 1):
        errors.append("q25_factor must be in range (0, 1]")

    if cfg.tone_curve.min_quantile_gap < 0:
        errors.append("min_quantile_gap must be >= 0")

    if not (0 < cfg.metering.metering_quantile < 1):
        errors.append("metering_quantile must be in range (0, 1)")

    if cfg.metering.preview_frames < 0:
        errors.append("preview_frames must be >= 0")

    for name, curve in (
        ("q50_curve", cfg.tone_curve.q50_curve),
        ("pos_strength", cfg.tonemap.pos_strength),
        ("neg_strength", cfg.tonemap.neg_strength),
        ("exposure_adjust", cfg.metering.exposure_adjust),
    ):
        if curve.empty():
            errors.append(f"{name} curve must have at least one point")

    return errors


def load_config(path: Union[str, os.PathLike, None] = None) -> HdrConfig:
    """
    Loads a flat JSON tuning file layered over the defaults.
    Without a path the defaults are returned.
    """
    if path is None:
        return DEFAULT_HDR_CONFIG

    config_path = os.path.abspath(path)
    if not os.path.isfile(config_path):
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must hold a JSON object")

    base = DEFAULT_HDR_CONFIG.to_dict()
    unknown = sorted(set(data) - set(base))
    if unknown:
        logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")
    base.update(data)

    try:
        config = HdrConfig.from_flat_dict(base)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Error creating config from {config_path}: {e}") from e

    errors = validate_config(config)
    if errors:
        for err in errors:
            logger.error(f"Config validation error: {err}")
        raise ConfigError("; ".join(errors))

    logger.info(f"Loaded configuration from {config_path}")
    return config


def save_config(config: HdrConfig, output_path: Union[str, os.PathLike]) -> None:
    """
    Save configuration to a flat JSON file.
    """
    output_path = os.path.abspath(output_path)
    directory = os.path.dirname(output_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(output_path, "w") as f:
        json.dump(config.to_dict(), f, indent=4)

    logger.info(f"Configuration saved to {output_path}")
