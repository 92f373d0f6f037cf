"""
STEM lab configuration module.

Contains feature flags and the YAML experiment configuration.
"""

from .feature_flags import FeatureFlags
from .experiment_config import ExperimentConfig, config_from_dict, load_config

__all__ = ["FeatureFlags", "ExperimentConfig", "config_from_dict", "load_config"]
