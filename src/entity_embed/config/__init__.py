"""
Configuration for the entity embedding trainer.
"""

from .config_loader import EmbedConfig, TrainSettings, DEFAULT_CONFIG

__all__ = ["EmbedConfig", "TrainSettings", "DEFAULT_CONFIG"]
