"""
Core configuration and logging for arangomap.
"""
from arangomap.core.config import ODMConfig, load_config, load_yaml_config
from arangomap.core.logging_setup import setup_logging

__all__ = ["ODMConfig", "load_config", "load_yaml_config", "setup_logging"]
