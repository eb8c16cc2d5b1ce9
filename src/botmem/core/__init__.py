"""
Core module - configuration, logging, shared errors.

Components:
- config: Settings management via pydantic-settings + YAML config file
- errors: Exception taxonomy shared by stores, backends and the pipeline
- logging: Structured logging setup
"""

from botmem.core.config import Settings
from botmem.core.errors import BotmemError

__all__ = ["Settings", "BotmemError"]
