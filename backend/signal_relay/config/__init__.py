"""
PURPOSE: Export configuration settings and the relay configuration store.

Settings are process-wide, environment-provided values fixed at startup.
RelayConfig/ConfigStore hold the runtime-mutable forwarding state.
"""

from .relay_config import ConfigStore, RelayConfig
from .settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "RelayConfig",
    "ConfigStore",
]
