"""
Core module initialization.
Exports configuration, logging utilities and the domain error taxonomy.
"""

from foodie_hub.core.config import get_settings, setup_logging, Settings, EnvironmentMode
from foodie_hub.core.exceptions import (
    FoodieHubError,
    InvalidInput,
    NotFound,
    InvalidState,
    TransactionFailure,
)

__all__ = [
    "get_settings",
    "setup_logging",
    "Settings",
    "EnvironmentMode",
    "FoodieHubError",
    "InvalidInput",
    "NotFound",
    "InvalidState",
    "TransactionFailure",
]
