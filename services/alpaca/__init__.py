"""
ASCOM Alpaca telescope driver for TELELINK.

This module provides network-based telescope control via the ASCOM Alpaca
protocol, behind the fixed TelescopeDriver contract.
"""

from .alpaca_client import (
    AlpacaEndpoint,
    AlpacaTelescopeDriver,
    create_driver,
    parse_driver_id,
)

__all__ = [
    "AlpacaEndpoint",
    "AlpacaTelescopeDriver",
    "create_driver",
    "parse_driver_id",
]
