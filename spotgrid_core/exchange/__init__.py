"""
Exchange layer: venue abstraction plus paper and Binance implementations.
"""

from spotgrid_core.exchange.base import Exchange
from spotgrid_core.exchange.paper import PaperExchange

__all__ = [
    "Exchange",
    "PaperExchange",
]
