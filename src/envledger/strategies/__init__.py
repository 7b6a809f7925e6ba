"""
Strategy implementations for envledger.

Funding strategies decide how much of an envelope's target should be set
aside by a given day. They are looked up by the envelope's funding policy.

Registry System:
The module automatically registers the default strategies in the global
registry, making them available to every envelope with a matching policy.
"""

from .funding import FundingAggressive, FundingConservative
from .registry import register_defaults

# Register all default strategies when module is imported
register_defaults()

__all__ = [
    "FundingAggressive",
    "FundingConservative",
    "register_defaults",
]
