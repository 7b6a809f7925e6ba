"""
Strategy registry setup for envledger.
"""

from envledger.core.kinds import FundingPolicy
from envledger.core.scheduler import FundingRegistry

from .funding.aggressive import FundingAggressive
from .funding.conservative import FundingConservative


def register_defaults():
    """
    Register the default funding strategies in the global registry.

    Registered Strategies:
        - 'aggressive' (alias 'fast'): fund the full target right away
        - 'conservative' (alias 'slow'): fund linearly until the due date

    Note:
        This function is automatically called when the module is imported.
        Envelopes with funding 'none' (alias 'manual') never consult the
        registry.
    """
    FundingRegistry[FundingPolicy.AGGRESSIVE] = FundingAggressive()
    FundingRegistry[FundingPolicy.CONSERVATIVE] = FundingConservative()
