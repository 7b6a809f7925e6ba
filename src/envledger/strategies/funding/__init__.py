"""
Envelope funding strategies.
"""

from .aggressive import FundingAggressive
from .conservative import FundingConservative

__all__ = ["FundingAggressive", "FundingConservative"]
