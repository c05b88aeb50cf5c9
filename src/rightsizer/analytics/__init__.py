# src/rightsizer/analytics/__init__.py
"""
Analytics Module - Resource, cost and ranking analytics
"""

from .resource_analytics import ResourceAnalyzer
from .cost_analytics import CostAnalyzer
from .ranking import rank, calculate_priority, calculate_optimization_savings

__all__ = [
    "ResourceAnalyzer",
    "CostAnalyzer",
    "rank",
    "calculate_priority",
    "calculate_optimization_savings",
]
