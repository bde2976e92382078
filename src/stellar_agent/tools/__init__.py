"""tools module init"""
from stellar_agent.tools.toolkit import StellarToolkit

__all__ = ["StellarToolkit"]
