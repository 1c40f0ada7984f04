"""
API routers for the tiered time-series service.
"""

__all__ = ["timeseries"]
