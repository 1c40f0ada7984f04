"""
HTTP API for the tiered time-series service.
"""

__version__ = "1.0.0"
