"""
Unified Calendar - merged institutional and user calendar service.
"""

__version__ = "0.1.0"
