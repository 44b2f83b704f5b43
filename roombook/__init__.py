"""
roombook - meeting room availability and booking rules.
"""

__version__ = "0.1.0"
