"""
DPS log store: persistence, caching and filtered search for combat
encounter logs.
"""

__version__ = "1.0.0"
