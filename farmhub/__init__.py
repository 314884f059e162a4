"""
FarmHub: equipment rental, maintenance scheduling and supply marketplace.
"""

__version__ = "0.1.0"
