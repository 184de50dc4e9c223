"""
Vial Tracker.

Tracks shots drawn from an insulin vial and projects how long it lasts.
"""

__version__ = "0.1.0"
