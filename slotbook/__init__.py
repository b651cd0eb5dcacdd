"""
slotbook - slot availability and conflict-safe booking for a single business.
"""

__version__ = "0.1.0"
