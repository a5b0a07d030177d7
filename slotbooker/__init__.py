"""
slotbooker - book an appointment with a provider on a chosen day and hour.
"""

__version__ = "0.1.0"
