"""
rackbook - capacity and closed-period resolution for rack/platform bookings.
"""

__version__ = "0.1.0"
