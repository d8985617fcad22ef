"""
Casework - intervention life-cycle and alerting core for social-work
case management.

Tracks cases through the intervention workflow, keeps the field
notebook consistent with scheduled events, and derives the cross-case
alerts shown on the caseworker dashboard.
"""

__version__ = "0.1.0"
