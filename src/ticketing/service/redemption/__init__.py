"""Ticket redemption package.

Scans credentials at the door through an ordered chain of gates and redeems
tickets that pass them.
"""

from .enums import ScanMessages
from .service import RedemptionService, ScanAttempt, scan_ticket

__all__ = [
    "ScanMessages",
    "RedemptionService",
    "ScanAttempt",
    "scan_ticket",
]
