"""
vestledger Schedule & Allocation Store

Milestone timestamps plus a beneficiary × milestone allocation matrix.
"""

from vestledger.schedule.schedule import Schedule

__all__ = ["Schedule"]
