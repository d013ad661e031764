"""
vestledger Lifecycle Gate

Two-state machine gating when configuration may change.
"""

from vestledger.lifecycle.gate import require_configuring, start

__all__ = ["require_configuring", "start"]
