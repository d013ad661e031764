"""
vestledger Adapters - asset-transfer collaborators for the settlement engine.
"""

from vestledger.adapters.tokens import InMemoryToken, PoolTransferPort, Treasury

__all__ = ["InMemoryToken", "PoolTransferPort", "Treasury"]
