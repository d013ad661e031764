"""
vestledger Asset Registry

Ordered list of accepted fungible assets with decimal metadata.
Position in the registry is disbursement priority.
"""

from vestledger.registry.registry import AssetRegistry

__all__ = ["AssetRegistry"]
