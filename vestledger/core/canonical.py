"""
vestledger: Canonical JSON Encoding — RFC 8785 (JCS)

The only canonicalization used for journal signing and hash chaining.

RFC 8785: https://www.rfc-editor.org/rfc/rfc8785
"""

import hashlib

import jcs


def canonicalize(obj: dict) -> bytes:
    """
    Encode a dict to RFC 8785 canonical JSON bytes.

    Output is deterministic regardless of key insertion order.
    Amounts must already be decimal strings; big ints are not JSON-safe
    across implementations.
    """
    return jcs.canonicalize(obj)


def canonical_hash(obj: dict) -> str:
    """Lowercase hex SHA-256 of the RFC 8785 canonical form."""
    return hashlib.sha256(canonicalize(obj)).hexdigest()
