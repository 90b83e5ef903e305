"""
Content-based plugin identity
"""

import hashlib

# Never registered; marks sources that cannot become plugins
INVALID_IDENTITY = ""


def derive_identity(source: str) -> str:
    """
    Return the SHA-256 hex digest of the raw source text.

    Formatting differences yield different identities. Empty or
    whitespace-only source maps to INVALID_IDENTITY.
    """
    if not source or not source.strip():
        return INVALID_IDENTITY
    return hashlib.sha256(source.encode("utf-8")).hexdigest()


def is_valid_identity(identity: str) -> bool:
    return bool(identity) and identity != INVALID_IDENTITY
