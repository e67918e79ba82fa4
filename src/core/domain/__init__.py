"""
Domain models and value objects.

Contains install referrer records, platform response codes and handshake states.
"""

from src.core.domain.referrer import (
    FirstRunAttribution,
    HandshakeState,
    InstallReferrerResponse,
    ReferrerDetails,
)

__all__ = [
    "InstallReferrerResponse",
    "HandshakeState",
    "ReferrerDetails",
    "FirstRunAttribution",
]
