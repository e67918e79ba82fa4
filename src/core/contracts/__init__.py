"""
Contract Validation Module

JSON Schema контракты данных от внешних сервисов.
"""

from .validators import (
    ReferrerDetailsValidator,
    SchemaLoader,
    validate_referrer_details,
)

__all__ = [
    "SchemaLoader",
    "ReferrerDetailsValidator",
    "validate_referrer_details",
]
