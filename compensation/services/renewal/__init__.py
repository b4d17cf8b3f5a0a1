"""
Renewal services package.

- renewal_service: cycle transition of capped positions
"""

from compensation.services.renewal.renewal_service import RenewalResult, RenewalService


__all__ = [
    "RenewalResult",
    "RenewalService",
]
