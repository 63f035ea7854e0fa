"""Fingerprinting adapters - derive a device identifier without login."""

from visitor_quota.adapters.fingerprint.base import AbstractFingerprintProvider
from visitor_quota.adapters.fingerprint.machine import MachineFingerprintProvider

__all__ = [
    "AbstractFingerprintProvider",
    "MachineFingerprintProvider",
]
