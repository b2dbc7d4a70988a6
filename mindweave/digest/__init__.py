"""
Email digest - settings, eligibility and delivery of the weekly summary.
"""

from mindweave.digest.delivery import EmailDelivery, get_delivery, set_delivery
from mindweave.digest.repository import DigestSettings, DigestSettingsRepository

__all__ = [
    "DigestSettings",
    "DigestSettingsRepository",
    "EmailDelivery",
    "get_delivery",
    "set_delivery",
]
