"""
Request screening: blocked phone numbers and blacklisted addresses.
"""

import logging
from typing import Optional

from django.utils import timezone

from rides.models import BlockedNumber, AddressBlacklist, normalize_phone, normalize_address

logger = logging.getLogger(__name__)


def is_number_blocked(phone: str) -> bool:
    number = normalize_phone(phone)
    if not number:
        return False
    return BlockedNumber.objects.filter(number=number).exists()


def find_blacklisted_address(*addresses: str) -> Optional[AddressBlacklist]:
    """
    Return the approved blacklist entry matching any of the given addresses.

    An entry matches when its normalized text equals the address or appears
    in it as a whole-word run ("123 main st" matches "123 main st college station").
    """
    candidates = [f" {normalize_address(a)} " for a in addresses if a]
    if not candidates:
        return None

    for entry in AddressBlacklist.objects.filter(status='approved'):
        needle = f" {entry.normalized_address} "
        if entry.normalized_address and any(needle in c for c in candidates):
            return entry
    return None


def approve_address(entry: AddressBlacklist, actor) -> AddressBlacklist:
    entry.status = 'approved'
    entry.approved_at = timezone.now()
    entry.approved_by = actor
    entry.save(update_fields=['status', 'approved_at', 'approved_by'])
    logger.info("Address blacklisted: %s (by %s)", entry.address, getattr(actor, 'username', None))
    return entry
