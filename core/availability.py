"""
Item availability store.

Availability is monotone: an item only ever goes from available to
unavailable, and only the swap engine asks for that when a swap
completes. The pending-offer set tracks which swaps currently propose
an item; it never affects availability.
"""

import logging

from .exceptions import ItemNotFound
from .models import Item, PendingOffer

logger = logging.getLogger(__name__)


def is_available(item_id):
    """
    Check whether an item can still be swapped.

    Raises:
        ItemNotFound: If the item does not exist
    """
    try:
        return Item.objects.values_list('is_available', flat=True).get(pk=item_id)
    except Item.DoesNotExist:
        raise ItemNotFound()


def mark_unavailable(item_id):
    """
    Mark an item as no longer available.

    Idempotent: marking an already unavailable item is a no-op.

    Returns:
        bool: True if the flag was flipped by this call
    """
    updated = Item.objects.filter(pk=item_id, is_available=True).update(is_available=False)
    if updated:
        logger.info(f"Item {item_id} marked unavailable")
    return bool(updated)


def record_pending_offer(item_id, swap_id):
    """Add a swap to the item's pending-offer set."""
    PendingOffer.objects.get_or_create(item_id=item_id, swap_id=swap_id)


def clear_pending_offer(item_id, swap_id):
    """Remove a swap from the item's pending-offer set. Missing entries are ignored."""
    PendingOffer.objects.filter(item_id=item_id, swap_id=swap_id).delete()


def pending_swap_ids(item_id):
    """Ids of the swaps currently proposing this item."""
    return list(
        PendingOffer.objects.filter(item_id=item_id)
        .order_by('swap_id')
        .values_list('swap_id', flat=True)
    )
