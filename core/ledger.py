"""
Per-user impact ledger.

Totals only grow, and only inside the transaction that completes a swap.
Credits are applied with F() expressions so concurrent completions that
touch the same user add up instead of overwriting each other.
"""

import logging

from django.db import transaction
from django.db.models import F

from .exceptions import Conflict, UserNotFound
from .impact import ImpactCredit, LEDGER_PRECISION
from .models import User

logger = logging.getLogger(__name__)


def credit(user_id, delta, swaps_completed_delta=1):
    """
    Add an impact credit to a user's totals.

    Must be called inside ``transaction.atomic()`` so the credit commits
    or rolls back together with the swap transition that caused it.

    Args:
        user_id: User to credit
        delta: ImpactCredit with non-negative components
        swaps_completed_delta: How many completed swaps to add

    Raises:
        RuntimeError: If called outside an atomic block
        ValueError: If any component is negative
        Conflict: If the user row could not be updated
    """
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError('Ledger credits must be applied inside transaction.atomic().')

    if delta.co2_saved < 0 or delta.waste_reduced < 0 or swaps_completed_delta < 0:
        raise ValueError('Ledger credits cannot be negative.')

    updated = User.objects.filter(pk=user_id).update(
        co2_saved=F('co2_saved') + delta.co2_saved.quantize(LEDGER_PRECISION),
        waste_reduced=F('waste_reduced') + delta.waste_reduced.quantize(LEDGER_PRECISION),
        swaps_completed=F('swaps_completed') + swaps_completed_delta,
    )

    if updated != 1:
        logger.error(f"Ledger credit for user {user_id} updated {updated} rows")
        raise Conflict()

    logger.info(
        f"Credited user {user_id}: co2 +{delta.co2_saved}, "
        f"waste +{delta.waste_reduced}, swaps +{swaps_completed_delta}"
    )


def user_impact(user_id):
    """
    Read a user's ledger totals.

    Returns:
        dict: co2_saved, waste_reduced (Decimal) and swaps_completed (int)

    Raises:
        UserNotFound: If the user does not exist
    """
    try:
        row = User.objects.values('co2_saved', 'waste_reduced', 'swaps_completed').get(pk=user_id)
    except User.DoesNotExist:
        raise UserNotFound()

    totals = ImpactCredit(co2_saved=row['co2_saved'], waste_reduced=row['waste_reduced'])
    return {**totals.as_dict(), 'swaps_completed': row['swaps_completed']}
