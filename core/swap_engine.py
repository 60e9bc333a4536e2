"""
Swap engine.

Owns the swap state machine. Every status change goes through
``transition()``, which validates the request against the transition
table, applies the change with a compare-and-swap on the persisted
status, and runs the edge's side effects in the same database
transaction. Notifications are queued for delivery after commit.

Transition table (current status -> requested status):

    pending   -> accepted    receiver only
    pending   -> rejected    receiver only
    pending   -> cancelled   either participant
    accepted  -> completed   either participant, meetup details required
    accepted  -> cancelled   either participant

rejected, completed and cancelled are terminal.
"""

import logging
from dataclasses import dataclass
from typing import Callable, FrozenSet

from django.db import IntegrityError, OperationalError, transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework.exceptions import ValidationError

from . import availability, ledger
from .db import run_in_transaction
from .exceptions import (
    Conflict,
    Forbidden,
    InvalidTransition,
    ItemNotFound,
    ItemUnavailable,
    MissingMeetupDetails,
    SelfSwap,
    SwapNotFound,
    translate_operational_error,
)
from .impact import impact_statement, swap_credit
from .models import Item, Swap
from .notifications import NotificationEvent, emit_on_commit
from .validators import validate_meetup_location

logger = logging.getLogger(__name__)


INITIATOR = 'initiator'
RECEIVER = 'receiver'
EITHER = frozenset({INITIATOR, RECEIVER})
RECEIVER_ONLY = frozenset({RECEIVER})


# ============================================================================
# Side effects
# ============================================================================

def _clear_offers(swap):
    availability.clear_pending_offer(swap.initiator_item_id, swap.pk)
    availability.clear_pending_offer(swap.receiver_item_id, swap.pk)


def _on_accepted(swap, actor_id):
    return [
        NotificationEvent(
            recipient_id=swap.initiator_id,
            sender_id=actor_id,
            kind='swap_accepted',
            title='Swap Request Accepted',
            body=f"{swap.receiver.username} has accepted your swap request. You can now arrange a meetup.",
            related_swap_id=swap.pk,
        )
    ]


def _on_rejected(swap, actor_id):
    _clear_offers(swap)
    return [
        NotificationEvent(
            recipient_id=swap.initiator_id,
            sender_id=actor_id,
            kind='swap_rejected',
            title='Swap Request Rejected',
            body=f"{swap.receiver.username} has rejected your swap request.",
            related_swap_id=swap.pk,
        )
    ]


def _on_cancelled(swap, actor_id):
    _clear_offers(swap)
    actor = swap.initiator if actor_id == swap.initiator_id else swap.receiver
    return [
        NotificationEvent(
            recipient_id=swap.counterpart_of(actor_id),
            sender_id=actor_id,
            kind='swap_cancelled',
            title='Swap Cancelled',
            body=f"{actor.username} has cancelled the swap.",
            related_swap_id=swap.pk,
        )
    ]


def _on_completed(swap, actor_id):
    """
    Apply the completion effects.

    Runs once per swap: the compare-and-swap that precedes it only
    succeeds for the first caller to move the swap out of ``accepted``.
    """
    availability.mark_unavailable(swap.initiator_item_id)
    availability.mark_unavailable(swap.receiver_item_id)
    _clear_offers(swap)

    share = swap.impact.halved()
    ledger.credit(swap.initiator_id, share, swaps_completed_delta=1)
    ledger.credit(swap.receiver_id, share, swaps_completed_delta=1)

    return [
        NotificationEvent(
            recipient_id=swap.initiator_id,
            sender_id=actor_id,
            kind='swap_completed',
            title='Swap Completed',
            body=f"Your swap with {swap.receiver.username} has been completed. The items have been exchanged.",
            related_swap_id=swap.pk,
        ),
        NotificationEvent(
            recipient_id=swap.receiver_id,
            sender_id=actor_id,
            kind='swap_completed',
            title='Swap Completed',
            body=f"Your swap with {swap.initiator.username} has been completed. The items have been exchanged.",
            related_swap_id=swap.pk,
        ),
    ]


# ============================================================================
# Transition table
# ============================================================================

@dataclass(frozen=True)
class Edge:
    """
    One legal status change.

    Attributes:
        source / target: Status before and after
        roles: Participant roles allowed to request it
        requires_meetup: Payload must carry meetup location and time
        requires_available_items: Both items must still be available
        effect: Callable(swap, actor_id) applied after the status write;
            returns the notification events to send
    """

    source: str
    target: str
    roles: FrozenSet[str]
    effect: Callable
    requires_meetup: bool = False
    requires_available_items: bool = False

    def allows(self, role):
        return role in self.roles


TRANSITIONS = {
    (edge.source, edge.target): edge
    for edge in (
        Edge(Swap.PENDING, Swap.ACCEPTED, RECEIVER_ONLY, _on_accepted,
             requires_available_items=True),
        Edge(Swap.PENDING, Swap.REJECTED, RECEIVER_ONLY, _on_rejected),
        Edge(Swap.PENDING, Swap.CANCELLED, EITHER, _on_cancelled),
        Edge(Swap.ACCEPTED, Swap.COMPLETED, EITHER, _on_completed,
             requires_meetup=True, requires_available_items=True),
        Edge(Swap.ACCEPTED, Swap.CANCELLED, EITHER, _on_cancelled),
    )
}


def edge_for(current_status, target_status):
    """Edge for a status change, or None if the change is illegal."""
    return TRANSITIONS.get((current_status, target_status))


def allowed_targets(current_status):
    """Statuses reachable in one step from ``current_status``."""
    return sorted(target for (source, target) in TRANSITIONS if source == current_status)


# ============================================================================
# Helpers
# ============================================================================

def _load_for_update(swap_id):
    """Load and lock a swap row. Must run inside an atomic block."""
    try:
        return Swap.objects.select_for_update().get(pk=swap_id)
    except Swap.DoesNotExist:
        raise SwapNotFound()


def _lock_items(swap):
    """Lock both items of a swap in primary key order."""
    items = Item.objects.select_for_update().filter(
        pk__in=[swap.initiator_item_id, swap.receiver_item_id]
    ).order_by('pk')
    return {item.pk: item for item in items}


def _is_blank(value):
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (dict, list, tuple)):
        return not value
    return False


def _meetup_from_payload(payload):
    """
    Extract validated meetup details from a transition payload.

    Empty strings and empty objects count as missing.

    Returns:
        dict: Subset of {'meetup_location', 'meetup_time'} present in the payload

    Raises:
        ValidationError: If a supplied value is malformed
    """
    details = {}

    location = payload.get('meetup_location')
    if not _is_blank(location):
        try:
            validate_meetup_location(location)
        except DjangoValidationError as e:
            raise ValidationError({'meetup_location': e.messages})
        details['meetup_location'] = location

    meetup_time = payload.get('meetup_time')
    if not _is_blank(meetup_time):
        if isinstance(meetup_time, str):
            parsed = parse_datetime(meetup_time.strip())
            if parsed is None:
                raise ValidationError({'meetup_time': ['Meetup time must be an ISO-8601 datetime.']})
            meetup_time = parsed
        if timezone.is_naive(meetup_time):
            meetup_time = timezone.make_aware(meetup_time)
        details['meetup_time'] = meetup_time

    return details


def _apply_transition(swap_id, actor_id, target_status, payload):
    """
    One attempt at a transition. Runs inside the caller's atomic block.

    Returns:
        str: The status the swap had before the change
    """
    swap = _load_for_update(swap_id)
    current_status = swap.status

    role = swap.role_of(actor_id)
    if role is None:
        raise Forbidden('Only participants of this swap can change its status.')

    edge = edge_for(current_status, target_status)
    if edge is None:
        raise InvalidTransition(
            f"Cannot change swap status from {current_status} to {target_status}."
        )

    if not edge.allows(role):
        raise Forbidden(f"Only the receiver can mark a swap as {target_status}.")

    meetup = _meetup_from_payload(payload)
    if edge.requires_meetup and len(meetup) < 2:
        raise MissingMeetupDetails()

    now = timezone.now()
    changes = {'status': target_status, 'updated_at': now, **meetup}

    items = {}
    if edge.requires_available_items:
        items = _lock_items(swap)
        if target_status == Swap.COMPLETED and len(items) == 2:
            impact = swap_credit(items[swap.initiator_item_id], items[swap.receiver_item_id])
            changes.update(
                co2_saved=impact.co2_saved,
                waste_reduced=impact.waste_reduced,
                completed_at=now,
            )

    updated = Swap.objects.filter(pk=swap.pk, status=current_status).update(**changes)
    if updated != 1:
        logger.warning(
            f"Swap {swap.pk} changed status concurrently; {target_status} request by user {actor_id} rejected"
        )
        raise InvalidTransition(
            f"Swap {swap.pk} is no longer {current_status}."
        )

    # A lost race surfaces as InvalidTransition above, never as ItemUnavailable
    if edge.requires_available_items and (
        len(items) != 2 or not all(item.is_available for item in items.values())
    ):
        raise ItemUnavailable()

    for field, value in changes.items():
        setattr(swap, field, value)

    events = edge.effect(swap, actor_id)
    emit_on_commit(events)

    return current_status


# ============================================================================
# Operations
# ============================================================================

def transition(swap_id, actor_id, target_status, payload=None):
    """
    Move a swap to a new status.

    A database lock error retries the whole attempt, which re-reads the
    persisted status; a caller that lost a race therefore gets
    InvalidTransition rather than a database error.

    Args:
        swap_id: Swap to change
        actor_id: Id of the authenticated user requesting the change
        target_status: Requested status
        payload: Optional dict with ``meetup_location`` and ``meetup_time``

    Returns:
        Swap: The swap as persisted after the change

    Raises:
        SwapNotFound: If the swap does not exist
        Forbidden: If the actor is not a participant or lacks the role
        InvalidTransition: If the change is illegal from the persisted
            status, including when a concurrent caller got there first
        MissingMeetupDetails: If completing without meetup location and time
        ItemUnavailable: If accepting or completing with an item already swapped
        Conflict / OperationTimeout / Unavailable: On database failures
            that outlast the retries; nothing is applied
    """
    payload = payload or {}

    try:
        current_status = run_in_transaction(
            lambda: _apply_transition(swap_id, actor_id, target_status, payload),
            f"swap {swap_id} transition to {target_status}",
        )
    except IntegrityError as e:
        logger.error(f"Integrity error during swap {swap_id} transition to {target_status}: {e}")
        raise Conflict() from e

    logger.info(f"Swap {swap_id}: {current_status} -> {target_status} by user {actor_id}")

    return Swap.objects.select_related(
        'initiator', 'receiver', 'initiator_item', 'receiver_item'
    ).get(pk=swap_id)


def create_swap(initiator, initiator_item_id, receiver_item_id):
    """
    Propose a swap of one of the initiator's items for someone else's item.

    The receiver is the current owner of the requested item. Both items
    record the new swap as a pending offer; neither becomes unavailable.

    Args:
        initiator: User proposing the swap
        initiator_item_id: Item offered by the initiator
        receiver_item_id: Item requested

    Returns:
        Swap: The new swap in ``pending``

    Raises:
        ItemNotFound: If either item does not exist
        ItemUnavailable: If either item has already been swapped
        Forbidden: If the initiator does not own the offered item
        SelfSwap: If the requested item belongs to the initiator
    """
    try:
        with transaction.atomic():
            items = {
                item.pk: item
                for item in Item.objects.select_related('owner').filter(
                    pk__in=[initiator_item_id, receiver_item_id]
                )
            }
            initiator_item = items.get(initiator_item_id)
            receiver_item = items.get(receiver_item_id)

            if initiator_item is None or receiver_item is None:
                raise ItemNotFound('One or both items not found.')

            if not initiator_item.is_available or not receiver_item.is_available:
                raise ItemUnavailable()

            if initiator_item.owner_id != initiator.pk:
                raise Forbidden('You can only offer items that you own.')

            if receiver_item.owner_id == initiator.pk:
                raise SelfSwap()

            swap = Swap.objects.create(
                initiator=initiator,
                receiver=receiver_item.owner,
                initiator_item=initiator_item,
                receiver_item=receiver_item,
            )

            availability.record_pending_offer(initiator_item.pk, swap.pk)
            availability.record_pending_offer(receiver_item.pk, swap.pk)

            emit_on_commit([
                NotificationEvent(
                    recipient_id=receiver_item.owner_id,
                    sender_id=initiator.pk,
                    kind='swap_request',
                    title='New Swap Request',
                    body=(
                        f"{initiator.username} wants to swap their {initiator_item.title} "
                        f"for your {receiver_item.title}"
                    ),
                    related_item_id=receiver_item.pk,
                    related_swap_id=swap.pk,
                )
            ])

    except OperationalError as e:
        logger.error(f"Database error creating swap for user {initiator.pk}: {e}")
        raise translate_operational_error(e) from e
    except IntegrityError as e:
        logger.error(f"Integrity error creating swap for user {initiator.pk}: {e}")
        raise Conflict() from e

    logger.info(
        f"Swap {swap.pk} created by user {initiator.pk}: item {initiator_item.pk} for item {receiver_item.pk}"
    )
    return swap


def get_swap(swap_id, user):
    """
    Fetch a swap visible to the given user.

    Raises:
        SwapNotFound: If the swap does not exist
        Forbidden: If the user is not a participant
    """
    try:
        swap = Swap.objects.select_related(
            'initiator', 'receiver', 'initiator_item', 'receiver_item'
        ).get(pk=swap_id)
    except Swap.DoesNotExist:
        raise SwapNotFound()

    if not swap.is_participant(user.pk):
        raise Forbidden('You are not authorized to view this swap.')

    return swap


def list_swaps(user, status=None, role=None):
    """
    Swaps the user takes part in, most recently updated first.

    Args:
        user: Participant
        status: Optional status filter
        role: Optional 'initiator' or 'receiver' filter

    Returns:
        QuerySet of Swap
    """
    if role == INITIATOR:
        swaps = Swap.objects.filter(initiator=user)
    elif role == RECEIVER:
        swaps = Swap.objects.filter(receiver=user)
    else:
        swaps = Swap.objects.filter(Q(initiator=user) | Q(receiver=user))

    if status:
        swaps = swaps.filter(status=status)

    return swaps.select_related(
        'initiator', 'receiver', 'initiator_item', 'receiver_item'
    ).order_by('-updated_at', '-pk')


def get_swap_impact(swap_id, user):
    """
    Environmental impact of a swap.

    Completed swaps report the impact stored at completion; any other
    swap reports what completing it would save.

    Returns:
        dict: swap_id, status, is_projected, co2_saved, waste_reduced and
        the human-readable impact statement
    """
    swap = get_swap(swap_id, user)

    if swap.status == Swap.COMPLETED:
        impact = swap.impact
    else:
        impact = swap_credit(swap.initiator_item, swap.receiver_item)

    return {
        'swap_id': swap.pk,
        'status': swap.status,
        'is_projected': swap.status != Swap.COMPLETED,
        **impact.as_dict(),
        'statement': impact_statement(impact),
    }
