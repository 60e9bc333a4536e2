"""
Review subsystem.

Reviews unlock once a swap is completed. Each participant may review
the other once; every write recomputes the reviewee's rating aggregate
over all reviews they have ever received, under a lock on the
reviewee's row so concurrent reviews cannot lose an update.
"""

import logging
from decimal import Decimal

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import Count, Sum
from rest_framework.exceptions import ValidationError

from .db import run_in_transaction
from .exceptions import (
    Conflict,
    DuplicateReview,
    Forbidden,
    ReviewNotFound,
    SwapNotCompleted,
    SwapNotFound,
    NotParticipant,
    UserNotFound,
)
from .models import Review, Swap, User
from .notifications import NotificationEvent, emit_on_commit

logger = logging.getLogger(__name__)

RATING_PRECISION = Decimal('0.01')


def _already_reviewed(swap_id, reviewer_id):
    return Review.objects.filter(swap_id=swap_id, reviewer_id=reviewer_id).exists()


def compute_rating(user_id):
    """
    Rating aggregate over every review a user has received.

    Returns:
        tuple: (average as Decimal quantized to 0.01, count)
    """
    stats = Review.objects.filter(reviewee_id=user_id).aggregate(
        total=Sum('rating'),
        count=Count('id'),
    )
    count = stats['count'] or 0
    if not count:
        return Decimal('0.00'), 0
    average = (Decimal(stats['total']) / count).quantize(RATING_PRECISION)
    return average, count


def recompute_rating(user_id, commit=True):
    """
    Recompute and store a user's rating aggregate.

    The user's row is locked for the duration of the read-aggregate-write
    cycle. Callers outside a transaction get one of their own.

    Args:
        user_id: Reviewee
        commit: Write the result; False only reports it

    Returns:
        tuple: (average, count)
    """
    with transaction.atomic():
        try:
            user = User.objects.select_for_update().get(pk=user_id)
        except User.DoesNotExist:
            raise UserNotFound()

        average, count = compute_rating(user_id)

        if commit and (user.rating_average != average or user.rating_count != count):
            User.objects.filter(pk=user_id).update(rating_average=average, rating_count=count)
            logger.info(f"User {user_id} rating updated to {average} over {count} reviews")

    return average, count


def _create_review(swap_id, reviewer_id, rating, comment):
    try:
        swap = Swap.objects.select_related('initiator', 'receiver').get(pk=swap_id)
    except Swap.DoesNotExist:
        raise SwapNotFound()

    if swap.status != Swap.COMPLETED:
        raise SwapNotCompleted()

    if not swap.is_participant(reviewer_id):
        raise NotParticipant('You can only review swaps you participated in.')

    if reviewer_id == swap.initiator_id:
        reviewer, reviewee = swap.initiator, swap.receiver
        direction = Review.INITIATOR_TO_RECEIVER
    else:
        reviewer, reviewee = swap.receiver, swap.initiator
        direction = Review.RECEIVER_TO_INITIATOR

    # Lock the reviewee first so concurrent reviews of the same user serialize
    User.objects.select_for_update().filter(pk=reviewee.pk).first()

    if _already_reviewed(swap.pk, reviewer_id):
        raise DuplicateReview()

    try:
        with transaction.atomic():
            review = Review.objects.create(
                swap=swap,
                reviewer=reviewer,
                reviewee=reviewee,
                direction=direction,
                rating=rating,
                comment=comment,
            )
    except IntegrityError:
        raise DuplicateReview()
    except DjangoValidationError as e:
        raise ValidationError(e.message_dict)

    recompute_rating(reviewee.pk)

    emit_on_commit([
        NotificationEvent(
            recipient_id=reviewee.pk,
            sender_id=reviewer.pk,
            kind='review',
            title='New Review',
            body=f"{reviewer.username} gave you a {rating}-star review.",
            related_swap_id=swap.pk,
        )
    ])
    return review


def submit_review(swap_id, reviewer_id, rating, comment):
    """
    Review the other participant of a completed swap.

    Args:
        swap_id: Completed swap
        reviewer_id: Participant writing the review
        rating: Integer 1-5
        comment: Written feedback

    Returns:
        Review: The stored review

    Raises:
        SwapNotFound: If the swap does not exist
        SwapNotCompleted: If the swap is not completed
        NotParticipant: If the reviewer did not take part in the swap
        DuplicateReview: If the reviewer already reviewed this swap
        OperationTimeout / Unavailable: If the database stays locked
    """
    review = run_in_transaction(
        lambda: _create_review(swap_id, reviewer_id, rating, comment),
        f"review of swap {swap_id}",
    )

    logger.info(f"Review {review.pk} created for swap {swap_id} by user {reviewer_id}")
    return review


def _apply_review_update(review_id, reviewer_id, rating, comment):
    try:
        review = Review.objects.select_for_update().get(pk=review_id)
    except Review.DoesNotExist:
        raise ReviewNotFound()

    if review.reviewer_id != reviewer_id:
        raise Forbidden('You can only update your own reviews.')

    User.objects.select_for_update().filter(pk=review.reviewee_id).first()

    update_fields = ['updated_at']
    if rating is not None:
        review.rating = rating
        update_fields.append('rating')
    if comment is not None:
        review.comment = comment
        update_fields.append('comment')

    try:
        review.save(update_fields=update_fields)
    except DjangoValidationError as e:
        raise ValidationError(e.message_dict)
    recompute_rating(review.reviewee_id)
    return review


def update_review(review_id, reviewer_id, rating=None, comment=None):
    """
    Change the rating and/or comment of an existing review.

    Only the reviewer may do this. The reviewee's rating
    aggregate is recomputed in the same transaction.

    Raises:
        ReviewNotFound: If the review does not exist
        Forbidden: If the caller did not write the review
    """
    try:
        review = run_in_transaction(
            lambda: _apply_review_update(review_id, reviewer_id, rating, comment),
            f"update of review {review_id}",
        )
    except IntegrityError as e:
        logger.error(f"Integrity error updating review {review_id}: {e}")
        raise Conflict() from e

    logger.info(f"Review {review_id} updated by user {reviewer_id}")
    return review


def reviews_for_user(user_id):
    """
    Reviews a user has received, newest first.

    Raises:
        UserNotFound: If the user does not exist
    """
    if not User.objects.filter(pk=user_id).exists():
        raise UserNotFound()

    return Review.objects.filter(reviewee_id=user_id).select_related(
        'reviewer', 'reviewee', 'swap'
    ).order_by('-created_at', '-pk')


def reviews_for_swap(swap_id, user):
    """
    Reviews of a swap, visible to its participants only.

    Raises:
        SwapNotFound: If the swap does not exist
        NotParticipant: If the user did not take part in the swap
    """
    try:
        swap = Swap.objects.get(pk=swap_id)
    except Swap.DoesNotExist:
        raise SwapNotFound()

    if not swap.is_participant(user.pk):
        raise NotParticipant()

    return swap.reviews.select_related('reviewer', 'reviewee').order_by('created_at', 'pk')


def rating_summary(user_id):
    """
    Stored rating aggregate of a user.

    Raises:
        UserNotFound: If the user does not exist
    """
    try:
        row = User.objects.values('rating_average', 'rating_count').get(pk=user_id)
    except User.DoesNotExist:
        raise UserNotFound()

    return {
        'user_id': user_id,
        'average': row['rating_average'],
        'count': row['rating_count'],
    }
