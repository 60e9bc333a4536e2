"""
Tests for the review subsystem.
"""

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.db import transaction
from rest_framework.exceptions import ValidationError

from core import reviews, swap_engine
from core.exceptions import (
    DuplicateReview,
    Forbidden,
    NotParticipant,
    ReviewNotFound,
    SwapNotCompleted,
    SwapNotFound,
    UserNotFound,
)
from core.models import Notification, Review

from .helpers import MEETUP_PAYLOAD

User = get_user_model()

COMMENT = 'Friendly and on time, would swap again.'


@pytest.fixture
def complete_swap_with(make_user, make_item):
    """Build a completed swap between ``initiator`` and a fresh counterpart."""

    def _complete(initiator, receiver=None):
        receiver = receiver or make_user()
        offered = make_item(initiator, category='toys', condition='good')
        requested = make_item(receiver, category='books', condition='fair')
        swap = swap_engine.create_swap(initiator, offered.pk, requested.pk)
        swap_engine.transition(swap.pk, receiver.pk, 'accepted')
        return swap_engine.transition(swap.pk, initiator.pk, 'completed', MEETUP_PAYLOAD)

    return _complete


@pytest.mark.django_db
class TestSubmitReview:
    def test_initiator_reviews_receiver(self, alice, bob, completed_swap):
        review = reviews.submit_review(completed_swap.pk, alice.pk, 5, COMMENT)

        assert review.reviewer == alice
        assert review.reviewee == bob
        assert review.direction == Review.INITIATOR_TO_RECEIVER
        assert completed_swap.initiator_review == review
        assert completed_swap.receiver_review is None

    def test_receiver_reviews_initiator(self, alice, bob, completed_swap):
        review = reviews.submit_review(completed_swap.pk, bob.pk, 4, COMMENT)

        assert review.reviewee == alice
        assert review.direction == Review.RECEIVER_TO_INITIATOR
        assert completed_swap.receiver_review == review

    def test_updates_reviewee_aggregate(self, alice, bob, completed_swap):
        reviews.submit_review(completed_swap.pk, alice.pk, 5, COMMENT)

        bob.refresh_from_db()
        assert bob.rating_average == Decimal('5.00')
        assert bob.rating_count == 1

    def test_average_over_all_received_reviews(self, bob, make_user, complete_swap_with):
        for rating in [5, 3, 4]:
            swap = complete_swap_with(make_user(), receiver=bob)
            reviews.submit_review(swap.pk, swap.initiator_id, rating, COMMENT)

        bob.refresh_from_db()
        assert bob.rating_average == Decimal('4.00')
        assert bob.rating_count == 3

    def test_average_rounded_to_two_places(self, bob, make_user, complete_swap_with):
        for rating in [5, 4, 4]:
            swap = complete_swap_with(make_user(), receiver=bob)
            reviews.submit_review(swap.pk, swap.initiator_id, rating, COMMENT)

        bob.refresh_from_db()
        assert bob.rating_average == Decimal('4.33')

    def test_notifies_reviewee(self, alice, bob, completed_swap, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            reviews.submit_review(completed_swap.pk, alice.pk, 5, COMMENT)

        notification = Notification.objects.get(kind='review')
        assert notification.recipient == bob
        assert notification.sender == alice

    def test_unknown_swap(self, alice):
        with pytest.raises(SwapNotFound):
            reviews.submit_review(999999, alice.pk, 5, COMMENT)

    @pytest.mark.parametrize('fixture', ['pending_swap', 'accepted_swap'])
    def test_swap_not_completed(self, request, alice, fixture):
        swap = request.getfixturevalue(fixture)

        with pytest.raises(SwapNotCompleted):
            reviews.submit_review(swap.pk, alice.pk, 5, COMMENT)

    def test_cancelled_swap_cannot_be_reviewed(self, alice, pending_swap):
        swap_engine.transition(pending_swap.pk, alice.pk, 'cancelled')

        with pytest.raises(SwapNotCompleted):
            reviews.submit_review(pending_swap.pk, alice.pk, 5, COMMENT)

    def test_not_completed_checked_before_participation(self, carol, pending_swap):
        with pytest.raises(SwapNotCompleted):
            reviews.submit_review(pending_swap.pk, carol.pk, 5, COMMENT)

    def test_outsider(self, carol, completed_swap):
        with pytest.raises(NotParticipant):
            reviews.submit_review(completed_swap.pk, carol.pk, 5, COMMENT)

    def test_not_participant_is_forbidden(self):
        assert issubclass(NotParticipant, Forbidden)

    def test_duplicate(self, alice, bob, completed_swap):
        reviews.submit_review(completed_swap.pk, alice.pk, 5, COMMENT)

        with pytest.raises(DuplicateReview):
            reviews.submit_review(completed_swap.pk, alice.pk, 1, COMMENT)

        bob.refresh_from_db()
        assert bob.rating_average == Decimal('5.00')
        assert bob.rating_count == 1

    def test_duplicate_caught_by_constraint(self, alice, completed_swap, monkeypatch):
        reviews.submit_review(completed_swap.pk, alice.pk, 5, COMMENT)

        # A concurrent writer got past the existence check
        monkeypatch.setattr('core.reviews._already_reviewed', lambda swap_id, reviewer_id: False)
        with pytest.raises(DuplicateReview):
            reviews.submit_review(completed_swap.pk, alice.pk, 3, COMMENT)

    def test_invalid_rating_rejected_by_model(self, alice, completed_swap):
        with pytest.raises(ValidationError):
            reviews.submit_review(completed_swap.pk, alice.pk, 6, COMMENT)

        assert not Review.objects.exists()


@pytest.mark.django_db
class TestUpdateReview:
    @pytest.fixture
    def review(self, alice, completed_swap):
        return reviews.submit_review(completed_swap.pk, alice.pk, 5, COMMENT)

    def test_reviewer_updates_rating(self, alice, bob, review):
        updated = reviews.update_review(review.pk, alice.pk, rating=2)

        assert updated.rating == 2
        assert updated.comment == COMMENT
        bob.refresh_from_db()
        assert bob.rating_average == Decimal('2.00')
        assert bob.rating_count == 1

    def test_reviewer_updates_comment(self, alice, review):
        updated = reviews.update_review(review.pk, alice.pk, comment='Changed my mind, all good.')

        assert updated.comment == 'Changed my mind, all good.'
        assert updated.rating == 5

    def test_only_reviewer_may_update(self, bob, review):
        with pytest.raises(Forbidden):
            reviews.update_review(review.pk, bob.pk, rating=1)

        review.refresh_from_db()
        assert review.rating == 5

    def test_unknown_review(self, alice):
        with pytest.raises(ReviewNotFound):
            reviews.update_review(999999, alice.pk, rating=3)


@pytest.mark.django_db
class TestRecomputeAndReadSide:
    def test_recompute_repairs_drift(self, alice, bob, completed_swap):
        reviews.submit_review(completed_swap.pk, alice.pk, 4, COMMENT)
        User.objects.filter(pk=bob.pk).update(rating_average=Decimal('1.00'), rating_count=9)

        assert reviews.recompute_rating(bob.pk) == (Decimal('4.00'), 1)

        bob.refresh_from_db()
        assert bob.rating_count == 1

    def test_recompute_without_commit(self, alice, bob, completed_swap):
        reviews.submit_review(completed_swap.pk, alice.pk, 4, COMMENT)
        User.objects.filter(pk=bob.pk).update(rating_count=9)

        reviews.recompute_rating(bob.pk, commit=False)

        bob.refresh_from_db()
        assert bob.rating_count == 9

    def test_recompute_with_no_reviews(self, carol):
        assert reviews.recompute_rating(carol.pk) == (Decimal('0.00'), 0)

    def test_recompute_unknown_user(self):
        with pytest.raises(UserNotFound):
            with transaction.atomic():
                reviews.recompute_rating(999999)

    def test_reviews_for_user(self, alice, bob, completed_swap):
        reviews.submit_review(completed_swap.pk, alice.pk, 4, COMMENT)

        assert [r.rating for r in reviews.reviews_for_user(bob.pk)] == [4]
        assert list(reviews.reviews_for_user(alice.pk)) == []

    def test_reviews_for_unknown_user(self):
        with pytest.raises(UserNotFound):
            reviews.reviews_for_user(999999)

    def test_reviews_for_swap(self, alice, bob, completed_swap):
        reviews.submit_review(completed_swap.pk, alice.pk, 4, COMMENT)
        reviews.submit_review(completed_swap.pk, bob.pk, 5, COMMENT)

        assert len(reviews.reviews_for_swap(completed_swap.pk, alice)) == 2

    def test_reviews_for_swap_outsider(self, carol, completed_swap):
        with pytest.raises(NotParticipant):
            reviews.reviews_for_swap(completed_swap.pk, carol)

    def test_rating_summary(self, alice, bob, completed_swap):
        reviews.submit_review(completed_swap.pk, alice.pk, 3, COMMENT)

        assert reviews.rating_summary(bob.pk) == {
            'user_id': bob.pk,
            'average': Decimal('3.00'),
            'count': 1,
        }
