"""
Tests for the impact ledger.
"""

from decimal import Decimal

import pytest
from django.db import transaction

from core import ledger
from core.exceptions import Conflict, UserNotFound
from core.impact import ImpactCredit


@pytest.mark.django_db(transaction=True)
class TestCreditRequiresTransaction:
    def test_outside_atomic_block(self, alice):
        with pytest.raises(RuntimeError):
            ledger.credit(alice.pk, ImpactCredit(Decimal('1'), Decimal('0.2')))

        alice.refresh_from_db()
        assert alice.co2_saved == 0


@pytest.mark.django_db
class TestCredit:
    def test_additive(self, alice):
        with transaction.atomic():
            ledger.credit(alice.pk, ImpactCredit(Decimal('26.75'), Decimal('5.35')))
            ledger.credit(alice.pk, ImpactCredit(Decimal('1.25'), Decimal('0.25')))

        assert ledger.user_impact(alice.pk) == {
            'co2_saved': Decimal('28.000'),
            'waste_reduced': Decimal('5.600'),
            'swaps_completed': 2,
        }

    def test_negative_delta_rejected(self, alice):
        with pytest.raises(ValueError):
            with transaction.atomic():
                ledger.credit(alice.pk, ImpactCredit(Decimal('-1'), Decimal('0')))

    def test_negative_swap_count_rejected(self, alice):
        with pytest.raises(ValueError):
            with transaction.atomic():
                ledger.credit(alice.pk, ImpactCredit(), swaps_completed_delta=-1)

    def test_unknown_user(self):
        with pytest.raises(Conflict):
            with transaction.atomic():
                ledger.credit(999999, ImpactCredit(Decimal('1'), Decimal('0.2')))

    def test_rolls_back_with_enclosing_transaction(self, alice):
        with pytest.raises(RuntimeError):
            with transaction.atomic():
                ledger.credit(alice.pk, ImpactCredit(Decimal('10'), Decimal('2')))
                raise RuntimeError('transition failed')

        assert ledger.user_impact(alice.pk)['swaps_completed'] == 0

    def test_user_impact_unknown_user(self):
        with pytest.raises(UserNotFound):
            ledger.user_impact(999999)

    def test_fresh_user_has_zero_totals(self, bob):
        assert ledger.user_impact(bob.pk) == {
            'co2_saved': Decimal('0'),
            'waste_reduced': Decimal('0'),
            'swaps_completed': 0,
        }
