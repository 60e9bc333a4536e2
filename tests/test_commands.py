from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from core import reviews, swap_engine
from core.models import Item, Review, Swap, User

from .helpers import MEETUP_PAYLOAD


class CompletedSwapMixin:
    def setUp(self):
        self.alice = User.objects.create_user(
            username='alice', email='alice@test.com', password='password'
        )
        self.bob = User.objects.create_user(
            username='bob', email='bob@test.com', password='password'
        )
        laptop = Item.objects.create(
            owner=self.alice, title='Laptop', description='Runs fine',
            category='electronics', condition='new',
        )
        cookbook = Item.objects.create(
            owner=self.bob, title='Cookbook', description='Complete',
            category='books', condition='good',
        )
        swap = swap_engine.create_swap(self.alice, laptop.pk, cookbook.pk)
        swap_engine.transition(swap.pk, self.bob.pk, 'accepted')
        self.swap = swap_engine.transition(swap.pk, self.alice.pk, 'completed', MEETUP_PAYLOAD)


class RecalculateRatingsCommandTests(CompletedSwapMixin, TestCase):
    def setUp(self):
        super().setUp()
        reviews.submit_review(self.swap.pk, self.alice.pk, 5, 'Friendly and punctual trader.')
        reviews.submit_review(self.swap.pk, self.bob.pk, 3, 'Item had a few scratches.')

        # Drift the stored aggregates
        User.objects.filter(pk=self.bob.pk).update(rating_average=Decimal('1.00'), rating_count=7)
        User.objects.filter(pk=self.alice.pk).update(rating_average=Decimal('0.00'), rating_count=0)

    def test_recalculate_ratings(self):
        out = StringIO()
        call_command('recalculate_ratings', stdout=out)

        self.bob.refresh_from_db()
        self.alice.refresh_from_db()
        self.assertEqual(self.bob.rating_average, Decimal('5.00'))
        self.assertEqual(self.bob.rating_count, 1)
        self.assertEqual(self.alice.rating_average, Decimal('3.00'))
        self.assertEqual(self.alice.rating_count, 1)
        self.assertIn('Recalculation completed successfully', out.getvalue())
        self.assertIn('2 out of date', out.getvalue())

    def test_dry_run(self):
        out = StringIO()
        call_command('recalculate_ratings', '--dry-run', stdout=out)

        self.bob.refresh_from_db()
        self.assertEqual(self.bob.rating_average, Decimal('1.00'))
        self.assertEqual(self.bob.rating_count, 7)
        self.assertIn('[DRY-RUN]', out.getvalue())
        self.assertIn('Dry run completed', out.getvalue())

    def test_up_to_date_ratings_are_left_alone(self):
        call_command('recalculate_ratings', stdout=StringIO())
        out = StringIO()
        call_command('recalculate_ratings', '--batch-size', '1', stdout=out)

        self.assertIn('0 out of date', out.getvalue())


class AuditLedgerCommandTests(CompletedSwapMixin, TestCase):
    def test_consistent_ledgers(self):
        out = StringIO()
        call_command('audit_ledger', stdout=out)

        self.assertIn('Audited 2 users', out.getvalue())
        self.assertIn('All ledgers match', out.getvalue())

    def test_tampered_ledger(self):
        User.objects.filter(pk=self.bob.pk).update(co2_saved=Decimal('99.000'))
        out = StringIO()

        with self.assertRaises(CommandError):
            call_command('audit_ledger', stdout=out)

        self.assertIn(f'User {self.bob.pk}', out.getvalue())

    def test_missing_swap_count(self):
        User.objects.filter(pk=self.alice.pk).update(swaps_completed=0)

        with self.assertRaises(CommandError):
            call_command('audit_ledger', stdout=StringIO())


class PopulateDbCommandTests(TestCase):
    def test_populate_small_dataset(self):
        out = StringIO()
        call_command(
            'populate_db',
            '--users', '4',
            '--items-per-user', '2',
            '--swaps', '3',
            '--seed', '42',
            stdout=out,
        )

        self.assertEqual(User.objects.count(), 4)
        self.assertEqual(Item.objects.count(), 8)
        self.assertLessEqual(Swap.objects.count(), 3)
        self.assertIn('Database populated successfully', out.getvalue())

        for review in Review.objects.select_related('swap'):
            self.assertEqual(review.swap.status, Swap.COMPLETED)

    def test_populated_ledgers_pass_audit(self):
        call_command('populate_db', '--users', '5', '--swaps', '6', '--seed', '7', stdout=StringIO())

        out = StringIO()
        call_command('audit_ledger', stdout=out)
        self.assertIn('All ledgers match', out.getvalue())

    def test_needs_two_users(self):
        with self.assertRaises(CommandError):
            call_command('populate_db', '--users', '1', stdout=StringIO())
