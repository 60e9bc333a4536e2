# Audit Ledger Management Command
from decimal import Decimal

from django.core.management.base import BaseCommand, CommandError
from django.db.models import Q

from core.impact import ImpactCredit
from core.models import Swap, User


class Command(BaseCommand):
    help = (
        'Compares every user impact ledger with the completed swaps it was built from. '
        'Read-only; fails when any total is out of line.'
    )

    def add_arguments(self, parser):
        parser.add_argument(
            '--batch-size',
            type=int,
            default=1000,
            help='Number of users fetched per database round trip.',
        )

    def expected_totals(self, user):
        """Sum of the half-impacts of the user's completed swaps."""
        swaps = Swap.objects.filter(
            Q(initiator=user) | Q(receiver=user),
            status=Swap.COMPLETED,
        ).only('co2_saved', 'waste_reduced')

        total = ImpactCredit(co2_saved=Decimal('0'), waste_reduced=Decimal('0'))
        completed = 0
        for swap in swaps:
            total = total + swap.impact.halved()
            completed += 1
        return total, completed

    def handle(self, *args, **options):
        batch_size = options['batch_size']

        self.stdout.write('Auditing impact ledgers...')
        discrepancies = 0
        count = 0

        users = User.objects.only('id', 'co2_saved', 'waste_reduced', 'swaps_completed')
        for user in users.order_by('pk').iterator(chunk_size=batch_size):
            expected, completed = self.expected_totals(user)

            if (
                user.co2_saved != expected.co2_saved
                or user.waste_reduced != expected.waste_reduced
                or user.swaps_completed != completed
            ):
                discrepancies += 1
                self.stdout.write(self.style.WARNING(
                    f'  User {user.pk}: ledger co2={user.co2_saved} waste={user.waste_reduced} '
                    f'swaps={user.swaps_completed}; expected co2={expected.co2_saved} '
                    f'waste={expected.waste_reduced} swaps={completed}'
                ))

            count += 1

        self.stdout.write(f'Audited {count} users.')

        if discrepancies:
            raise CommandError(f'{discrepancies} ledger(s) out of line with completed swaps.')

        self.stdout.write(self.style.SUCCESS('All ledgers match their completed swaps.'))
