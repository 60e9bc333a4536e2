# Recalculate Ratings Management Command
from django.core.management.base import BaseCommand

from core.models import User
from core.reviews import compute_rating, recompute_rating


class Command(BaseCommand):
    help = 'Recalculates every user rating aggregate from the reviews they received.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Run the command without saving changes to the database.',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=1000,
            help='Number of users fetched per database round trip.',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        batch_size = options['batch_size']

        self.stdout.write('Recalculating user ratings...')
        users = User.objects.only('id', 'rating_average', 'rating_count').order_by('pk').iterator(chunk_size=batch_size)
        count = 0
        changed = 0

        for user in users:
            new_avg, new_total = compute_rating(user.pk)

            if user.rating_average != new_avg or user.rating_count != new_total:
                changed += 1
                if dry_run:
                    self.stdout.write(
                        f'  [DRY-RUN] User {user.pk}: Rating {user.rating_average} -> {new_avg}, '
                        f'Count {user.rating_count} -> {new_total}'
                    )
                else:
                    recompute_rating(user.pk)

            count += 1
            if count % 100 == 0:
                self.stdout.write(f'Processed {count} users...')

        self.stdout.write(f'Processed {count} users total, {changed} out of date.')

        if dry_run:
            self.stdout.write(self.style.SUCCESS('Dry run completed. No changes saved.'))
        else:
            self.stdout.write(self.style.SUCCESS('Recalculation completed successfully.'))
