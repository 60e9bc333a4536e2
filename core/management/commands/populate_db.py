# Populate Database Management Command
import random
from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from faker import Faker

from core import reviews, swap_engine
from core.exceptions import SwapServiceError
from core.impact import BASE_FACTORS, CONDITION_MULTIPLIERS
from core.models import Item, Swap, User

ITEM_TITLES = {
    'clothing': ["Denim Jacket", "Wool Scarf", "Running Shoes"],
    'electronics': ["Bluetooth Speaker", "Laptop", "Headphones"],
    'furniture': ["Bookshelf", "Coffee Table", "Office Chair"],
    'books': ["Cookbook", "Novel Collection", "Textbook"],
    'toys': ["Board Game", "Lego Set", "Puzzle"],
    'sports': ["Road Bike", "Tennis Racket", "Yoga Mat"],
    'kitchen': ["Stand Mixer", "Cast Iron Pan", "Kettle"],
    'garden': ["Lawn Mower", "Planter Set", "Hedge Trimmer"],
    'automotive': ["Roof Rack", "Car Seat", "Tool Kit"],
    'other': ["Guitar", "Camera Tripod", "Sewing Machine"],
}


class Command(BaseCommand):
    help = 'Seeds the database with demo users, items, swaps and reviews.'

    def add_arguments(self, parser):
        parser.add_argument('--users', type=int, default=10, help='Number of users to create.')
        parser.add_argument('--items-per-user', type=int, default=3, help='Items listed by each user.')
        parser.add_argument('--swaps', type=int, default=15, help='Number of swaps to propose.')
        parser.add_argument('--seed', type=int, default=None, help='Random seed for reproducible data.')

    def handle(self, *args, **options):
        if options['users'] < 2:
            raise CommandError('At least two users are needed to swap anything.')

        if options['seed'] is not None:
            random.seed(options['seed'])
            Faker.seed(options['seed'])

        self.fake = Faker()

        users = self.create_users(options['users'])
        items = self.create_items(users, options['items_per_user'])
        swaps = self.create_swaps(items, options['swaps'])
        self.advance_swaps(swaps)
        self.create_reviews(swaps)

        self.stdout.write(self.style.SUCCESS('Database populated successfully.'))

    def create_users(self, count):
        self.stdout.write(f"Creating {count} users...")
        users = []

        for _ in range(count):
            email = self.fake.unique.email()
            users.append(User.objects.create_user(
                username=self.fake.unique.user_name(),
                email=email,
                password='password123',
                first_name=self.fake.first_name(),
                last_name=self.fake.last_name(),
            ))

        self.stdout.write(f"Created {len(users)} users.")
        return users

    def create_items(self, users, per_user):
        self.stdout.write("Creating items...")
        items = []

        for user in users:
            for _ in range(per_user):
                category = random.choice(list(BASE_FACTORS))
                items.append(Item.objects.create(
                    owner=user,
                    title=f"{random.choice(['Vintage', 'Modern', 'Used', 'Brand New'])} {random.choice(ITEM_TITLES[category])}",
                    description=self.fake.paragraph(),
                    category=category,
                    condition=random.choice(list(CONDITION_MULTIPLIERS)),
                    estimated_value=Decimal(random.uniform(5.0, 300.0)).quantize(Decimal('0.01')),
                ))

        self.stdout.write(f"Created {len(items)} items.")
        return items

    def create_swaps(self, items, count):
        self.stdout.write("Proposing swaps...")
        swaps = []

        for _ in range(count):
            offered = random.choice(items)
            candidates = [item for item in items if item.owner_id != offered.owner_id]
            if not candidates:
                break
            requested = random.choice(candidates)

            try:
                swaps.append(swap_engine.create_swap(offered.owner, offered.pk, requested.pk))
            except SwapServiceError as e:
                self.stdout.write(f"  Skipped swap {offered.pk} -> {requested.pk}: {e.detail}")

        self.stdout.write(f"Proposed {len(swaps)} swaps.")
        return swaps

    def advance_swaps(self, swaps):
        """Walk each swap to a random end state through the swap engine."""
        self.stdout.write("Advancing swaps...")
        outcomes = {}

        for swap in swaps:
            plan = random.choice(['pending', 'rejected', 'cancelled', 'accepted', 'completed', 'completed'])
            steps = {
                'pending': [],
                'rejected': [(swap.receiver_id, Swap.REJECTED)],
                'cancelled': [(swap.initiator_id, Swap.CANCELLED)],
                'accepted': [(swap.receiver_id, Swap.ACCEPTED)],
                'completed': [(swap.receiver_id, Swap.ACCEPTED), (swap.initiator_id, Swap.COMPLETED)],
            }[plan]

            payload = {
                'meetup_location': {
                    'coordinates': [float(self.fake.longitude()), float(self.fake.latitude())],
                    'address': {'city': self.fake.city(), 'country': self.fake.country()},
                },
                'meetup_time': timezone.now() - timedelta(days=random.randint(1, 30)),
            }

            try:
                for actor_id, target in steps:
                    swap_engine.transition(swap.pk, actor_id, target, payload)
            except SwapServiceError as e:
                self.stdout.write(f"  Swap {swap.pk} stopped early: {e.detail}")

            status = Swap.objects.values_list('status', flat=True).get(pk=swap.pk)
            outcomes[status] = outcomes.get(status, 0) + 1

        summary = ', '.join(f"{status}: {n}" for status, n in sorted(outcomes.items()))
        self.stdout.write(f"Swap outcomes - {summary or 'none'}")

    def create_reviews(self, swaps):
        self.stdout.write("Creating reviews...")
        created = 0

        completed = Swap.objects.filter(pk__in=[s.pk for s in swaps], status=Swap.COMPLETED)
        for swap in completed:
            for reviewer_id in swap.participant_ids():
                # 70% chance of leaving a review
                if random.random() < 0.7:
                    reviews.submit_review(
                        swap.pk,
                        reviewer_id,
                        random.randint(3, 5),
                        self.fake.sentence(nb_words=10),
                    )
                    created += 1

        self.stdout.write(f"Created {created} reviews.")
