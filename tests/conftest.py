"""
Shared fixtures for the EcoSwap test suite.
"""

import itertools

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from core import swap_engine
from core.models import Item

from .helpers import MEETUP_PAYLOAD

User = get_user_model()


@pytest.fixture
def make_user(db):
    """Factory for users with unique usernames and emails."""
    counter = itertools.count(1)

    def _make(username=None, **kwargs):
        username = username or f'user{next(counter)}'
        return User.objects.create_user(
            username=username,
            email=f'{username}@test.com',
            password='testpass123',
            **kwargs
        )

    return _make


@pytest.fixture
def make_item(db):
    def _make(owner, category='other', condition='good', title='Test item', **kwargs):
        return Item.objects.create(
            owner=owner,
            title=title,
            description='An item listed for swapping',
            category=category,
            condition=condition,
            **kwargs
        )

    return _make


@pytest.fixture
def alice(make_user):
    return make_user('alice')


@pytest.fixture
def bob(make_user):
    return make_user('bob')


@pytest.fixture
def carol(make_user):
    return make_user('carol')


@pytest.fixture
def laptop(make_item, alice):
    """Electronics in new condition: 50kg CO2."""
    return make_item(alice, category='electronics', condition='new', title='Laptop')


@pytest.fixture
def cookbook(make_item, bob):
    """Book in good condition: 3.5kg CO2."""
    return make_item(bob, category='books', condition='good', title='Cookbook')


@pytest.fixture
def pending_swap(alice, laptop, cookbook):
    return swap_engine.create_swap(alice, laptop.pk, cookbook.pk)


@pytest.fixture
def accepted_swap(pending_swap, bob):
    return swap_engine.transition(pending_swap.pk, bob.pk, 'accepted')


@pytest.fixture
def completed_swap(accepted_swap, alice):
    return swap_engine.transition(accepted_swap.pk, alice.pk, 'completed', MEETUP_PAYLOAD)


@pytest.fixture
def api_client():
    return APIClient()
