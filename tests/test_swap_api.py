"""
Tests for the swap endpoints.

Test Coverage:
- Proposing swaps (ownership, availability, self swaps)
- Listing and retrieving swaps (participants only, filters)
- Status changes through PUT /api/swaps/<id>/status/
- Impact reporting for pending and completed swaps
- Error payloads carrying code and retryable flags
"""

from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.db import OperationalError
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from core import swap_engine
from core.models import Item, Swap

from .helpers import authenticate

User = get_user_model()


class SwapAPITestCase(TestCase):
    """Shared fixtures: two traders, one outsider, one item each."""

    def setUp(self):
        self.client = APIClient()

        self.alice = User.objects.create_user(
            username='alice', email='alice@example.com', password='testpass123'
        )
        self.bob = User.objects.create_user(
            username='bob', email='bob@example.com', password='testpass123'
        )
        self.carol = User.objects.create_user(
            username='carol', email='carol@example.com', password='testpass123'
        )

        self.laptop = Item.objects.create(
            owner=self.alice,
            title='Laptop',
            description='Runs fine, battery holds two hours',
            category='electronics',
            condition='new',
        )
        self.cookbook = Item.objects.create(
            owner=self.bob,
            title='Cookbook',
            description='Well thumbed but complete',
            category='books',
            condition='good',
        )

    def propose(self):
        return swap_engine.create_swap(self.alice, self.laptop.pk, self.cookbook.pk)

    def status_url(self, swap):
        return f'/api/swaps/{swap.pk}/status/'

    def complete_body(self):
        return {
            'status': 'completed',
            'meetup_location': {'coordinates': [-122.4194, 37.7749]},
            'meetup_time': '2025-12-15T10:00:00Z',
        }


class TestSwapCreation(SwapAPITestCase):
    url = '/api/swaps/'

    def test_propose_swap(self):
        authenticate(self.client, self.alice)

        response = self.client.post(
            self.url,
            {'initiator_item': self.laptop.pk, 'receiver_item': self.cookbook.pk},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['initiator']['id'], self.alice.pk)
        self.assertEqual(response.data['receiver']['id'], self.bob.pk)
        self.assertEqual(
            response.data['reviews'],
            {'initiator_to_receiver': None, 'receiver_to_initiator': None}
        )

    def test_requires_authentication(self):
        response = self.client.post(
            self.url,
            {'initiator_item': self.laptop.pk, 'receiver_item': self.cookbook.pk},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_cannot_offer_someone_elses_item(self):
        authenticate(self.client, self.carol)

        response = self.client.post(
            self.url,
            {'initiator_item': self.laptop.pk, 'receiver_item': self.cookbook.pk},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'forbidden')
        self.assertFalse(response.data['retryable'])

    def test_cannot_swap_with_yourself(self):
        other_laptop = Item.objects.create(
            owner=self.alice, title='Old laptop', description='Spare machine',
            category='electronics', condition='fair',
        )
        authenticate(self.client, self.alice)

        response = self.client.post(
            self.url,
            {'initiator_item': self.laptop.pk, 'receiver_item': other_laptop.pk},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'self_swap')

    def test_unknown_item(self):
        authenticate(self.client, self.alice)

        response = self.client.post(
            self.url,
            {'initiator_item': self.laptop.pk, 'receiver_item': 999999},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'not_found')

    def test_same_item_twice_is_a_validation_error(self):
        authenticate(self.client, self.alice)

        response = self.client.post(
            self.url,
            {'initiator_item': self.laptop.pk, 'receiver_item': self.laptop.pk},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_missing_fields(self):
        authenticate(self.client, self.alice)

        response = self.client.post(self.url, {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('initiator_item', response.data)
        self.assertIn('receiver_item', response.data)


class TestSwapReads(SwapAPITestCase):
    def test_list_own_swaps(self):
        swap = self.propose()
        authenticate(self.client, self.bob)

        response = self.client.get('/api/swaps/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['id'], swap.pk)

    def test_outsider_sees_nothing(self):
        self.propose()
        authenticate(self.client, self.carol)

        response = self.client.get('/api/swaps/')

        self.assertEqual(response.data['count'], 0)

    def test_filter_by_role_and_status(self):
        self.propose()
        authenticate(self.client, self.bob)

        self.assertEqual(self.client.get('/api/swaps/?role=initiator').data['count'], 0)
        self.assertEqual(self.client.get('/api/swaps/?role=receiver').data['count'], 1)
        self.assertEqual(self.client.get('/api/swaps/?status=completed').data['count'], 0)

    def test_detail_for_participant(self):
        swap = self.propose()
        authenticate(self.client, self.alice)

        response = self.client.get(f'/api/swaps/{swap.pk}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['initiator_item']['id'], self.laptop.pk)

    def test_detail_for_outsider(self):
        swap = self.propose()
        authenticate(self.client, self.carol)

        response = self.client.get(f'/api/swaps/{swap.pk}/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_detail_not_found(self):
        authenticate(self.client, self.alice)

        response = self.client.get('/api/swaps/999999/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class TestSwapStatusUpdate(SwapAPITestCase):
    def test_receiver_accepts(self):
        swap = self.propose()
        authenticate(self.client, self.bob)

        response = self.client.put(self.status_url(swap), {'status': 'accepted'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'accepted')

    def test_initiator_cannot_accept(self):
        swap = self.propose()
        authenticate(self.client, self.alice)

        response = self.client.put(self.status_url(swap), {'status': 'accepted'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        swap.refresh_from_db()
        self.assertEqual(swap.status, Swap.PENDING)

    def test_outsider_cannot_change_status(self):
        swap = self.propose()
        authenticate(self.client, self.carol)

        response = self.client.put(self.status_url(swap), {'status': 'cancelled'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_complete_with_meetup_details(self):
        swap = self.propose()
        swap_engine.transition(swap.pk, self.bob.pk, 'accepted')
        authenticate(self.client, self.bob)

        response = self.client.put(self.status_url(swap), self.complete_body(), format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'completed')
        self.assertEqual(response.data['co2_saved'], '53.500')
        self.assertEqual(response.data['meetup_location']['coordinates'], [-122.4194, 37.7749])
        self.assertIsNotNone(response.data['completed_at'])

        self.alice.refresh_from_db()
        self.bob.refresh_from_db()
        self.assertEqual(self.alice.co2_saved, Decimal('26.75'))
        self.assertEqual(self.bob.co2_saved, Decimal('26.75'))
        self.assertFalse(Item.objects.get(pk=self.laptop.pk).is_available)

    def test_complete_without_meetup_details(self):
        swap = self.propose()
        swap_engine.transition(swap.pk, self.bob.pk, 'accepted')
        authenticate(self.client, self.alice)

        response = self.client.put(self.status_url(swap), {'status': 'completed'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'missing_meetup_details')
        self.assertFalse(response.data['retryable'])

    def test_complete_with_empty_meetup_location(self):
        swap = self.propose()
        swap_engine.transition(swap.pk, self.bob.pk, 'accepted')
        authenticate(self.client, self.alice)

        body = self.complete_body()
        body['meetup_location'] = {}
        response = self.client.put(self.status_url(swap), body, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'missing_meetup_details')

    def test_skip_straight_to_completed(self):
        swap = self.propose()
        authenticate(self.client, self.alice)

        response = self.client.put(self.status_url(swap), self.complete_body(), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_transition')

    def test_terminal_status_is_final(self):
        swap = self.propose()
        swap_engine.transition(swap.pk, self.bob.pk, 'rejected')
        authenticate(self.client, self.alice)

        response = self.client.put(self.status_url(swap), {'status': 'cancelled'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_transition')

    def test_unknown_status_value(self):
        swap = self.propose()
        authenticate(self.client, self.bob)

        response = self.client.put(self.status_url(swap), {'status': 'shipped'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('status', response.data)

    def test_malformed_meetup_location(self):
        swap = self.propose()
        swap_engine.transition(swap.pk, self.bob.pk, 'accepted')
        authenticate(self.client, self.bob)

        body = self.complete_body()
        body['meetup_location'] = {'coordinates': [500, 37.7]}
        response = self.client.put(self.status_url(swap), body, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('meetup_location', response.data)

    def test_missing_swap(self):
        authenticate(self.client, self.bob)

        response = self.client.put('/api/swaps/999999/status/', {'status': 'accepted'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_database_timeout_is_retryable(self):
        swap = self.propose()
        authenticate(self.client, self.bob)

        with mock.patch(
            'core.swap_engine._load_for_update',
            side_effect=OperationalError('database is locked: lock wait timeout exceeded'),
        ):
            response = self.client.put(self.status_url(swap), {'status': 'accepted'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_504_GATEWAY_TIMEOUT)
        self.assertEqual(response.data['code'], 'timeout')
        self.assertTrue(response.data['retryable'])

    def test_database_outage_is_retryable(self):
        swap = self.propose()
        authenticate(self.client, self.bob)

        with mock.patch(
            'core.swap_engine._load_for_update',
            side_effect=OperationalError('server closed the connection unexpectedly'),
        ):
            response = self.client.put(self.status_url(swap), {'status': 'accepted'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertTrue(response.data['retryable'])


class TestSwapImpact(SwapAPITestCase):
    def test_pending_swap_reports_projection(self):
        swap = self.propose()
        authenticate(self.client, self.alice)

        response = self.client.get(f'/api/swaps/{swap.pk}/impact/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_projected'])
        self.assertEqual(response.data['co2_saved'], '53.500')
        self.assertEqual(response.data['waste_reduced'], '10.700')

    def test_completed_swap_reports_stored_impact(self):
        swap = self.propose()
        swap_engine.transition(swap.pk, self.bob.pk, 'accepted')
        swap_engine.transition(swap.pk, self.alice.pk, 'completed', {
            'meetup_location': {'coordinates': [-122.4194, 37.7749]},
            'meetup_time': '2025-12-15T10:00:00Z',
        })
        authenticate(self.client, self.bob)

        response = self.client.get(f'/api/swaps/{swap.pk}/impact/')

        self.assertFalse(response.data['is_projected'])
        self.assertEqual(
            response.data['statement']['summary'],
            'This swap saved 53.5kg of CO2 and reduced waste by 10.7kg.'
        )
        self.assertEqual(
            response.data['statement']['equivalents'],
            [
                'Equivalent to a tree absorbing CO2 for 107 days.',
                'Equivalent to reducing car travel by 214 kilometers.',
            ]
        )

    def test_outsider_cannot_see_impact(self):
        swap = self.propose()
        authenticate(self.client, self.carol)

        response = self.client.get(f'/api/swaps/{swap.pk}/impact/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
