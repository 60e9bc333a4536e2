"""
Helpers shared by the test modules.
"""

from datetime import datetime, timezone as dt_timezone

from rest_framework_simplejwt.tokens import RefreshToken


MEETUP_LOCATION = {
    'coordinates': [-122.4194, 37.7749],
    'address': {'street': '1 Market St', 'city': 'San Francisco', 'country': 'USA'},
}

MEETUP_TIME = datetime(2025, 12, 15, 10, 0, tzinfo=dt_timezone.utc)

MEETUP_PAYLOAD = {
    'meetup_location': MEETUP_LOCATION,
    'meetup_time': MEETUP_TIME,
}


def authenticate(client, user):
    """Attach a bearer access token for ``user`` to an APIClient."""
    token = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {token.access_token}')
    return client


class RecordingSink:
    """Notification sink that keeps every event it receives."""

    def __init__(self):
        self.events = []

    def emit(self, event):
        self.events.append(event)


class ExplodingSink:
    """Notification sink that always fails."""

    def emit(self, event):
        raise RuntimeError('notification backend down')
