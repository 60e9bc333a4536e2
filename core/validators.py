"""
Custom validators for swap meetup details.
"""

from django.core.exceptions import ValidationError


ADDRESS_FIELDS = ('street', 'city', 'state', 'zipCode', 'country')


def validate_coordinates(value):
    """
    Validate a GeoJSON-style coordinate pair.

    Coordinates are given as [longitude, latitude].

    Valid examples:
    - [-122.4194, 37.7749]
    - [0, 0]

    Args:
        value: Sequence of two numbers

    Raises:
        ValidationError: If the pair is malformed or out of range
    """
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValidationError(
            'Coordinates must be a [longitude, latitude] pair.',
            code='invalid_coordinates'
        )

    # bool is an int subclass
    if any(isinstance(part, bool) or not isinstance(part, (int, float)) for part in value):
        raise ValidationError(
            'Coordinates must be numbers.',
            code='invalid_coordinates'
        )

    longitude, latitude = value

    if not -180 <= longitude <= 180:
        raise ValidationError(
            'Longitude must be between -180 and 180.',
            code='invalid_longitude'
        )

    if not -90 <= latitude <= 90:
        raise ValidationError(
            'Latitude must be between -90 and 90.',
            code='invalid_latitude'
        )


def validate_address(value):
    """
    Validate a postal address.

    Accepted keys: street, city, state, zipCode, country. All values are
    strings; at least one of them must be non-empty.

    Raises:
        ValidationError: If the address is malformed
    """
    if not isinstance(value, dict):
        raise ValidationError(
            'Address must be an object.',
            code='invalid_address'
        )

    unknown = set(value) - set(ADDRESS_FIELDS)
    if unknown:
        raise ValidationError(
            f"Unknown address fields: {', '.join(sorted(unknown))}.",
            code='invalid_address'
        )

    for field, part in value.items():
        if not isinstance(part, str):
            raise ValidationError(
                f'Address field {field} must be a string.',
                code='invalid_address'
            )

    if not any(part.strip() for part in value.values()):
        raise ValidationError(
            'Address cannot be empty.',
            code='invalid_address'
        )


def validate_meetup_location(value):
    """
    Validate a meetup location.

    A location is an object carrying ``coordinates``, ``address`` or both.

    Args:
        value: dict from the request payload or the JSON column

    Raises:
        ValidationError: If neither part is present or a part is invalid
    """
    if value is None:
        return

    if not isinstance(value, dict):
        raise ValidationError(
            'Meetup location must be an object.',
            code='invalid_meetup_location'
        )

    unknown = set(value) - {'coordinates', 'address'}
    if unknown:
        raise ValidationError(
            f"Unknown meetup location fields: {', '.join(sorted(unknown))}.",
            code='invalid_meetup_location'
        )

    if value.get('coordinates') is None and value.get('address') is None:
        raise ValidationError(
            'Meetup location needs coordinates or an address.',
            code='invalid_meetup_location'
        )

    if value.get('coordinates') is not None:
        validate_coordinates(value['coordinates'])

    if value.get('address') is not None:
        validate_address(value['address'])
