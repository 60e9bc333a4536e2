"""
Serializers for the EcoSwap API.

Write serializers only validate input; every state change is delegated
to the swap engine, the review subsystem or the model's own save().
"""

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from .models import Item, Notification, Review, Swap, User
from .validators import validate_meetup_location


# ============================================================================
# Users
# ============================================================================

class PublicUserSerializer(serializers.ModelSerializer):
    """
    Minimal public view of a user, nested in items, swaps and reviews.
    """

    class Meta:
        model = User
        fields = ['id', 'username', 'rating_average', 'rating_count']
        read_only_fields = fields


class UserImpactSerializer(serializers.Serializer):
    """
    Impact ledger totals of a user.

    Fields:
    - co2_saved: kg of CO2 saved over all completed swaps
    - waste_reduced: kg of waste avoided over all completed swaps
    - swaps_completed: Number of completed swaps
    """

    user_id = serializers.IntegerField()
    co2_saved = serializers.DecimalField(max_digits=12, decimal_places=3)
    waste_reduced = serializers.DecimalField(max_digits=12, decimal_places=3)
    swaps_completed = serializers.IntegerField()


class UserRatingSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    average = serializers.DecimalField(max_digits=3, decimal_places=2)
    count = serializers.IntegerField()


# ============================================================================
# Items
# ============================================================================

class ItemSerializer(serializers.ModelSerializer):
    """
    Serializer for creating, editing and reading items.

    Fields:
    - title: Required, max 100 characters
    - description: Required, max 1000 characters
    - category: Required, one of the item categories
    - condition: Required, new/like-new/good/fair/poor
    - estimated_value: Optional, non-negative

    Read-only fields:
    - owner: Set from request.user on creation
    - is_available: Changed only when a swap completes
    - co2_saved / waste_reduced: Derived from category and condition
    """

    owner = PublicUserSerializer(read_only=True)

    class Meta:
        model = Item
        fields = [
            'id', 'owner', 'title', 'description', 'category', 'condition',
            'estimated_value', 'is_available', 'co2_saved', 'waste_reduced',
            'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'owner', 'is_available', 'co2_saved', 'waste_reduced',
            'created_at', 'updated_at',
        ]

    def validate_title(self, value):
        """Reject whitespace-only titles and strip surrounding whitespace."""
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Title cannot be empty.")
        return value

    def validate_description(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Description cannot be empty.")
        return value

    def create(self, validated_data):
        """Create the item for the requesting user."""
        request = self.context.get('request')
        return Item.objects.create(owner=request.user, **validated_data)


# ============================================================================
# Swaps
# ============================================================================

class SwapItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = Item
        fields = ['id', 'title', 'category', 'condition', 'is_available', 'co2_saved', 'waste_reduced']
        read_only_fields = fields


class SwapSerializer(serializers.ModelSerializer):
    """
    Read serializer for swaps.

    Includes both participants, both items, the meetup details, the
    stored impact and the ids of the reviews written so far.
    """

    initiator = PublicUserSerializer(read_only=True)
    receiver = PublicUserSerializer(read_only=True)
    initiator_item = SwapItemSerializer(read_only=True)
    receiver_item = SwapItemSerializer(read_only=True)
    reviews = serializers.SerializerMethodField()

    class Meta:
        model = Swap
        fields = [
            'id', 'initiator', 'receiver', 'initiator_item', 'receiver_item',
            'status', 'meetup_location', 'meetup_time', 'co2_saved', 'waste_reduced',
            'completed_at', 'reviews', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_reviews(self, obj):
        """Review ids per direction, looked up through the Review foreign key."""
        by_direction = dict(obj.reviews.values_list('direction', 'id'))
        return {
            'initiator_to_receiver': by_direction.get(Review.INITIATOR_TO_RECEIVER),
            'receiver_to_initiator': by_direction.get(Review.RECEIVER_TO_INITIATOR),
        }


class SwapCreateSerializer(serializers.Serializer):
    """
    Input for proposing a swap.

    Fields:
    - initiator_item: Id of the item the requesting user offers
    - receiver_item: Id of the item they want in return
    """

    initiator_item = serializers.IntegerField(min_value=1)
    receiver_item = serializers.IntegerField(min_value=1)

    def validate(self, attrs):
        if attrs['initiator_item'] == attrs['receiver_item']:
            raise serializers.ValidationError("An item cannot be swapped for itself.")
        return attrs


class SwapStatusUpdateSerializer(serializers.Serializer):
    """
    Input for a status change.

    Fields:
    - status: Requested status
    - meetup_location: Optional, {"coordinates": [lon, lat], "address": {...}}
    - meetup_time: Optional ISO-8601 datetime

    Whether the change is legal is decided by the swap engine, not here.
    """

    status = serializers.ChoiceField(choices=Swap.STATUS_CHOICES)
    meetup_location = serializers.JSONField(required=False, allow_null=True)
    meetup_time = serializers.DateTimeField(required=False, allow_null=True)

    def validate_meetup_location(self, value):
        if not value:
            return None
        try:
            validate_meetup_location(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.messages)
        return value

    def to_payload(self):
        """Payload dict for swap_engine.transition()."""
        return {
            key: self.validated_data[key]
            for key in ('meetup_location', 'meetup_time')
            if self.validated_data.get(key) is not None
        }


class ImpactStatementSerializer(serializers.Serializer):
    summary = serializers.CharField()
    equivalents = serializers.ListField(child=serializers.CharField())


class SwapImpactSerializer(serializers.Serializer):
    """
    Impact of a swap.

    ``is_projected`` is true until the swap completes; the numbers are
    then what completing it would save.
    """

    swap_id = serializers.IntegerField()
    status = serializers.CharField()
    is_projected = serializers.BooleanField()
    co2_saved = serializers.DecimalField(max_digits=12, decimal_places=3)
    waste_reduced = serializers.DecimalField(max_digits=12, decimal_places=3)
    statement = ImpactStatementSerializer()


# ============================================================================
# Reviews
# ============================================================================

def _validate_comment(value):
    value = value.strip()
    if len(value) < 10:
        raise serializers.ValidationError("Comment must be at least 10 characters.")
    if len(value) > 500:
        raise serializers.ValidationError("Comment cannot exceed 500 characters.")
    return value


class ReviewSerializer(serializers.ModelSerializer):
    """
    Read serializer for reviews.
    """

    reviewer = PublicUserSerializer(read_only=True)
    reviewee = PublicUserSerializer(read_only=True)

    class Meta:
        model = Review
        fields = [
            'id', 'swap', 'reviewer', 'reviewee', 'direction',
            'rating', 'comment', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class ReviewCreateSerializer(serializers.Serializer):
    """
    Input for submitting a review.

    Fields:
    - swap_id: Required, id of a completed swap
    - rating: Required, integer from 1-5
    - comment: Required, 10-500 characters after trimming

    Reviewer and reviewee are determined by the review subsystem.
    """

    swap_id = serializers.IntegerField(min_value=1)
    rating = serializers.IntegerField(
        min_value=1,
        max_value=5,
        error_messages={
            'min_value': 'Rating must be between 1 and 5.',
            'max_value': 'Rating must be between 1 and 5.',
        }
    )
    comment = serializers.CharField(trim_whitespace=True)

    def validate_comment(self, value):
        return _validate_comment(value)


class ReviewUpdateSerializer(serializers.Serializer):
    """
    Input for updating a review.

    Both fields are optional but at least one must be given.
    """

    rating = serializers.IntegerField(
        min_value=1,
        max_value=5,
        required=False,
        error_messages={
            'min_value': 'Rating must be between 1 and 5.',
            'max_value': 'Rating must be between 1 and 5.',
        }
    )
    comment = serializers.CharField(required=False, trim_whitespace=True)

    def validate_comment(self, value):
        return _validate_comment(value)

    def validate(self, attrs):
        if 'rating' not in attrs and 'comment' not in attrs:
            raise serializers.ValidationError("Provide a rating or a comment to update.")
        return attrs


class NotificationSerializer(serializers.ModelSerializer):
    """
    Serializer for a stored notification in the recipient's inbox.

    Every field is read-only; the read flag changes through the
    mark-read endpoints.
    """

    sender = PublicUserSerializer(read_only=True)

    class Meta:
        model = Notification
        fields = [
            'id', 'kind', 'title', 'body', 'sender',
            'related_item', 'related_swap', 'is_read', 'created_at',
        ]
        read_only_fields = fields
