"""
Models for the EcoSwap marketplace.
"""

from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from .impact import BASE_FACTORS, CONDITION_MULTIPLIERS, ImpactCredit, credit_for
from .validators import validate_meetup_location


LEDGER_FIELD_OPTIONS = {
    'max_digits': 12,
    'decimal_places': 3,
    'default': Decimal('0'),
}


class User(AbstractUser):
    """
    Custom User model extending Django's AbstractUser.

    Additional fields:
    - email: Required, unique email address
    - co2_saved / waste_reduced / swaps_completed: impact ledger,
      written only when one of the user's swaps is completed
    - rating_average / rating_count: aggregate of reviews received,
      written only by the review subsystem
    - created_at: Account creation timestamp
    - updated_at: Last update timestamp
    """

    email = models.EmailField(
        _('email address'),
        unique=True,
        blank=False,
        null=False,
        error_messages={
            'unique': _('A user with that email already exists.'),
        },
        help_text=_('Required. Enter a valid email address.')
    )

    co2_saved = models.DecimalField(
        _('CO2 saved'),
        help_text=_('Cumulative kg of CO2 saved through completed swaps.'),
        **LEDGER_FIELD_OPTIONS
    )

    waste_reduced = models.DecimalField(
        _('waste reduced'),
        help_text=_('Cumulative kg of waste kept out of landfill through completed swaps.'),
        **LEDGER_FIELD_OPTIONS
    )

    swaps_completed = models.PositiveIntegerField(
        _('swaps completed'),
        default=0,
        help_text=_('Number of swaps this user has completed.')
    )

    rating_average = models.DecimalField(
        _('rating average'),
        max_digits=3,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[
            MinValueValidator(Decimal('0.00'), message=_('Rating cannot be negative.')),
            MaxValueValidator(Decimal('5.00'), message=_('Rating cannot exceed 5.00.'))
        ],
        help_text=_('Average rating over all reviews received.')
    )

    rating_count = models.PositiveIntegerField(
        _('rating count'),
        default=0,
        help_text=_('Number of reviews received.')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
        help_text=_('Timestamp when the account was created.')
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
        help_text=_('Timestamp when the account was last updated.')
    )

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['email'], name='core_user_email_7ced2a_idx'),
        ]

    def __str__(self):
        """Return username as string representation."""
        return self.username or self.email

    @property
    def impact(self):
        """Ledger totals as an ImpactCredit."""
        return ImpactCredit(co2_saved=self.co2_saved, waste_reduced=self.waste_reduced)

    def clean(self):
        """
        Validate model fields.

        Ensures:
        - Email is provided
        - Email is lowercase for case-insensitive uniqueness

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if self.email:
            self.email = self.email.lower()

        if not self.email:
            raise ValidationError({
                'email': _('Email address is required.')
            })

    def save(self, *args, **kwargs):
        """Normalize email before saving."""
        if self.email:
            self.email = self.email.lower()
        super().save(*args, **kwargs)


# ============================================================================
# Items
# ============================================================================

class Item(models.Model):
    """
    Item offered for swapping.

    Fields:
    - owner: Foreign key to User
    - title / description: Listing text
    - category: Item category (closed set)
    - condition: Item condition (new, like-new, good, fair, poor)
    - estimated_value: Optional estimated value
    - is_available: False once the item has been swapped away; only the
      availability store flips it
    - co2_saved / waste_reduced: Environmental credit, recomputed whenever
      category or condition changes
    - created_at / updated_at: Timestamps
    """

    CATEGORY_CHOICES = [
        ('clothing', 'Clothing'),
        ('electronics', 'Electronics'),
        ('furniture', 'Furniture'),
        ('books', 'Books'),
        ('toys', 'Toys'),
        ('sports', 'Sports'),
        ('kitchen', 'Kitchen'),
        ('garden', 'Garden'),
        ('automotive', 'Automotive'),
        ('other', 'Other'),
    ]

    CONDITION_CHOICES = [
        ('new', 'New'),
        ('like-new', 'Like New'),
        ('good', 'Good'),
        ('fair', 'Fair'),
        ('poor', 'Poor'),
    ]

    owner = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='items',
        help_text=_('User offering this item')
    )

    title = models.CharField(
        _('title'),
        max_length=100,
        blank=False,
        null=False,
        help_text=_('Title of the item')
    )

    description = models.TextField(
        _('description'),
        max_length=1000,
        blank=False,
        null=False,
        help_text=_('Detailed description of the item')
    )

    category = models.CharField(
        _('category'),
        max_length=20,
        choices=CATEGORY_CHOICES,
        help_text=_('Category of the item')
    )

    condition = models.CharField(
        _('condition'),
        max_length=20,
        choices=CONDITION_CHOICES,
        help_text=_('Condition of the item')
    )

    estimated_value = models.DecimalField(
        _('estimated value'),
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0.00'), message=_('Estimated value cannot be negative.'))],
        help_text=_('Optional estimated value')
    )

    is_available = models.BooleanField(
        _('is available'),
        default=True,
        help_text=_('Whether the item can still be offered in new swaps')
    )

    co2_saved = models.DecimalField(
        _('CO2 saved'),
        help_text=_('kg of CO2 saved by reusing this item'),
        **LEDGER_FIELD_OPTIONS
    )

    waste_reduced = models.DecimalField(
        _('waste reduced'),
        help_text=_('kg of waste avoided by reusing this item'),
        **LEDGER_FIELD_OPTIONS
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
        help_text=_('Timestamp when the item was created')
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
        help_text=_('Timestamp when the item was last updated')
    )

    class Meta:
        verbose_name = _('item')
        verbose_name_plural = _('items')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['owner'], name='core_item_owner_i_5d4b9c_idx'),
            models.Index(fields=['is_available'], name='core_item_is_avai_8a1e2f_idx'),
            models.Index(fields=['category', 'condition'], name='core_item_categor_3f6d7a_idx'),
        ]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._credit_inputs = (self.__dict__.get('category'), self.__dict__.get('condition'))

    def __str__(self):
        """Return title as string representation."""
        return self.title

    @property
    def credit(self):
        return ImpactCredit(co2_saved=self.co2_saved, waste_reduced=self.waste_reduced)

    def credit_inputs_changed(self):
        """True when category or condition differ from the last saved values."""
        return (self.category, self.condition) != self._credit_inputs

    def clean(self):
        """
        Validate model fields.

        Ensures:
        - Title is not empty
        - Description is not empty
        - Category and condition belong to the impact tables

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if not self.title or not self.title.strip():
            raise ValidationError({
                'title': _('Title cannot be empty.')
            })

        if not self.description or not self.description.strip():
            raise ValidationError({
                'description': _('Description cannot be empty.')
            })

        if self.category not in BASE_FACTORS:
            raise ValidationError({
                'category': _('Unknown item category.')
            })

        if self.condition not in CONDITION_MULTIPLIERS:
            raise ValidationError({
                'condition': _('Unknown item condition.')
            })

    def save(self, *args, **kwargs):
        """
        Validate, then refresh the environmental credit when the item is
        new or its category/condition changed.

        Saving an existing row never writes ``is_available``; the column
        belongs to the swap engine, and the in-memory copy is re-read
        after the write.
        """
        self.full_clean()

        adding = self._state.adding
        if not adding:
            update_fields = kwargs.get('update_fields')
            if update_fields is None:
                update_fields = [
                    field.name for field in self._meta.concrete_fields
                    if not field.primary_key
                ]
            kwargs['update_fields'] = set(update_fields) - {'is_available'}

        if adding or self.credit_inputs_changed():
            credit = credit_for(self.category, self.condition)
            self.co2_saved = credit.co2_saved
            self.waste_reduced = credit.waste_reduced
            update_fields = kwargs.get('update_fields')
            if update_fields is not None:
                kwargs['update_fields'] = set(update_fields) | {'co2_saved', 'waste_reduced'}

        super().save(*args, **kwargs)
        self._credit_inputs = (self.category, self.condition)
        if not adding:
            self.refresh_from_db(fields=['is_available'])


class PendingOffer(models.Model):
    """
    Association between an item and a swap currently proposing it.

    An item may be part of several pending offers at once; the rows are
    removed when the swap is rejected or cancelled.
    """

    item = models.ForeignKey(
        Item,
        on_delete=models.CASCADE,
        related_name='pending_offers'
    )

    swap = models.ForeignKey(
        'Swap',
        on_delete=models.CASCADE,
        related_name='pending_offers'
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _('pending offer')
        verbose_name_plural = _('pending offers')
        constraints = [
            models.UniqueConstraint(
                fields=['item', 'swap'],
                name='unique_pending_offer_per_item_swap'
            )
        ]

    def __str__(self):
        return f"Item {self.item_id} offered in swap {self.swap_id}"


# ============================================================================
# Swaps
# ============================================================================

class Swap(models.Model):
    """
    Bilateral exchange of two items between two users.

    Fields:
    - initiator / receiver: Participants
    - initiator_item / receiver_item: Items being exchanged
    - status: pending, accepted, rejected, completed or cancelled
    - meetup_location / meetup_time: Where and when the exchange happens
    - co2_saved / waste_reduced: Impact of the swap, zero until completed
    - completed_at: Timestamp of completion
    - created_at / updated_at: Timestamps

    Status is only ever written by the swap engine.
    """

    PENDING = 'pending'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (ACCEPTED, 'Accepted'),
        (REJECTED, 'Rejected'),
        (COMPLETED, 'Completed'),
        (CANCELLED, 'Cancelled'),
    ]

    TERMINAL_STATUSES = (REJECTED, COMPLETED, CANCELLED)

    initiator = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='initiated_swaps',
        help_text=_('User proposing the swap')
    )

    receiver = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='received_swaps',
        help_text=_('Owner of the requested item')
    )

    initiator_item = models.ForeignKey(
        Item,
        on_delete=models.CASCADE,
        related_name='offered_in_swaps',
        help_text=_('Item offered by the initiator')
    )

    receiver_item = models.ForeignKey(
        Item,
        on_delete=models.CASCADE,
        related_name='requested_in_swaps',
        help_text=_('Item requested from the receiver')
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default=PENDING,
        help_text=_('Current status of the swap')
    )

    meetup_location = models.JSONField(
        _('meetup location'),
        null=True,
        blank=True,
        validators=[validate_meetup_location],
        help_text=_('Coordinates ([longitude, latitude]) and/or address of the meetup')
    )

    meetup_time = models.DateTimeField(
        _('meetup time'),
        null=True,
        blank=True,
        help_text=_('When the exchange takes place')
    )

    co2_saved = models.DecimalField(
        _('CO2 saved'),
        help_text=_('kg of CO2 saved by this swap'),
        **LEDGER_FIELD_OPTIONS
    )

    waste_reduced = models.DecimalField(
        _('waste reduced'),
        help_text=_('kg of waste avoided by this swap'),
        **LEDGER_FIELD_OPTIONS
    )

    completed_at = models.DateTimeField(
        _('completed at'),
        null=True,
        blank=True,
        help_text=_('Timestamp when the swap was completed')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
        help_text=_('Timestamp when the swap was created')
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
        help_text=_('Timestamp when the swap was last updated')
    )

    class Meta:
        verbose_name = _('swap')
        verbose_name_plural = _('swaps')
        ordering = ['-updated_at']
        indexes = [
            models.Index(fields=['initiator'], name='core_swap_initiat_1b2c3d_idx'),
            models.Index(fields=['receiver'], name='core_swap_receive_4e5f6a_idx'),
            models.Index(fields=['status'], name='core_swap_status_7b8c9d_idx'),
        ]

    def __str__(self):
        """Return meaningful string representation."""
        return f"Swap {self.pk}: {self.initiator_item_id} <-> {self.receiver_item_id} ({self.status})"

    @property
    def impact(self):
        return ImpactCredit(co2_saved=self.co2_saved, waste_reduced=self.waste_reduced)

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def participant_ids(self):
        return (self.initiator_id, self.receiver_id)

    def is_participant(self, user_id):
        return user_id is not None and user_id in self.participant_ids()

    def role_of(self, user_id):
        """
        Role of a user in this swap.

        Returns:
            str: 'initiator', 'receiver', or None for non-participants
        """
        if user_id == self.initiator_id:
            return 'initiator'
        if user_id == self.receiver_id:
            return 'receiver'
        return None

    def counterpart_of(self, user_id):
        """Id of the other participant."""
        return self.receiver_id if user_id == self.initiator_id else self.initiator_id

    def review_by(self, user_id):
        """Review written by the given participant, if any."""
        return self.reviews.filter(reviewer_id=user_id).first()

    @property
    def initiator_review(self):
        return self.review_by(self.initiator_id)

    @property
    def receiver_review(self):
        return self.review_by(self.receiver_id)

    def clean(self):
        """
        Validate participants and items.

        Ensures:
        - Initiator and receiver are different users
        - On creation, the initiator owns the initiator item and the
          receiver owns the receiver item

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if self.initiator_id and self.receiver_id and self.initiator_id == self.receiver_id:
            raise ValidationError({
                'receiver': _('Initiator and receiver cannot be the same user.')
            })

        if self._state.adding:
            if self.initiator_item_id and self.initiator_item.owner_id != self.initiator_id:
                raise ValidationError({
                    'initiator_item': _('The initiator must own the offered item.')
                })

            if self.receiver_item_id and self.receiver_item.owner_id != self.receiver_id:
                raise ValidationError({
                    'receiver_item': _('The receiver must own the requested item.')
                })

    def save(self, *args, **kwargs):
        """
        Override save to ensure validation.

        Args:
            *args: Positional arguments
            **kwargs: Keyword arguments
        """
        self.full_clean()
        super().save(*args, **kwargs)


# ============================================================================
# Reviews
# ============================================================================

class Review(models.Model):
    """
    Review one swap participant leaves for the other after completion.

    Fields:
    - swap: The completed swap being reviewed
    - reviewer: Participant writing the review
    - reviewee: The other participant
    - direction: Which slot of the swap this review fills
    - rating: Integer rating from 1 to 5
    - comment: Written feedback
    - created_at / updated_at: Timestamps
    """

    INITIATOR_TO_RECEIVER = 'initiator_to_receiver'
    RECEIVER_TO_INITIATOR = 'receiver_to_initiator'

    DIRECTION_CHOICES = [
        (INITIATOR_TO_RECEIVER, 'Initiator reviewing receiver'),
        (RECEIVER_TO_INITIATOR, 'Receiver reviewing initiator'),
    ]

    swap = models.ForeignKey(
        Swap,
        on_delete=models.CASCADE,
        related_name='reviews',
        help_text=_('Swap being reviewed')
    )

    reviewer = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='reviews_given',
        help_text=_('User writing the review')
    )

    reviewee = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='reviews_received',
        help_text=_('User receiving the review')
    )

    direction = models.CharField(
        _('direction'),
        max_length=30,
        choices=DIRECTION_CHOICES
    )

    rating = models.PositiveSmallIntegerField(
        _('rating'),
        validators=[
            MinValueValidator(1, message=_('Rating must be at least 1.')),
            MaxValueValidator(5, message=_('Rating must be at most 5.'))
        ],
        help_text=_('Rating from 1 to 5 stars')
    )

    comment = models.TextField(
        _('comment'),
        max_length=500,
        blank=False,
        help_text=_('Written feedback about the swap')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
        help_text=_('Timestamp when the review was created')
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
        help_text=_('Timestamp when the review was last updated')
    )

    class Meta:
        verbose_name = _('review')
        verbose_name_plural = _('reviews')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['reviewee', 'created_at'], name='core_review_reviewe_2a3b4c_idx'),
            models.Index(fields=['swap'], name='core_review_swap_id_5d6e7f_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['swap', 'reviewer'],
                name='unique_review_per_swap_reviewer'
            ),
            models.UniqueConstraint(
                fields=['swap', 'direction'],
                name='unique_review_per_swap_direction'
            ),
        ]

    def __str__(self):
        """Return meaningful string representation."""
        return f"Review by {self.reviewer_id} for {self.reviewee_id} - {self.rating}★"

    def clean(self):
        """
        Validate model fields.

        Ensures:
        - Reviewer and reviewee are different users
        - Comment is not empty or whitespace-only

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if self.reviewer_id and self.reviewee_id and self.reviewer_id == self.reviewee_id:
            raise ValidationError({
                'reviewee': _('Reviewer and reviewee cannot be the same user.')
            })

        if not self.comment or not self.comment.strip():
            raise ValidationError({
                'comment': _('Comment cannot be empty.')
            })

    def save(self, *args, **kwargs):
        """
        Validate fields without unique checks.

        Unique constraints are left to the database so duplicates surface
        as IntegrityError inside the review transaction.
        """
        self.clean_fields()
        self.clean()
        super().save(*args, **kwargs)


# ============================================================================
# Notifications
# ============================================================================

class Notification(models.Model):
    """
    Notification record produced by the default notification sink.
    """

    KIND_CHOICES = [
        ('swap_request', 'Swap request'),
        ('swap_accepted', 'Swap accepted'),
        ('swap_rejected', 'Swap rejected'),
        ('swap_completed', 'Swap completed'),
        ('swap_cancelled', 'Swap cancelled'),
        ('review', 'Review'),
        ('system', 'System'),
    ]

    recipient = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='notifications'
    )

    sender = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='notifications_sent'
    )

    kind = models.CharField(
        _('kind'),
        max_length=30,
        choices=KIND_CHOICES
    )

    title = models.CharField(_('title'), max_length=200)

    body = models.TextField(_('body'))

    related_item = models.ForeignKey(
        Item,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    related_swap = models.ForeignKey(
        Swap,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    is_read = models.BooleanField(_('is read'), default=False)

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    class Meta:
        verbose_name = _('notification')
        verbose_name_plural = _('notifications')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', 'created_at'], name='core_notifi_recipie_8f9a0b_idx'),
            models.Index(fields=['is_read'], name='core_notifi_is_read_1c2d3e_idx'),
        ]

    def __str__(self):
        return f"{self.kind} for {self.recipient_id}: {self.title}"
