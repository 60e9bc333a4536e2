"""
Django admin configuration for the EcoSwap models.

Swap status, item availability, ledger totals and rating aggregates are
read-only here: the swap engine and the review subsystem are their only
writers.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import Item, Notification, PendingOffer, Review, Swap, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Custom admin interface for User model.

    Extends Django's UserAdmin with the impact ledger and rating aggregate.
    """

    # Fields to display in the list view
    list_display = [
        'email',
        'username',
        'swaps_completed',
        'co2_saved',
        'rating_average',
        'is_staff',
        'is_active',
        'created_at',
    ]

    # Fields to filter by in the sidebar
    list_filter = [
        'is_staff',
        'is_superuser',
        'is_active',
        'created_at',
    ]

    # Fields to search
    search_fields = [
        'email',
        'username',
        'first_name',
        'last_name',
    ]

    # Default ordering
    ordering = ['-created_at']

    # Fields to display in the detail view
    fieldsets = (
        (None, {
            'fields': ('username', 'password')
        }),
        (_('Personal Info'), {
            'fields': ('first_name', 'last_name', 'email')
        }),
        (_('Impact'), {
            'fields': ('co2_saved', 'waste_reduced', 'swaps_completed')
        }),
        (_('Rating'), {
            'fields': ('rating_average', 'rating_count')
        }),
        (_('Permissions'), {
            'fields': (
                'is_active',
                'is_staff',
                'is_superuser',
                'groups',
                'user_permissions',
            ),
            'classes': ('collapse',),
        }),
        (_('Important Dates'), {
            'fields': ('last_login', 'date_joined', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    # Fields to display when adding a new user
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('username', 'email', 'password1', 'password2'),
        }),
    )

    readonly_fields = [
        'co2_saved',
        'waste_reduced',
        'swaps_completed',
        'rating_average',
        'rating_count',
        'created_at',
        'updated_at',
        'last_login',
        'date_joined',
    ]

    list_per_page = 25


class PendingOfferInline(admin.TabularInline):
    model = PendingOffer
    extra = 0
    can_delete = False
    readonly_fields = ['swap', 'created_at']


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    """
    Admin interface for items.
    """

    list_display = [
        'title',
        'owner',
        'category',
        'condition',
        'is_available',
        'co2_saved',
        'created_at',
    ]
    list_filter = ['category', 'condition', 'is_available', 'created_at']
    search_fields = ['title', 'description', 'owner__email', 'owner__username']
    readonly_fields = ['is_available', 'co2_saved', 'waste_reduced', 'created_at', 'updated_at']
    inlines = [PendingOfferInline]
    ordering = ['-created_at']
    list_per_page = 25


@admin.register(Swap)
class SwapAdmin(admin.ModelAdmin):
    """
    Admin interface for swaps.

    Everything that the swap engine owns is read-only.
    """

    list_display = [
        'id',
        'initiator',
        'receiver',
        'status',
        'co2_saved',
        'completed_at',
        'updated_at',
    ]
    list_filter = ['status', 'created_at', 'completed_at']
    search_fields = ['initiator__email', 'receiver__email', 'initiator_item__title', 'receiver_item__title']
    readonly_fields = [
        'initiator',
        'receiver',
        'initiator_item',
        'receiver_item',
        'status',
        'co2_saved',
        'waste_reduced',
        'completed_at',
        'created_at',
        'updated_at',
    ]
    date_hierarchy = 'created_at'
    ordering = ['-updated_at']
    list_per_page = 25


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    """
    Admin interface for reviews.
    """

    list_display = ['id', 'swap', 'reviewer', 'reviewee', 'rating', 'created_at']
    list_filter = ['rating', 'direction', 'created_at']
    search_fields = ['reviewer__email', 'reviewee__email', 'comment']
    readonly_fields = ['swap', 'reviewer', 'reviewee', 'direction', 'rating', 'created_at', 'updated_at']
    ordering = ['-created_at']


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['id', 'recipient', 'kind', 'title', 'is_read', 'created_at']
    list_filter = ['kind', 'is_read', 'created_at']
    search_fields = ['recipient__email', 'title', 'body']
    readonly_fields = ['created_at']
    ordering = ['-created_at']
