"""
API views for the EcoSwap marketplace.

Views authenticate, validate input with serializers and delegate to the
swap engine, the review subsystem and the impact ledger. Domain errors
propagate as APIExceptions and are rendered by
``core.exceptions.api_exception_handler``.
"""

import logging

from rest_framework import generics, status
from rest_framework.generics import ListAPIView
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from . import ledger, notifications, reviews, swap_engine
from .exceptions import ItemNotFound, ReviewNotFound, SwapServiceError
from .models import Item, Review
from .permissions import IsItemOwner
from .serializers import (
    ItemSerializer,
    NotificationSerializer,
    ReviewCreateSerializer,
    ReviewSerializer,
    ReviewUpdateSerializer,
    SwapCreateSerializer,
    SwapImpactSerializer,
    SwapSerializer,
    SwapStatusUpdateSerializer,
    UserImpactSerializer,
    UserRatingSerializer,
)

logger = logging.getLogger(__name__)


class ClientIPMixin:
    """Adds client IP detection for audit logging."""

    def get_client_ip(self, request):
        """
        Get client IP address from request.
        Handles proxy headers for accurate IP detection.
        """
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            ip = x_forwarded_for.split(',')[0]
        else:
            ip = request.META.get('REMOTE_ADDR')
        return ip


class StandardPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


# ============================================================================
# Items
# ============================================================================

class ItemListCreateView(ClientIPMixin, generics.ListCreateAPIView):
    """
    API endpoint for listing available items and creating new ones.

    GET /api/items/
    Query Parameters:
    - category (optional): Filter by category
    - owner (optional): Filter by owner id

    POST /api/items/
    Headers: Authorization: Bearer <access_token>
    Request body: {
        "title": "Road bike",
        "description": "Aluminium frame, recently serviced",
        "category": "sports",
        "condition": "good",
        "estimated_value": "120.00"
    }

    Success response (201):
    {
        "id": 1,
        "owner": {...},
        "title": "Road bike",
        "category": "sports",
        "condition": "good",
        "is_available": true,
        "co2_saved": "10.500",
        "waste_reduced": "2.100",
        ...
    }

    Error responses:
    - 401: Missing, invalid, or expired JWT token
    - 400: Validation error
    """
    permission_classes = [IsAuthenticated]
    serializer_class = ItemSerializer
    pagination_class = StandardPagination

    def get_queryset(self):
        """Available items, optionally filtered by category and owner."""
        queryset = Item.objects.filter(is_available=True).select_related('owner')

        category = self.request.query_params.get('category')
        if category:
            queryset = queryset.filter(category=category)

        owner = self.request.query_params.get('owner')
        if owner and owner.isdigit():
            queryset = queryset.filter(owner_id=int(owner))

        return queryset.order_by('-created_at', '-pk')

    def perform_create(self, serializer):
        item = serializer.save()
        logger.info(
            f"Item created. "
            f"Item ID: {item.pk}, "
            f"Category: {item.category}, Condition: {item.condition}, "
            f"User ID: {self.request.user.id}, "
            f"IP: {self.get_client_ip(self.request)}"
        )


class ItemDetailView(ClientIPMixin, generics.RetrieveUpdateAPIView):
    """
    API endpoint for retrieving and editing an item.

    GET /api/items/<id>/
    PATCH /api/items/<id>/  (owner only)

    Changing category or condition recomputes the item's environmental
    credit; other edits leave it untouched. Availability and credit
    cannot be set through this endpoint.

    Error responses:
    - 401: Missing, invalid, or expired JWT token
    - 403: User does not own the item
    - 404: Item not found
    """
    permission_classes = [IsAuthenticated, IsItemOwner]
    serializer_class = ItemSerializer
    http_method_names = ['get', 'patch', 'head', 'options']

    def get_object(self):
        try:
            item = Item.objects.select_related('owner').get(pk=self.kwargs['pk'])
        except Item.DoesNotExist:
            raise ItemNotFound()
        self.check_object_permissions(self.request, item)
        return item

    def permission_denied(self, request, message=None, code=None):
        logger.warning(
            f"Unauthorized item edit attempt. "
            f"Item ID: {self.kwargs.get('pk')}, "
            f"User ID: {request.user.id}, "
            f"IP: {self.get_client_ip(request)}"
        )
        super().permission_denied(request, message=message, code=code)

    def perform_update(self, serializer):
        item = serializer.save()
        logger.info(f"Item {item.pk} updated by user {self.request.user.id}")


# ============================================================================
# Swaps
# ============================================================================

class SwapListCreateView(ClientIPMixin, APIView):
    """
    API endpoint for listing the user's swaps and proposing new ones.

    GET /api/swaps/
    Query Parameters:
    - status (optional): pending, accepted, rejected, completed, cancelled
    - role (optional): 'initiator' or 'receiver'
    - page (optional): Page number

    POST /api/swaps/
    Request body: {"initiator_item": 3, "receiver_item": 7}

    Success response (201): the new swap, status "pending"

    Error responses:
    - 401: Missing, invalid, or expired JWT token
    - 403: Offered item is not owned by the user
    - 404: Item not found
    - 400: Item unavailable, self swap or validation error
    """
    permission_classes = [IsAuthenticated]
    pagination_class = StandardPagination

    def get(self, request, *args, **kwargs):
        swaps = swap_engine.list_swaps(
            request.user,
            status=request.query_params.get('status') or None,
            role=request.query_params.get('role') or None,
        )

        paginator = self.pagination_class()
        page = paginator.paginate_queryset(swaps, request, view=self)
        serializer = SwapSerializer(page, many=True, context={'request': request})
        return paginator.get_paginated_response(serializer.data)

    def post(self, request, *args, **kwargs):
        serializer = SwapCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            swap = swap_engine.create_swap(
                request.user,
                serializer.validated_data['initiator_item'],
                serializer.validated_data['receiver_item'],
            )
        except SwapServiceError as e:
            logger.warning(
                f"Swap creation rejected ({e.default_code}). "
                f"User ID: {request.user.id}, "
                f"IP: {self.get_client_ip(request)}"
            )
            raise

        return Response(
            SwapSerializer(swap, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )


class SwapDetailView(APIView):
    """
    API endpoint for retrieving a swap.

    GET /api/swaps/<id>/  (participants only)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        swap = swap_engine.get_swap(kwargs['pk'], request.user)
        return Response(SwapSerializer(swap, context={'request': request}).data)


class SwapStatusUpdateView(ClientIPMixin, APIView):
    """
    API endpoint for changing a swap's status.

    PUT /api/swaps/<id>/status/
    Headers: Authorization: Bearer <access_token>
    Request body: {
        "status": "completed",
        "meetup_location": {"coordinates": [-122.41, 37.77]},
        "meetup_time": "2025-12-15T10:00:00Z"
    }

    Success response (200): the updated swap

    Error responses:
    - 401: Missing, invalid, or expired JWT token
    - 403: User is not a participant, or lacks the role for this change
    - 404: Swap not found
    - 400: Illegal transition, missing meetup details, item unavailable
    - 409/503/504: Transient failure, safe to retry
    """
    permission_classes = [IsAuthenticated]

    def put(self, request, *args, **kwargs):
        """
        Handle a status change.

        Steps:
        1. Validate the request body
        2. Apply the transition through the swap engine
        3. Log the outcome
        4. Return the updated swap
        """
        swap_id = kwargs.get('pk')

        serializer = SwapStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        target_status = serializer.validated_data['status']

        try:
            swap = swap_engine.transition(
                swap_id,
                request.user.id,
                target_status,
                serializer.to_payload(),
            )
        except SwapServiceError as e:
            logger.warning(
                f"Swap status update rejected ({e.default_code}). "
                f"Swap ID: {swap_id}, "
                f"Requested Status: {target_status}, "
                f"User ID: {request.user.id}, "
                f"IP: {self.get_client_ip(request)}"
            )
            raise

        logger.info(
            f"Swap status updated. "
            f"Swap ID: {swap_id}, "
            f"New Status: {swap.status}, "
            f"User ID: {request.user.id}, "
            f"IP: {self.get_client_ip(request)}"
        )

        return Response(
            SwapSerializer(swap, context={'request': request}).data,
            status=status.HTTP_200_OK
        )


class SwapImpactView(APIView):
    """
    API endpoint for the environmental impact of a swap.

    GET /api/swaps/<id>/impact/  (participants only)

    Success response (200):
    {
        "swap_id": 1,
        "status": "completed",
        "is_projected": false,
        "co2_saved": "53.500",
        "waste_reduced": "10.700",
        "statement": {
            "summary": "This swap saved 53.5kg of CO2 and reduced waste by 10.7kg.",
            "equivalents": [...]
        }
    }
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        impact = swap_engine.get_swap_impact(kwargs['pk'], request.user)
        return Response(SwapImpactSerializer(impact).data)


# ============================================================================
# Reviews
# ============================================================================

class ReviewCreateView(ClientIPMixin, APIView):
    """
    API endpoint for reviewing the other participant of a completed swap.

    POST /api/reviews/
    Request body: {
        "swap_id": 12,
        "rating": 5,
        "comment": "Friendly and on time!"
    }

    Success response (201): the stored review

    Error responses:
    - 401: Missing, invalid, or expired JWT token
    - 403: User did not take part in the swap
    - 404: Swap not found
    - 400: Swap not completed, duplicate review or validation error
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = ReviewCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            review = reviews.submit_review(
                data['swap_id'],
                request.user.id,
                data['rating'],
                data['comment'],
            )
        except SwapServiceError as e:
            logger.warning(
                f"Review creation failed ({e.default_code}). "
                f"User ID: {request.user.id}, "
                f"Swap ID: {data['swap_id']}, "
                f"IP: {self.get_client_ip(request)}"
            )
            raise

        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)


class ReviewDetailView(APIView):
    """
    API endpoint for reading and updating a review.

    GET /api/reviews/<id>/
    PATCH/PUT /api/reviews/<id>/  (reviewer only)
    Request body: {"rating": 4} and/or {"comment": "..."}
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        try:
            review = Review.objects.select_related('reviewer', 'reviewee').get(pk=kwargs['pk'])
        except Review.DoesNotExist:
            raise ReviewNotFound()
        return Response(ReviewSerializer(review).data)

    def patch(self, request, *args, **kwargs):
        serializer = ReviewUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        review = reviews.update_review(
            kwargs['pk'],
            request.user.id,
            rating=serializer.validated_data.get('rating'),
            comment=serializer.validated_data.get('comment'),
        )
        return Response(ReviewSerializer(review).data)

    def put(self, request, *args, **kwargs):
        return self.patch(request, *args, **kwargs)


class UserReviewsView(ListAPIView):
    """
    API endpoint for all reviews a user has received, newest first.

    Public endpoint - reviews are public information.

    GET /api/reviews/user/<user_id>/

    Error responses:
    - 404: User not found
    """
    permission_classes = [AllowAny]
    serializer_class = ReviewSerializer
    pagination_class = StandardPagination

    def get_queryset(self):
        return reviews.reviews_for_user(self.kwargs['user_id'])


class SwapReviewsView(APIView):
    """
    API endpoint for the reviews of one swap.

    GET /api/reviews/swap/<swap_id>/  (participants only)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        queryset = reviews.reviews_for_swap(kwargs['swap_id'], request.user)
        return Response(ReviewSerializer(queryset, many=True).data)


# ============================================================================
# Users
# ============================================================================

class UserImpactView(APIView):
    """
    API endpoint for a user's impact ledger totals.

    GET /api/users/<user_id>/impact/

    Success response (200):
    {
        "user_id": 1,
        "co2_saved": "26.750",
        "waste_reduced": "5.350",
        "swaps_completed": 1
    }
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        user_id = kwargs['user_id']
        totals = ledger.user_impact(user_id)
        return Response(UserImpactSerializer({'user_id': user_id, **totals}).data)


class UserRatingView(APIView):
    """
    API endpoint for a user's rating aggregate.

    GET /api/users/<user_id>/rating/
    """
    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):
        summary = reviews.rating_summary(kwargs['user_id'])
        return Response(UserRatingSerializer(summary).data)


# ============================================================================
# Notifications
# ============================================================================

class NotificationListView(APIView):
    """
    API endpoint for the authenticated user's notification inbox.

    GET /api/notifications/
    Query Parameters:
    - unread (optional): 'true' to list unread notifications only
    - page (optional): Page number

    Success response (200): paginated notifications, newest first, plus
    "unread_count" over the whole inbox
    """
    permission_classes = [IsAuthenticated]
    pagination_class = StandardPagination

    def get(self, request, *args, **kwargs):
        unread_only = request.query_params.get('unread', '').lower() in ('1', 'true', 'yes')
        queryset = notifications.inbox(request.user, unread_only=unread_only)

        paginator = self.pagination_class()
        page = paginator.paginate_queryset(queryset, request, view=self)
        response = paginator.get_paginated_response(NotificationSerializer(page, many=True).data)
        response.data['unread_count'] = notifications.unread_count(request.user)
        return response


class NotificationReadView(APIView):
    """
    API endpoint for marking one notification as read.

    PUT/PATCH /api/notifications/<id>/read/  (recipient only)

    Error responses:
    - 403: Notification belongs to someone else
    - 404: Notification not found
    """
    permission_classes = [IsAuthenticated]

    def put(self, request, *args, **kwargs):
        notification = notifications.mark_read(kwargs['pk'], request.user)
        return Response(NotificationSerializer(notification).data)

    def patch(self, request, *args, **kwargs):
        return self.put(request, *args, **kwargs)


class NotificationReadAllView(APIView):
    """
    API endpoint for marking every notification of the user as read.

    PUT/POST /api/notifications/read-all/

    Success response (200): {"updated": 3}
    """
    permission_classes = [IsAuthenticated]

    def put(self, request, *args, **kwargs):
        return Response({'updated': notifications.mark_all_read(request.user)})

    def post(self, request, *args, **kwargs):
        return self.put(request, *args, **kwargs)


class NotificationDetailView(APIView):
    """
    API endpoint for deleting a notification.

    DELETE /api/notifications/<id>/  (recipient only)
    """
    permission_classes = [IsAuthenticated]

    def delete(self, request, *args, **kwargs):
        notifications.delete_notification(kwargs['pk'], request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)
