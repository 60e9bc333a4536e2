"""
URL configuration for the ecoswap project.
"""
from django.contrib import admin
from django.urls import path
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
    TokenVerifyView,
)
from core.views import (
    ItemListCreateView,
    ItemDetailView,
    SwapListCreateView,
    SwapDetailView,
    SwapStatusUpdateView,
    SwapImpactView,
    ReviewCreateView,
    ReviewDetailView,
    UserReviewsView,
    SwapReviewsView,
    UserImpactView,
    UserRatingView,
    NotificationListView,
    NotificationReadView,
    NotificationReadAllView,
    NotificationDetailView,
)


urlpatterns = [
    path('admin/', admin.site.urls),

    # JWT Authentication endpoints
    path('api/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/token/verify/', TokenVerifyView.as_view(), name='token_verify'),

    # Item endpoints
    path('api/items/', ItemListCreateView.as_view(), name='item_list_create'),
    path('api/items/<int:pk>/', ItemDetailView.as_view(), name='item_detail'),

    # Swap endpoints
    path('api/swaps/', SwapListCreateView.as_view(), name='swap_list_create'),
    path('api/swaps/<int:pk>/', SwapDetailView.as_view(), name='swap_detail'),
    path('api/swaps/<int:pk>/status/', SwapStatusUpdateView.as_view(), name='swap_status_update'),
    path('api/swaps/<int:pk>/impact/', SwapImpactView.as_view(), name='swap_impact'),

    # Review endpoints
    path('api/reviews/', ReviewCreateView.as_view(), name='review_create'),
    path('api/reviews/<int:pk>/', ReviewDetailView.as_view(), name='review_detail'),
    path('api/reviews/user/<int:user_id>/', UserReviewsView.as_view(), name='user_reviews'),
    path('api/reviews/swap/<int:swap_id>/', SwapReviewsView.as_view(), name='swap_reviews'),

    # User endpoints
    path('api/users/<int:user_id>/impact/', UserImpactView.as_view(), name='user_impact'),
    path('api/users/<int:user_id>/rating/', UserRatingView.as_view(), name='user_rating'),

    # Notification endpoints
    path('api/notifications/', NotificationListView.as_view(), name='notification_list'),
    path('api/notifications/read-all/', NotificationReadAllView.as_view(), name='notification_read_all'),
    path('api/notifications/<int:pk>/', NotificationDetailView.as_view(), name='notification_detail'),
    path('api/notifications/<int:pk>/read/', NotificationReadView.as_view(), name='notification_read'),
]
