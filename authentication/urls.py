"""
URL configuration for RescueLink authentication API.

All endpoints are under /api/v1/auth/
"""

from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from .views import (
    CurrentUserView,
    DriverListView,
    LoginView,
    LogoutView,
    RegisterView,
    RestrictUserView,
    UserDetailView,
    UserListCreateView,
)

app_name = 'authentication'

urlpatterns = [
    path('register/', RegisterView.as_view(), name='register'),
    path('login/', LoginView.as_view(), name='login'),
    path('token/refresh/', TokenRefreshView.as_view(), name='token-refresh'),
    path('logout/', LogoutView.as_view(), name='logout'),
    path('me/', CurrentUserView.as_view(), name='current-user'),
    path('drivers/', DriverListView.as_view(), name='driver-list'),

    # User management (admin)
    path('users/', UserListCreateView.as_view(), name='user-list'),
    path('users/<uuid:pk>/', UserDetailView.as_view(), name='user-detail'),
    path('users/<uuid:pk>/restrict/', RestrictUserView.as_view(), name='user-restrict'),
]
