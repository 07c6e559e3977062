"""
Authentication views for RescueLink Backend.

- Login (email/password, JWT pair)
- Token refresh / logout
- Current user
- Department driver roster
- Citizen registration
- Admin user management
"""

import logging

from django.utils import timezone
from rest_framework import generics, status, views
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle

from core.exceptions import ValidationError
from notifications.services import NotificationService
from .models import User, UserRole
from .permissions import CanManageUser, IsAdminRole, IsAuthenticated, IsDepartmentOrAdmin
from .serializers import (
    DriverSerializer,
    LoginSerializer,
    LogoutSerializer,
    ManagedUserSerializer,
    RegisterSerializer,
    RestrictUserSerializer,
    UserSerializer,
    token_pair_for,
)

logger = logging.getLogger(__name__)
security_logger = logging.getLogger('rescuelink.security')


class LoginThrottle(ScopedRateThrottle):
    """Rate limiting for login endpoint."""
    scope = 'login'


class LoginView(views.APIView):
    """
    POST /api/v1/auth/login/

    Request:
    {
        "email": "driver@edhi.org",
        "password": "..."
    }

    Response:
    {
        "refresh": "jwt_refresh_token",
        "access": "jwt_access_token",
        "user": { ... }
    }
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [LoginThrottle]
    throttle_scope = 'login'

    def post(self, request):
        serializer = LoginSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        result = serializer.save()

        user = serializer.validated_data['user']
        user.last_login = timezone.now()
        user.save(update_fields=['last_login', 'updated_at'])

        return Response(result, status=status.HTTP_200_OK)


class LogoutView(views.APIView):
    """
    POST /api/v1/auth/logout/
    """

    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = LogoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response({'detail': 'Successfully logged out.'})


class CurrentUserView(views.APIView):
    """
    GET /api/v1/auth/me/
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)


class DriverListView(generics.ListAPIView):
    """
    Active drivers available for assignment.

    GET /api/v1/auth/drivers/

    Department users see their own department only. Admins see all
    drivers and may narrow with ?department=.
    """

    permission_classes = [IsDepartmentOrAdmin]
    serializer_class = DriverSerializer

    def get_queryset(self):
        user = self.request.user
        if user.is_department:
            return User.objects.drivers(department=user.department).order_by('name')

        department = self.request.query_params.get('department')
        return User.objects.drivers(department=department).order_by('name')


class RegisterView(views.APIView):
    """
    Citizen self-registration.

    POST /api/v1/auth/register/

    Request:
    {
        "name": "Sana Iqbal",
        "email": "sana@example.pk",
        "phone": "+92 300 1234567",
        "password": "..."
    }

    Response (201): same shape as login.
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [LoginThrottle]
    throttle_scope = 'login'

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()

        try:
            NotificationService.notify(
                user.id,
                'Welcome to RescueLink',
                f"Welcome {user.name}! You can now report accidents and follow their progress.",
            )
        except Exception:
            logger.exception(f"Welcome notification for {user.id} failed")

        return Response(token_pair_for(user), status=status.HTTP_201_CREATED)


class UserListCreateView(generics.ListCreateAPIView):
    """
    GET  /api/v1/auth/users/    filter by ?role=, ?status=, ?department=, ?hospital=
    POST /api/v1/auth/users/    create any role (admin roles: superadmin only)
    """

    permission_classes = [IsAdminRole]
    serializer_class = ManagedUserSerializer
    filterset_fields = ['role', 'status', 'department', 'hospital']
    ordering_fields = ['created_at', 'name', 'role']
    ordering = ['-created_at']

    def get_queryset(self):
        return User.objects.all()

    def perform_create(self, serializer):
        user = serializer.save()
        security_logger.info(f"User {user.id} ({user.role}) created by {self.request.user.id}")


class UserDetailView(generics.RetrieveUpdateDestroyAPIView):
    """
    GET    /api/v1/auth/users/{id}/
    PATCH  /api/v1/auth/users/{id}/
    DELETE /api/v1/auth/users/{id}/   (soft delete; superadmins cannot be deleted)
    """

    permission_classes = [IsAdminRole, CanManageUser]
    serializer_class = ManagedUserSerializer
    http_method_names = ['get', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        return User.objects.all()

    def perform_update(self, serializer):
        user = serializer.save()
        security_logger.info(f"User {user.id} updated by {self.request.user.id}")

    def perform_destroy(self, instance):
        if instance.role == UserRole.SUPERADMIN:
            raise ValidationError('Cannot delete a superadmin account.')
        instance.is_active = False
        instance.save(update_fields=['is_active', 'updated_at'])
        instance.soft_delete()
        instance.revoke_tokens()
        security_logger.info(f"User {instance.id} deleted by {self.request.user.id}")


class RestrictUserView(views.APIView):
    """
    Suspend an account.

    POST /api/v1/auth/users/{id}/restrict/

    {"reason": "Repeated false reports"}

    The account can no longer log in or act; its refresh tokens are
    blacklisted. Reactivate with PATCH status=active.
    """

    permission_classes = [IsAdminRole, CanManageUser]

    def post(self, request, pk):
        serializer = RestrictUserSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        target = generics.get_object_or_404(User.objects.all(), pk=pk)
        self.check_object_permissions(request, target)

        target.restrict()
        security_logger.warning(
            f"User {target.id} restricted by {request.user.id}: {serializer.validated_data['reason']}"
        )
        return Response(UserSerializer(target).data)
