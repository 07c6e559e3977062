"""
Serializers for authentication endpoints.
"""

import logging

from django.contrib.auth import authenticate
from django.contrib.auth import password_validation
from rest_framework import serializers
from rest_framework_simplejwt.tokens import RefreshToken, TokenError

from .models import User, UserRole, UserStatus, check_role_scope

security_logger = logging.getLogger('rescuelink.security')


def token_pair_for(user):
    """JWT pair with a role claim, plus the user payload."""
    refresh = RefreshToken.for_user(user)
    refresh['role'] = user.role

    return {
        'refresh': str(refresh),
        'access': str(refresh.access_token),
        'user': UserSerializer(user).data,
    }


class UserSerializer(serializers.ModelSerializer):
    """Current-user representation."""

    class Meta:
        model = User
        fields = [
            'id', 'email', 'name', 'phone', 'role',
            'department', 'hospital', 'status',
            'last_login', 'created_at',
        ]
        read_only_fields = fields


class DriverSerializer(serializers.ModelSerializer):
    """Driver listing for department dispatchers."""

    class Meta:
        model = User
        fields = ['id', 'name', 'phone', 'email', 'department', 'driving_license', 'status']
        read_only_fields = fields


class LoginSerializer(serializers.Serializer):
    """
    Email/password login.

    Returns a JWT pair plus the user payload.
    """

    email = serializers.EmailField()
    password = serializers.CharField(
        write_only=True,
        style={'input_type': 'password'}
    )

    def validate(self, attrs):
        request = self.context.get('request')
        user = authenticate(
            request,
            username=attrs['email'],
            password=attrs['password'],
        )

        if not user:
            security_logger.warning(f"Failed login for {attrs['email']}")
            raise serializers.ValidationError({'detail': 'Invalid credentials.'})

        if user.status == UserStatus.SUSPENDED:
            raise serializers.ValidationError({'detail': 'Your account is suspended.'})

        if user.status == UserStatus.INACTIVE:
            raise serializers.ValidationError({'detail': 'Your account is inactive.'})

        attrs['user'] = user
        return attrs

    def create(self, validated_data):
        user = validated_data['user']
        return token_pair_for(user)


class LogoutSerializer(serializers.Serializer):
    """Blacklists the supplied refresh token."""

    refresh = serializers.CharField()

    def validate_refresh(self, value):
        try:
            self._token = RefreshToken(value)
        except TokenError:
            raise serializers.ValidationError('Invalid or expired token.')
        return value

    def save(self, **kwargs):
        self._token.blacklist()


class RegisterSerializer(serializers.Serializer):
    """
    Citizen self-registration.

    The role is always citizen; dispatch staff accounts are created by
    admins through the user management endpoints.
    """

    name = serializers.CharField(max_length=100)
    email = serializers.EmailField(max_length=255)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    password = serializers.CharField(
        write_only=True,
        style={'input_type': 'password'}
    )

    def validate_email(self, value):
        value = User.objects.normalize_email(value)
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError('A user with this email already exists.')
        return value

    def validate_password(self, value):
        password_validation.validate_password(value)
        return value

    def create(self, validated_data):
        user = User.objects.create_user(
            email=validated_data['email'],
            password=validated_data['password'],
            name=validated_data['name'],
            phone=validated_data.get('phone', ''),
            role=UserRole.CITIZEN,
        )
        security_logger.info(f"Citizen registered: {user.id}")
        return user


class ManagedUserSerializer(serializers.ModelSerializer):
    """
    Admin user management.

    Only superadmins may create, edit or promote admin accounts. Role
    changes are re-checked against the role-scoped department and
    hospital rules.
    """

    password = serializers.CharField(
        write_only=True,
        required=False,
        style={'input_type': 'password'}
    )

    class Meta:
        model = User
        fields = [
            'id', 'email', 'name', 'phone', 'role',
            'department', 'hospital', 'driving_license', 'status',
            'password', 'last_login', 'created_at',
        ]
        read_only_fields = ['id', 'last_login', 'created_at']

    def validate_role(self, value):
        request = self.context.get('request')
        if value in UserRole.ADMIN_ROLES and not (request and request.user.is_superadmin):
            raise serializers.ValidationError('Only a superadmin may grant admin roles.')
        return value

    def validate_password(self, value):
        password_validation.validate_password(value)
        return value

    def validate(self, attrs):
        instance = self.instance
        if instance is None and not attrs.get('password'):
            raise serializers.ValidationError({'password': 'This field is required.'})

        def current(field, default=''):
            if field in attrs:
                return attrs[field]
            return getattr(instance, field, default) if instance is not None else default

        try:
            check_role_scope(current('role', UserRole.CITIZEN), current('department'), current('hospital'))
        except ValueError as exc:
            raise serializers.ValidationError({'role': str(exc)})
        return attrs

    def create(self, validated_data):
        email = validated_data.pop('email')
        password = validated_data.pop('password')
        return User.objects.create_user(email=email, password=password, **validated_data)

    def update(self, instance, validated_data):
        password = validated_data.pop('password', None)
        for field, value in validated_data.items():
            setattr(instance, field, value)
        if password:
            instance.set_password(password)
        instance.save()

        if instance.status != UserStatus.ACTIVE:
            instance.revoke_tokens()
        return instance


class RestrictUserSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500)
