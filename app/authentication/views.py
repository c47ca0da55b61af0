"""
Authentication views.

This module provides API views for:
- Registration (assigns the directory handle)
- Login / token refresh (simplejwt)
- Current user
- Directory search by handle

Related files:
    - serializers.py: Request/response serialization
    - services.py: UserDirectory
    - urls.py: URL routing

Note:
    The access token issued by login also authenticates the chat WebSocket
    (ws/chat/?token=<access>).
"""

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from authentication.serializers import (
    LoginResponseSerializer,
    LoginSerializer,
    PublicUserSerializer,
    RegisterSerializer,
    UserSerializer,
)
from authentication.services import UserDirectory
from core.exceptions import BaseApplicationError


class RegisterView(APIView):
    """
    Create an account.

    POST /api/v1/auth/register/
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Register",
        description=(
            "Create an account with email, password and display name. The "
            "response includes the generated handle other users search for."
        ),
        tags=["Auth"],
        request=RegisterSerializer,
        responses={
            201: UserSerializer,
            400: OpenApiResponse(description="Validation error"),
        },
    )
    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            user = UserDirectory.register(**serializer.validated_data)
        except BaseApplicationError as e:
            return Response(e.to_dict(), status=e.http_status)

        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


@extend_schema(
    summary="Login",
    description="Exchange email and password for an access/refresh token pair.",
    tags=["Auth"],
    responses={200: LoginResponseSerializer},
)
class LoginView(TokenObtainPairView):
    """
    Email/password login.

    POST /api/v1/auth/login/
    """

    serializer_class = LoginSerializer


@extend_schema(tags=["Auth"], summary="Refresh access token")
class RefreshView(TokenRefreshView):
    """POST /api/v1/auth/token/refresh/"""


class MeView(APIView):
    """
    Current user.

    GET /api/v1/auth/me/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Current user",
        tags=["Auth"],
        responses={200: UserSerializer},
    )
    def get(self, request):
        return Response(UserSerializer(request.user).data)


class UserSearchView(APIView):
    """
    Directory lookup by handle.

    GET /api/v1/auth/users/search/<handle>/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Find user by handle",
        description="Exact match on the handle, e.g. ana!4821.",
        tags=["Auth"],
        responses={
            200: PublicUserSerializer,
            404: OpenApiResponse(description="No user with this handle"),
        },
    )
    def get(self, request, handle):
        try:
            user = UserDirectory.find_by_handle(handle)
        except BaseApplicationError as e:
            return Response(e.to_dict(), status=e.http_status)
        return Response(PublicUserSerializer(user).data)
