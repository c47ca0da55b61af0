"""
Friends API views.

Endpoints:
    GET  /api/v1/friends/                          - Accepted friends
    POST /api/v1/friends/requests/                 - Send request by handle
    GET  /api/v1/friends/requests/pending/         - Incoming pending requests
    POST /api/v1/friends/requests/<id>/respond/    - Accept / reject

Related files:
    - services.py: FriendService
"""

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.serializers import PublicUserSerializer
from friends.serializers import (
    FriendRequestSerializer,
    RespondFriendRequestSerializer,
    SendFriendRequestSerializer,
)
from friends.services import FriendService


class FriendListView(APIView):
    """Accepted friends of the current user."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List friends",
        tags=["Friends"],
        responses={200: PublicUserSerializer(many=True)},
    )
    def get(self, request):
        friends = FriendService.friends_of(request.user)
        return Response(PublicUserSerializer(friends, many=True).data)


class FriendRequestCreateView(APIView):
    """Send a friend request."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Send friend request",
        description="Look up the addressee by handle and create a pending request.",
        tags=["Friends"],
        request=SendFriendRequestSerializer,
        responses={
            201: FriendRequestSerializer,
            400: OpenApiResponse(description="Self, duplicate, or already friends"),
            404: OpenApiResponse(description="Unknown handle"),
        },
    )
    def post(self, request):
        serializer = SendFriendRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = FriendService.send_request(request.user, serializer.validated_data["handle"])
        if not result:
            return Response(result.to_response(), status=result.status_code)

        return Response(
            FriendRequestSerializer(result.data).data,
            status=status.HTTP_201_CREATED,
        )


class PendingFriendRequestsView(APIView):
    """Incoming pending requests."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Pending friend requests",
        tags=["Friends"],
        responses={200: FriendRequestSerializer(many=True)},
    )
    def get(self, request):
        pending = FriendService.pending_for(request.user)
        return Response(FriendRequestSerializer(pending, many=True).data)


class RespondFriendRequestView(APIView):
    """Accept or reject a pending request addressed to the current user."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Respond to friend request",
        tags=["Friends"],
        request=RespondFriendRequestSerializer,
        responses={
            200: FriendRequestSerializer,
            403: OpenApiResponse(description="Not the recipient"),
            404: OpenApiResponse(description="Unknown request"),
        },
    )
    def post(self, request, pk):
        serializer = RespondFriendRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = FriendService.respond(pk, request.user, serializer.validated_data["action"])
        if not result:
            return Response(result.to_response(), status=result.status_code)

        return Response(FriendRequestSerializer(result.data).data)
