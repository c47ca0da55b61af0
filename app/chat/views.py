"""
REST views for the chat core.

The WebSocket is the primary transport; these endpoints cover history
loading, the same send/read operations for clients without a socket, and
unread/presence lookups.

URL Structure:
    /api/v1/chat/messages/                       POST  send (through the DeliveryRouter)
    /api/v1/chat/messages/with/{user_id}/        GET   conversation history
    /api/v1/chat/messages/{id}/read/             POST  mark read (+ messageRead push)
    /api/v1/chat/messages/unread/                GET   unread counts
    /api/v1/chat/presence/{user_id}/             GET   online status

Design Decisions:
    - Send and read go through the same DeliveryRouter as the socket, so a
      REST send is persisted and pushed to both rooms exactly like
      sendMessage
    - Router failures carry their HTTP status in ServiceResult.status_code
"""

from __future__ import annotations

from asgiref.sync import async_to_sync
from django.conf import settings
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from chat.serializers import (
    MessageCreateSerializer,
    MessageSerializer,
    PresenceSerializer,
    UnreadCountSerializer,
)
from chat.services import DeliveryRouter, MessageStore, PresenceRegistry, SendIntent
from friends.services import FriendService

USER_ID_PARAMETER = OpenApiParameter(
    name="user_id",
    type=OpenApiTypes.UUID,
    location=OpenApiParameter.PATH,
    description="Identity key of the other user",
)


class MessageCreateView(APIView):
    """
    Send a message without a socket.

    POST /api/v1/chat/messages/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="send_message",
        summary="Send message",
        description=(
            "Persist a message from the current user and push receiveMessage to "
            "both users' rooms. Requires an accepted friendship unless the server "
            "runs with CHAT_REQUIRE_FRIENDSHIP disabled."
        ),
        request=MessageCreateSerializer,
        responses={
            201: MessageSerializer,
            400: OpenApiResponse(description="Empty, too long, or unknown recipient"),
            403: OpenApiResponse(description="Not friends"),
            503: OpenApiResponse(description="Message could not be stored"),
        },
        tags=["Chat - Messages"],
    )
    def post(self, request):
        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        router = DeliveryRouter()
        result = async_to_sync(router.send)(
            SendIntent(
                sender_id=str(request.user.pk),
                recipient_id=str(serializer.validated_data["to"]),
                content=serializer.validated_data["content"],
                client_id=serializer.validated_data.get("client_id"),
            )
        )

        if not result:
            return Response(result.to_response(), status=result.status_code)
        return Response(result.data, status=status.HTTP_201_CREATED)


class ConversationHistoryView(APIView):
    """
    Full history with one other user, oldest first.

    GET /api/v1/chat/messages/with/{user_id}/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="conversation_history",
        summary="Conversation history",
        description="Every message between the current user and user_id, ordered by (timestamp, id).",
        parameters=[USER_ID_PARAMETER],
        responses={200: MessageSerializer(many=True)},
        tags=["Chat - Messages"],
    )
    def get(self, request, user_id):
        messages = MessageStore.history(request.user.pk, user_id)
        return Response(MessageSerializer(messages, many=True).data)


class MarkReadView(APIView):
    """
    Mark a received message read.

    POST /api/v1/chat/messages/{id}/read/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="mark_message_read",
        summary="Mark message read",
        description=(
            "Only the recipient may mark a message read. Idempotent. The sender's "
            "room receives a messageRead event."
        ),
        request=None,
        responses={
            200: MessageSerializer,
            403: OpenApiResponse(description="Not the recipient"),
            404: OpenApiResponse(description="Unknown message"),
        },
        tags=["Chat - Messages"],
    )
    def post(self, request, pk):
        router = DeliveryRouter()
        result = async_to_sync(router.acknowledge_read)(pk, str(request.user.pk))

        if not result:
            return Response(result.to_response(), status=result.status_code)
        return Response(result.data)


class UnreadCountView(APIView):
    """
    Unread messages addressed to the current user.

    GET /api/v1/chat/messages/unread/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="unread_counts",
        summary="Unread counts",
        responses={200: UnreadCountSerializer},
        tags=["Chat - Messages"],
    )
    def get(self, request):
        by_sender = MessageStore.unread_by_sender(request.user.pk)
        data = {"total": sum(by_sender.values()), "by_sender": by_sender}
        return Response(UnreadCountSerializer(data).data)


class UserPresenceView(APIView):
    """
    Whether a user currently has live connections.

    GET /api/v1/chat/presence/{user_id}/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_user_presence",
        summary="Get user presence",
        description=(
            "Online status of yourself or a friend. Returns the number of live "
            "connections in the user's room."
        ),
        parameters=[USER_ID_PARAMETER],
        responses={
            200: PresenceSerializer,
            403: OpenApiResponse(description="Not friends"),
        },
        tags=["Chat - Presence"],
    )
    def get(self, request, user_id):
        is_self = str(user_id) == str(request.user.pk)
        if (
            not is_self
            and settings.CHAT_REQUIRE_FRIENDSHIP
            and not FriendService.are_friends(request.user.pk, user_id)
        ):
            return Response(
                {"error": "Presence is only visible to friends", "error_code": "NOT_FRIENDS"},
                status=status.HTTP_403_FORBIDDEN,
            )

        connections = async_to_sync(PresenceRegistry().connections)(user_id)
        data = {
            "user_id": user_id,
            "online": bool(connections),
            "connections": len(connections),
        }
        return Response(PresenceSerializer(data).data)
