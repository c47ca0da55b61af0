"""
Serializers for friend requests.
"""

from rest_framework import serializers

from authentication.serializers import PublicUserSerializer
from friends.models import FriendRequest
from friends.services import RESPONSE_ACTIONS


class FriendRequestSerializer(serializers.ModelSerializer):
    """Friend request with both users expanded."""

    from_user = PublicUserSerializer(read_only=True)
    to_user = PublicUserSerializer(read_only=True)

    class Meta:
        model = FriendRequest
        fields = ["id", "from_user", "to_user", "status", "created_at", "updated_at"]
        read_only_fields = fields


class SendFriendRequestSerializer(serializers.Serializer):
    handle = serializers.CharField(max_length=40, help_text="Handle of the user to befriend, e.g. ben!1234")


class RespondFriendRequestSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=[str(a) for a in RESPONSE_ACTIONS])
