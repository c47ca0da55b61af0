"""
URL configuration for friends app.
"""

from django.urls import path

from friends.views import (
    FriendListView,
    FriendRequestCreateView,
    PendingFriendRequestsView,
    RespondFriendRequestView,
)

app_name = "friends"

urlpatterns = [
    path("", FriendListView.as_view(), name="friend-list"),
    path("requests/", FriendRequestCreateView.as_view(), name="request-create"),
    path("requests/pending/", PendingFriendRequestsView.as_view(), name="request-pending"),
    path("requests/<int:pk>/respond/", RespondFriendRequestView.as_view(), name="request-respond"),
]
