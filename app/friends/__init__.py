"""
Friends application.

Friend-request relationships between users. The chat core asks this app one
question: are two users friends (an accepted request in either direction)?

Usage:
    from friends.services import FriendService

    if FriendService.are_friends(a_id, b_id):
        ...
"""
