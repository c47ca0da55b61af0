"""
Authentication application.

The user directory collaborator of the chat core: accounts, JWT login and
handle lookup.

Key components:
    - User model: Email login, display username, unique directory handle
    - UserDirectory: Identity-key and handle resolution for other apps

Usage:
    from authentication.models import User
    from authentication.services import UserDirectory
"""
