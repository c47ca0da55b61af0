"""
Chat app for real-time two-party messaging.

This app handles:
- Message persistence and history (MessageStore)
- Live connection rooms (PresenceRegistry)
- Fan-out of messages, typing and read receipts (DeliveryRouter)

Related apps:
    - authentication: User model, identity keys
    - friends: friendship gate for sending

WebSocket Support:
    Uses Django Channels for real-time communication.
    See consumers.py for WebSocket handlers.
    See routing.py for WebSocket URL patterns.

Usage:
    from chat.services import DeliveryRouter, SendIntent

    router = DeliveryRouter()
    result = await router.send(SendIntent(sender_id, recipient_id, "Hello!"))
"""
