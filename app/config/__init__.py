# =============================================================================
# Django Project Configuration Package
# =============================================================================
# Settings, root URLs, and the ASGI/WSGI applications. The ASGI application
# is the one that serves the chat WebSocket; WSGI only serves HTTP.
# =============================================================================
