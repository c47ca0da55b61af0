"""
Core Application - Infrastructure & Base Classes

Generic building blocks shared by the authentication, friends and chat apps.
Nothing domain-specific lives here.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)
    - UUIDPrimaryKeyMixin: UUID as primary key

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ValidationError: Input validation failures
    - NotFoundError: Resource not found
    - AuthorizationError: Caller may not perform the operation
    - ConflictError: State conflicts (duplicates, etc.)
    - PersistenceError: Store unavailable or write failed

Views (import from core.views):
    - health_check: Database / cache / channel layer probe

Note:
    Django models are NOT imported here to avoid AppRegistryNotReady
    errors. Import them directly from core.models.
"""

# Services (no Django model dependencies)
from .services import BaseService, ServiceResult

# Exceptions (no Django dependencies)
from .exceptions import (
    AuthorizationError,
    BaseApplicationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Exceptions
    "BaseApplicationError",
    "ValidationError",
    "NotFoundError",
    "AuthorizationError",
    "ConflictError",
    "PersistenceError",
]
