"""
Core Application - Infrastructure & Base Classes

Generic building blocks shared by the payment and membership apps.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes and HTTP status
    - ValidationError, NotFoundError, PermissionDeniedError,
      ConflictError, RateLimitError, ExternalServiceError
    - api_exception_handler: DRF EXCEPTION_HANDLER

Helpers (import from core.helpers):
    - hash_string, validate_uuid
    - calculate_pagination, paginate_sequence

Views (import from core.views):
    - health_check
"""
