"""Error types shared across the service.

Domain errors (``HarmonyError`` subclasses) are raised by the storage and key
management layers; ``main.py`` maps them to status codes. Routers raise
``NotFoundException`` for absent resources.
"""
from fastapi import HTTPException, status


class HarmonyError(Exception):
    """Base class for domain errors."""


class ConfigurationError(HarmonyError):
    """Required configuration is missing or invalid. Fatal at startup."""


class ConflictError(HarmonyError):
    """A uniqueness rule was violated on create."""


class ConstraintViolationError(ConflictError):
    """Relational unique/foreign constraint rejected a write."""


class DuplicateKeyError(ConflictError):
    """Document store rejected an insert on a unique index."""


class ApiKeyNotFoundError(HarmonyError):
    def __init__(self, service_name: str):
        self.service_name = service_name
        super().__init__(f"API key for {service_name} not found in environment")


class InvalidKeyFormatError(HarmonyError):
    def __init__(self, service_name: str):
        self.service_name = service_name
        super().__init__(f"Invalid API key format for {service_name}")


class RateLimitExceededError(HarmonyError):
    def __init__(self, service_name: str, remaining: int = 0):
        self.service_name = service_name
        self.remaining = remaining
        super().__init__(f"Rate limit exceeded for {service_name}")


class UnknownFieldError(HarmonyError, ValueError):
    def __init__(self, entity: str, fields: list[str]):
        self.entity = entity
        self.fields = fields
        super().__init__(f"Unknown {entity} field(s): {', '.join(sorted(fields))}")


class InvalidFieldValueError(HarmonyError, ValueError):
    """A known field was given a value its column cannot hold."""

    def __init__(self, entity: str, fields: list[str]):
        self.entity = entity
        self.fields = fields
        super().__init__(f"Invalid value for {entity} field(s): {', '.join(sorted(fields))}")


class InvalidPaginationError(HarmonyError, ValueError):
    """Pagination parameters that cannot produce a page (e.g. limit <= 0)."""


class NotFoundException(HTTPException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
