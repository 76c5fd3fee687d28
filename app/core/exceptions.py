"""Error taxonomy for the storage layer.

Services raise these; ``app.main`` renders them as JSON with the mapped
status code.
"""

from typing import Optional

from fastapi import status


class StorageError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Storage error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class InvalidRequest(StorageError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class ScopeViolation(StorageError):
    """The target exists but belongs to another namespace."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden"


class TokenExpiredOrInvalid(StorageError):
    # Callers see the same status as ScopeViolation
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Invalid or expired upload token"


class NotFound(StorageError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ProvisioningFailed(StorageError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Folder provisioning failed"


class ObjectStoreFailure(StorageError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Object store request failed"
