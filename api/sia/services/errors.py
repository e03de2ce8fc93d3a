"""Service-layer errors. main.py renders them as ``{"detail": ...}`` with the mapped status."""

from __future__ import annotations


class ServiceError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidArgumentError(ServiceError):
    status_code = 400


class UnauthenticatedError(ServiceError):
    status_code = 401


class PermissionDeniedError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class FailedPreconditionError(ServiceError):
    status_code = 409


class InvalidTransitionError(ConflictError):
    def __init__(self, current: str, target: str):
        super().__init__(f"Invalid status transition: {current} -> {target}")
        self.current = current
        self.target = target


class ExternalServiceError(ServiceError):
    status_code = 502
