"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries. Every exception carries a stable
machine-readable ``code`` and the HTTP ``status_code`` it maps to.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    code = "APPLICATION_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""

    code = "DOMAIN_ERROR"
    status_code = 400


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""

    code = "REPOSITORY_ERROR"


class ValidationException(ApplicationException):
    """Exception for validation errors."""

    code = "VALIDATION_ERROR"
    status_code = 400


class ResourceNotFoundException(ApplicationException):
    """
    Exception when a requested resource is not found.

    Also raised when the resource exists but belongs to another tenant,
    so the two cases cannot be told apart.
    """

    code = "NOT_FOUND"
    status_code = 404

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""

    code = "CONFIGURATION_ERROR"


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    code = "EXTERNAL_SERVICE_ERROR"
    status_code = 502

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class LLMException(ExternalServiceException):
    """Exception for LLM API failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("LLM Service", message, details)


# ========== Authentication / authorization ==========

class AuthenticationFailed(ApplicationException):
    """Credentials or token missing, invalid, expired, or for an inactive account."""

    code = "AUTHENTICATION_FAILED"
    status_code = 401


class PermissionDenied(ApplicationException):
    """Authenticated caller's role is not allowed to use an endpoint."""

    code = "PERMISSION_DENIED"
    status_code = 403


# ========== Tenancy ==========

class DuplicateEmail(DomainException):
    """A user with this email is already registered."""

    code = "DUPLICATE_EMAIL"
    status_code = 409

    def __init__(self, email: str):
        self.email = email
        super().__init__("Email already registered.", {"email": email})


class DuplicateOrganizationName(DomainException):
    """An organization with this name (or derived slug) already exists."""

    code = "DUPLICATE_ORGANIZATION_NAME"
    status_code = 409

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Organization '{name}' already exists.", {"name": name})


# ========== Workflow ==========

class InvalidWorkflowDefinition(ValidationException):
    """Structural violation of the states/initialState/finalStates/transitions relationship."""

    code = "INVALID_WORKFLOW_DEFINITION"

    def __init__(self, field: str, message: str, details: Optional[dict] = None):
        self.field = field
        super().__init__(message, {"field": field, **(details or {})})


class NoActiveWorkflow(DomainException):
    """Tenant has no workflow that is both default and active."""

    code = "NO_ACTIVE_WORKFLOW"

    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        super().__init__("No active default workflow found for this organization.")


class IllegalTransition(DomainException):
    """Requested from/to pair is not declared by the active workflow."""

    code = "ILLEGAL_TRANSITION"

    def __init__(self, from_state: str, to_state: str):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Transition from '{from_state}' to '{to_state}' is not allowed in the current workflow.",
            {"from": from_state, "to": to_state}
        )


class RoleNotAuthorized(DomainException):
    """Transition is declared but the caller's role is excluded."""

    code = "ROLE_NOT_AUTHORIZED"
    status_code = 403

    def __init__(self, role: str, from_state: str, to_state: str):
        self.role = role
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Role '{role}' is not authorized to transition from '{from_state}' to '{to_state}'.",
            {"role": role, "from": from_state, "to": to_state}
        )


class CannotDeleteDefaultWorkflow(DomainException):
    """The tenant's default workflow cannot be deleted."""

    code = "CANNOT_DELETE_DEFAULT_WORKFLOW"

    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        super().__init__("Cannot delete the default workflow.", {"workflow_id": workflow_id})


class ConcurrentModification(DomainException):
    """A conditional write lost a race against another writer."""

    code = "CONCURRENT_MODIFICATION"
    status_code = 409


# ========== Audit ==========

class AuditImmutabilityViolation(ApplicationException):
    """Some code path tried to update or delete an audit log entry."""

    code = "AUDIT_IMMUTABILITY_VIOLATION"
