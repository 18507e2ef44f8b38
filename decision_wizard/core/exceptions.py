# decision_wizard/core/exceptions.py
"""
Core exceptions - standardized error handling for the decision wizard.

This module defines all custom exceptions used by the wizard,
providing consistent error handling and debugging information.
"""

from typing import Optional, Dict, Any


class WizardError(Exception):
    """Base exception for all wizard errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            details: Optional additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class FlowError(WizardError):
    """Errors in flow processing and state transitions"""

    def __init__(
        self,
        message: str,
        current_state: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize flow error.

        Args:
            message: Error description
            current_state: State where error occurred
            details: Additional error context
        """
        super().__init__(message, details)
        self.current_state = current_state

        if current_state:
            self.details['current_state'] = current_state

    def __str__(self) -> str:
        """String representation including state context"""
        base_msg = super().__str__()
        if self.current_state:
            return f"{base_msg} [State: {self.current_state}]"
        return base_msg


class ValidationError(WizardError):
    """Errors in input validation and data integrity"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize validation error.

        Args:
            message: Error description
            field: Field that failed validation
            value: Invalid value
            details: Additional validation context
        """
        super().__init__(message, details)
        self.field = field
        self.value = value

        if field:
            self.details['field'] = field
        if value is not None:
            self.details['value'] = str(value)


class ConfigurationError(WizardError):
    """Errors in system configuration and initialization"""

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.component = component

        if component:
            self.details['component'] = component


class PromptError(WizardError):
    """Errors in prompt management and template processing"""

    def __init__(
        self,
        message: str,
        prompt_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.prompt_type = prompt_type

        if prompt_type:
            self.details['prompt_type'] = prompt_type


class ServiceError(WizardError):
    """Errors in external service interactions"""

    def __init__(
        self,
        message: str,
        service_name: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize service error.

        Args:
            message: Error description
            service_name: Name of the failing service
            operation: Operation that failed
            original_error: Underlying exception, if any
            details: Additional service context
        """
        super().__init__(message, details)
        self.service_name = service_name
        self.operation = operation
        self.original_error = original_error

        if service_name:
            self.details['service'] = service_name
        if operation:
            self.details['operation'] = operation
        if original_error is not None:
            self.details['error_type'] = type(original_error).__name__


class GenerationServiceError(ServiceError):
    """Errors talking to the generation backend"""

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message,
            service_name="Generation",
            operation=operation,
            original_error=original_error,
            details=details
        )
        self.model = model

        if model:
            self.details['model'] = model


class MissingCredentialError(GenerationServiceError):
    """No usable API credential at request time"""


class InvalidCredentialError(GenerationServiceError):
    """Backend rejected the credential as unauthorized or not found"""


class EmptyResponseError(GenerationServiceError):
    """Backend returned no text"""


class ResponseParseError(GenerationServiceError):
    """Returned text is not valid JSON"""


class SchemaMismatchError(ResponseParseError):
    """Returned JSON does not match the declared shape"""


class UnclassifiedGenerationError(GenerationServiceError):
    """Any other backend rejection"""


# Convenience functions for creating common errors

def flow_error(message: str, current_state: str) -> FlowError:
    """Create a flow error with current state context."""
    return FlowError(message, current_state=current_state)


def validation_error(message: str, field: str, value: Any = None) -> ValidationError:
    """Create a validation error with field context."""
    return ValidationError(message, field=field, value=value)


def config_error(message: str, component: str) -> ConfigurationError:
    """Create a configuration error with component context."""
    return ConfigurationError(message, component=component)
