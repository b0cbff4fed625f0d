"""Error handling framework for verification runs."""

from typing import Optional, Dict, Any, List
from enum import Enum
from dataclasses import dataclass
from botocore.exceptions import ClientError, NoCredentialsError, PartialCredentialsError
from tfverify.utils.logging import get_logger


class ErrorCategory(Enum):
    """Categories of errors that can occur during verification."""
    CONFIGURATION = "configuration"
    COMMAND = "command"
    NOT_FOUND = "not_found"
    PARSE = "parse"
    CONTEXT = "context"
    CREDENTIAL = "credential"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    CRITICAL = "critical"  # Verification cannot continue
    ERROR = "error"  # Step failed
    WARNING = "warning"  # Non-fatal issue
    INFO = "info"  # Informational message


@dataclass
class ErrorContext:
    """Context information for an error."""
    resource: Optional[str] = None
    command: Optional[str] = None
    environment: Optional[str] = None
    exit_code: Optional[int] = None
    additional_info: Optional[Dict[str, Any]] = None


# Substrings in AWS CLI errors that mean the queried resource does not exist
NOT_FOUND_SIGNATURES = (
    'ClusterNotFoundException',
    'VpcNotFound',
    'DBInstanceNotFound',
    'ServiceNotFoundException',
)


class VerificationError(Exception):
    """Base exception for verification errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        suggestions: Optional[List[str]] = None
    ):
        """Initialize verification error.

        Args:
            message: Human-readable error message
            category: Error category
            severity: Error severity
            context: Additional context about the error
            cause: Original exception that caused this error
            suggestions: List of suggested fixes
        """
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.cause = cause
        self.suggestions = suggestions or []

    def to_user_message(self) -> str:
        """Convert error to user-friendly message.

        Returns:
            Formatted error message for display to user
        """
        lines = [f"{self.severity.value.upper()}: {self.message}"]

        if self.context.environment:
            lines.append(f"   Environment: {self.context.environment}")
        if self.context.resource:
            lines.append(f"   Resource: {self.context.resource}")
        if self.context.command:
            lines.append(f"   Command: {self.context.command}")

        if self.cause:
            lines.append(f"   Cause: {self.cause}")

        if self.suggestions:
            lines.append("\nSuggested fixes:")
            for i, suggestion in enumerate(self.suggestions, 1):
                lines.append(f"   {i}. {suggestion}")

        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization.

        Returns:
            Dictionary representation of the error
        """
        return {
            'type': type(self).__name__,
            'message': self.message,
            'category': self.category.value,
            'severity': self.severity.value,
            'context': {
                'resource': self.context.resource,
                'command': self.context.command,
                'environment': self.context.environment,
                'exit_code': self.context.exit_code,
                'additional_info': self.context.additional_info
            },
            'cause': str(self.cause) if self.cause else None,
            'suggestions': self.suggestions
        }


class ConfigurationError(VerificationError):
    """Error in configuration or environment layout."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            **kwargs
        )


class CredentialError(VerificationError):
    """Error related to AWS credentials."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.CREDENTIAL,
            severity=ErrorSeverity.CRITICAL,
            **kwargs
        )


class CommandError(VerificationError):
    """An external command failed or could not be started."""

    def __init__(
        self,
        message: str,
        exit_code: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
        **kwargs
    ):
        context = kwargs.pop('context', None) or ErrorContext()
        context.exit_code = exit_code
        super().__init__(
            message,
            category=ErrorCategory.COMMAND,
            severity=ErrorSeverity.ERROR,
            context=context,
            **kwargs
        )
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr

    def __str__(self) -> str:
        if self.stderr:
            return f"{self.message}\nStderr: {self.stderr.strip()}"
        return self.message


class CountParseError(VerificationError):
    """A query returned output that is not an integer count."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.PARSE,
            severity=ErrorSeverity.ERROR,
            **kwargs
        )


class ResourceFetchError(VerificationError):
    """Fetching a live resource count failed."""

    def __init__(self, resource: str, cause: Exception, not_found: bool = False, **kwargs):
        if not_found:
            message = f"{resource} not found: {cause}"
            category = ErrorCategory.NOT_FOUND
            suggestions = [
                'Provision the environment before verifying it',
                'Re-run with --ignore-resource-errors to treat missing resources as zero',
            ]
        else:
            message = f"failed to get {resource}: {cause}"
            category = ErrorCategory.COMMAND
            suggestions = [
                'Check that the AWS CLI is installed and configured',
                'Verify the credentials have read access to the resource',
            ]
        context = kwargs.pop('context', None) or ErrorContext()
        context.resource = resource
        super().__init__(
            message,
            category=category,
            severity=ErrorSeverity.ERROR,
            context=context,
            cause=cause,
            suggestions=suggestions,
            **kwargs
        )
        self.resource = resource
        self.not_found = not_found


class ContextError(VerificationError):
    """The run context expired or was cancelled."""

    def __init__(self, message: str, partial_output: str = "", **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.CONTEXT,
            severity=ErrorSeverity.CRITICAL,
            **kwargs
        )
        self.partial_output = partial_output

    def annotate(
        self,
        resource: Optional[str] = None,
        command: Optional[str] = None,
        environment: Optional[str] = None
    ) -> "ContextError":
        """Fill context fields that are still unset and return self.

        Fields already recorded closer to the failure (for example the full
        command line set by the executor) are kept.
        """
        if self.context.resource is None:
            self.context.resource = resource
        if self.context.command is None:
            self.context.command = command
        if self.context.environment is None:
            self.context.environment = environment
        return self


class DeadlineExceededError(ContextError):
    """The run deadline passed."""

    def __init__(self, message: str = "context deadline exceeded", **kwargs):
        super().__init__(message, **kwargs)


class ContextCancelledError(ContextError):
    """The run was cancelled."""

    def __init__(self, message: str = "context canceled", **kwargs):
        super().__init__(message, **kwargs)


def is_resource_not_found(error: Optional[BaseException]) -> bool:
    """Check whether an error signals a missing AWS resource."""
    if error is None:
        return False
    if isinstance(error, ResourceFetchError):
        return error.not_found
    text = str(error)
    return any(signature in text for signature in NOT_FOUND_SIGNATURES)


def is_context_error(error: Optional[BaseException]) -> bool:
    """Check whether an error came from context expiry or cancellation."""
    return isinstance(error, ContextError)


class ErrorHandler:
    """Converts arbitrary exceptions into categorized VerificationErrors."""

    def __init__(self, logger=None):
        """Initialize error handler."""
        self.logger = logger or get_logger(__name__)

    def handle_exception(
        self,
        error: Exception,
        context: Optional[ErrorContext] = None
    ) -> VerificationError:
        """Handle an exception and convert to VerificationError.

        Args:
            error: The exception to handle
            context: Additional context about where the error occurred

        Returns:
            VerificationError with categorization and suggestions
        """
        if isinstance(error, VerificationError):
            return error

        context = context or ErrorContext()

        if isinstance(error, (NoCredentialsError, PartialCredentialsError)):
            return self._handle_credential_error(error, context)

        if isinstance(error, ClientError):
            return self._handle_aws_error(error, context)

        if isinstance(error, FileNotFoundError):
            return ConfigurationError(
                f"File not found: {error.filename or error}",
                context=context,
                cause=error
            )

        return VerificationError(
            message=str(error),
            category=ErrorCategory.UNKNOWN,
            severity=ErrorSeverity.ERROR,
            context=context,
            cause=error,
            suggestions=['Re-run with --log-level debug for more details']
        )

    def _handle_aws_error(
        self,
        error: ClientError,
        context: ErrorContext
    ) -> VerificationError:
        """Handle AWS ClientError.

        Args:
            error: The ClientError
            context: Error context

        Returns:
            Categorized VerificationError
        """
        error_code = error.response.get('Error', {}).get('Code', 'Unknown')
        error_message = error.response.get('Error', {}).get('Message', str(error))

        if error_code in ('InvalidClientTokenId', 'SignatureDoesNotMatch', 'ExpiredToken'):
            return CredentialError(
                f"AWS credentials are invalid or expired ({error_code}): {error_message}",
                context=context,
                cause=error,
                suggestions=[
                    'Verify credentials using: aws sts get-caller-identity',
                    'Refresh your session credentials if they have expired',
                ]
            )

        return VerificationError(
            message=f"AWS Error ({error_code}): {error_message}",
            category=ErrorCategory.UNKNOWN,
            severity=ErrorSeverity.ERROR,
            context=context,
            cause=error
        )

    def _handle_credential_error(
        self,
        error: Exception,
        context: ErrorContext
    ) -> CredentialError:
        """Handle credential-related errors."""
        if isinstance(error, NoCredentialsError):
            return CredentialError(
                message='No AWS credentials found',
                context=context,
                cause=error,
                suggestions=[
                    'Configure AWS credentials using: aws configure',
                    'Set AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY in ~/.env.terraform',
                    'Specify a profile with --profile'
                ]
            )

        return CredentialError(
            message='Incomplete AWS credentials',
            context=context,
            cause=error,
            suggestions=[
                'Ensure both access key ID and secret access key are provided',
                'Check credential configuration in ~/.aws/credentials'
            ]
        )

    def log_error(self, error: VerificationError):
        """Log an error with appropriate level.

        Args:
            error: The error to log
        """
        log_message = error.to_user_message()

        if error.severity in (ErrorSeverity.CRITICAL, ErrorSeverity.ERROR):
            self.logger.error(log_message)
        elif error.severity == ErrorSeverity.WARNING:
            self.logger.warning(log_message)
        else:
            self.logger.info(log_message)

        self.logger.debug(f"Error details: {error.to_dict()}")
