"""Utility modules for logging, errors, command execution and AWS sessions."""

from tfverify.utils.aws_client import AWSClientManager, AWSCredentials
from tfverify.utils.context import RunContext
from tfverify.utils.errors import (
    ErrorCategory,
    ErrorSeverity,
    ErrorContext,
    VerificationError,
    ConfigurationError,
    CredentialError,
    CommandError,
    CountParseError,
    ResourceFetchError,
    ContextError,
    DeadlineExceededError,
    ContextCancelledError,
    ErrorHandler,
    is_context_error,
    is_resource_not_found,
)
from tfverify.utils.executor import (
    CommandExecutor,
    ContextAwareCommandExecutor,
    SubprocessCommandExecutor,
    CommandExecutorWrapper,
    as_context_aware,
)
from tfverify.utils.logging import get_logger, setup_logging, RunLoggerAdapter

__all__ = [
    # AWS Client
    'AWSClientManager',
    'AWSCredentials',

    # Context and execution
    'RunContext',
    'CommandExecutor',
    'ContextAwareCommandExecutor',
    'SubprocessCommandExecutor',
    'CommandExecutorWrapper',
    'as_context_aware',

    # Errors
    'ErrorCategory',
    'ErrorSeverity',
    'ErrorContext',
    'VerificationError',
    'ConfigurationError',
    'CredentialError',
    'CommandError',
    'CountParseError',
    'ResourceFetchError',
    'ContextError',
    'DeadlineExceededError',
    'ContextCancelledError',
    'ErrorHandler',
    'is_context_error',
    'is_resource_not_found',

    # Logging
    'get_logger',
    'setup_logging',
    'RunLoggerAdapter',
]
