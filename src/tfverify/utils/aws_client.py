"""AWS session handling and credential validation."""

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from typing import Optional
from dataclasses import dataclass
from tfverify.utils.errors import CredentialError, ErrorContext, ErrorHandler
from tfverify.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class AWSCredentials:
    """AWS credential information."""
    account_id: str
    user_arn: str
    user_id: str
    region: Optional[str]
    profile: Optional[str] = None


class AWSClientManager:
    """Manages the boto3 session used to confirm who the AWS CLI will act as."""

    def __init__(
        self,
        profile: Optional[str] = None,
        region: Optional[str] = None,
        error_handler: Optional[ErrorHandler] = None
    ):
        """Initialize AWS client manager.

        Args:
            profile: AWS profile name to use
            region: AWS region to use
            error_handler: Handler used to categorize botocore errors
        """
        self.profile = profile
        self.region = region
        self.error_handler = error_handler or ErrorHandler()
        self._session: Optional[boto3.Session] = None
        self._credentials: Optional[AWSCredentials] = None

        self._boto_config = Config(
            retries={'mode': 'standard', 'max_attempts': 1},
            connect_timeout=10,
            read_timeout=30
        )

    @property
    def session(self) -> boto3.Session:
        """Get or create boto3 session.

        Returns:
            Configured boto3 session
        """
        if self._session is None:
            kwargs = {}
            if self.profile:
                kwargs['profile_name'] = self.profile
            if self.region:
                kwargs['region_name'] = self.region

            self._session = boto3.Session(**kwargs)
            logger.debug(f"Created AWS session - Region: {self._session.region_name}, "
                         f"Profile: {self.profile or 'default'}")

        return self._session

    def validate_credentials(self) -> AWSCredentials:
        """Validate AWS credentials and return credential information.

        Returns:
            AWSCredentials object with account and user information

        Raises:
            CredentialError: If credentials are missing, incomplete or rejected
        """
        if self._credentials is not None:
            return self._credentials

        try:
            sts = self.session.client('sts', config=self._boto_config)
            identity = sts.get_caller_identity()
        except (BotoCoreError, ClientError) as e:
            error = self.error_handler.handle_exception(
                e, ErrorContext(command='sts get-caller-identity')
            )
            if not isinstance(error, CredentialError):
                error = CredentialError(
                    f"Failed to validate AWS credentials: {error.message}",
                    context=error.context,
                    cause=e
                )
            raise error from e

        self._credentials = AWSCredentials(
            account_id=identity['Account'],
            user_arn=identity['Arn'],
            user_id=identity['UserId'],
            region=self.session.region_name,
            profile=self.profile
        )

        logger.info(f"AWS credentials validated - Account: {self._credentials.account_id}, "
                    f"User: {self._credentials.user_arn}, Region: {self._credentials.region}")

        return self._credentials
