"""AWS session and client management."""
import logging
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config

from stack_diagnoser.config.settings import Settings

logger = logging.getLogger(__name__)


class AWSClientFactory:
    """Builds boto3 clients from an explicit Settings object.

    Region and credential provider come from the settings passed in, never
    from process-wide state. Clients are cached per factory instance.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.region = settings.aws_region
        self.endpoint_url = settings.aws_endpoint_url
        self._session: Optional[boto3.Session] = None
        self._clients: Dict[str, Any] = {}

        logger.debug("Initializing AWSClientFactory")
        logger.debug(f"  Region: {self.region}")
        logger.debug(f"  Credentials: {settings.credential_source}")
        logger.debug(f"  Endpoint: {self.endpoint_url}")

    @property
    def session(self) -> boto3.Session:
        """Create the boto3 session on first use."""
        if self._session is None:
            self._session = self._create_session()
        return self._session

    def _create_session(self) -> boto3.Session:
        session_kwargs = {'region_name': self.region}

        # A named profile (SSO or assumed role) wins over static keys
        if self.settings.aws_profile:
            session_kwargs['profile_name'] = self.settings.aws_profile
        elif self.settings.aws_access_key_id and self.settings.aws_secret_access_key:
            session_kwargs['aws_access_key_id'] = self.settings.aws_access_key_id
            session_kwargs['aws_secret_access_key'] = self.settings.aws_secret_access_key
            if self.settings.aws_session_token:
                session_kwargs['aws_session_token'] = self.settings.aws_session_token

        return boto3.Session(**session_kwargs)

    def client_config(self) -> Config:
        """botocore config carrying retry and timeout behaviour."""
        return Config(
            region_name=self.region,
            connect_timeout=self.settings.connect_timeout,
            read_timeout=self.settings.read_timeout,
            retries={
                'max_attempts': self.settings.max_attempts,
                'mode': self.settings.retry_mode,
            },
        )

    def get_client(self, service_name: str) -> Any:
        """Get or create an AWS service client."""
        if service_name in self._clients:
            return self._clients[service_name]

        client_kwargs = {'config': self.client_config()}
        if self.endpoint_url:
            client_kwargs['endpoint_url'] = self.endpoint_url

        try:
            client = self.session.client(service_name, **client_kwargs)
        except Exception as e:
            logger.error(f"Error creating {service_name} client: {str(e)}")
            raise

        self._clients[service_name] = client
        logger.debug(f"Created {service_name} client")
        return client

    def clear_clients(self):
        """Clear all cached clients."""
        self._clients.clear()
        logger.debug("Cleared all AWS clients")

    def get_cloudformation_client(self):
        """Get the CloudFormation client."""
        return self.get_client('cloudformation')
