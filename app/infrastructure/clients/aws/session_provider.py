"""Session provider for AWS client operations.

Centralizes region and endpoint configuration for the per-service clients.
"""

from typing import Any, Dict, Optional

import structlog

from infrastructure.clients.aws import executor

logger = structlog.get_logger()


class SessionProvider:
    """Builds boto3 session and client kwargs for every AWS call.

    Args:
        region: AWS region for all clients (e.g., 'us-east-1')
        endpoint_url: Custom endpoint URL (for testing/LocalStack)
        max_retries: Throttling retries per call
    """

    def __init__(
        self,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        max_retries: int = 3,
    ) -> None:
        self.region = region
        self.endpoint_url = endpoint_url
        self.max_retries = max_retries

    def build_client_kwargs(self) -> Dict[str, Any]:
        """Build kwargs for ``execute_aws_api_call``.

        Returns:
            Dict with session_config, client_config and max_retries
        """
        session_config: Dict[str, Any] = {}
        client_config: Dict[str, Any] = {}

        if self.region:
            session_config["region_name"] = self.region
            client_config["region_name"] = self.region

        if self.endpoint_url:
            client_config["endpoint_url"] = self.endpoint_url

        return {
            "session_config": session_config or None,
            "client_config": client_config or None,
            "max_retries": self.max_retries,
        }

    def execute(self, service_name: str, method: str, **kwargs) -> Any:
        """Run one API call with this provider's configuration."""
        logger.debug("aws_api_call", service=service_name, method=method)
        return executor.execute_aws_api_call(
            service_name, method, **self.build_client_kwargs(), **kwargs
        )
