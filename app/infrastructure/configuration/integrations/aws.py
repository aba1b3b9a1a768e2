"""AWS integration settings."""

from typing import Optional

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class AwsSettings(IntegrationSettings):
    """AWS configuration settings.

    Environment Variables:
        AWS_REGION: AWS region for DynamoDB and SQS (default: us-east-1)
        AWS_ENDPOINT_URL: Custom endpoint, e.g. LocalStack (default: unset)
        AWS_MAX_API_RETRIES: Throttling retries per AWS call (default: 3)

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        region = settings.aws.AWS_REGION
        ```
    """

    AWS_REGION: str = Field(default="us-east-1", alias="AWS_REGION")
    ENDPOINT_URL: Optional[str] = Field(default=None, alias="AWS_ENDPOINT_URL")
    MAX_API_RETRIES: int = Field(
        default=3,
        alias="AWS_MAX_API_RETRIES",
        description="Retries for throttled AWS API calls before giving up",
    )
