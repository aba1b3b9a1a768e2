"""Base AWS call execution for infrastructure clients.

Provides ``get_boto3_client`` and ``execute_aws_api_call``, which wraps a
single boto3 call in the OperationResult pattern. Throttled calls are
retried with a short exponential backoff; every other failure is returned
to the caller as a classified OperationResult.
"""

import time
from typing import Any, Dict, List, Optional

import boto3  # type: ignore
from botocore.client import BaseClient  # type: ignore
from botocore.exceptions import BotoCoreError, ClientError  # type: ignore
import structlog

from infrastructure.operations.classifiers import classify_aws_error
from infrastructure.operations.result import OperationResult

logger = structlog.get_logger()


def get_boto3_client(
    service_name: str,
    session_config: Optional[Dict[str, Any]] = None,
    client_config: Optional[Dict[str, Any]] = None,
) -> BaseClient:
    """Create a boto3 client for the given service.

    Args:
        service_name: AWS service name (e.g., 'dynamodb', 'sqs')
        session_config: Optional boto3 session kwargs (e.g., region_name)
        client_config: Optional client kwargs (e.g., endpoint_url)
    """
    session = boto3.Session(**(session_config or {}))
    return session.client(service_name, **(client_config or {}))


def _calculate_retry_delay(attempt: int, backoff_factor: float = 0.5) -> float:
    return backoff_factor * (2**attempt)


def _call_api_once(
    service_name: str,
    method: str,
    keys: Optional[List[str]],
    session_config: Optional[Dict[str, Any]],
    client_config: Optional[Dict[str, Any]],
    force_paginate: bool,
    kwargs: Dict[str, Any],
) -> Any:
    client = get_boto3_client(
        service_name,
        session_config=session_config,
        client_config=client_config,
    )

    if force_paginate:
        paginator = client.get_paginator(method)
        results: List[Any] = []
        for page in paginator.paginate(**kwargs):
            for k in keys or []:
                results.extend(page.get(k, []))
        return results

    return getattr(client, method)(**kwargs)


def execute_aws_api_call(
    service_name: str,
    method: str,
    keys: Optional[List[str]] = None,
    session_config: Optional[Dict[str, Any]] = None,
    client_config: Optional[Dict[str, Any]] = None,
    max_retries: int = 3,
    force_paginate: bool = False,
    backoff_factor: float = 0.5,
    **kwargs,
) -> OperationResult:
    """Execute an AWS API call and return a standardized result.

    Only throttling (``RATE_LIMITED``) is retried here. Conditional check
    failures, missing resources and other errors are returned immediately.

    Args:
        service_name: AWS service name
        method: Client method name (e.g., 'put_item')
        keys: Response list keys to collect when paginating
        session_config: boto3 session kwargs
        client_config: boto3 client kwargs
        max_retries: Throttling retries before giving up
        force_paginate: Collect every page of a paginated operation
        backoff_factor: Base seconds for the throttling backoff
        **kwargs: Parameters passed to the boto3 method

    Returns:
        OperationResult with the raw response (or collected items) as data
    """
    for attempt in range(max_retries + 1):
        try:
            result = _call_api_once(
                service_name,
                method,
                keys,
                session_config,
                client_config,
                force_paginate,
                kwargs,
            )
            return OperationResult.success(
                data=result, message=f"{service_name}.{method} succeeded"
            )

        except (ClientError, BotoCoreError) as e:
            mapped = classify_aws_error(e)

            if mapped.error_code == "RATE_LIMITED" and attempt < max_retries:
                delay = _calculate_retry_delay(attempt, backoff_factor)
                logger.warning(
                    "aws_api_retry",
                    service=service_name,
                    method=method,
                    attempt=attempt + 1,
                    error=str(e),
                    delay=delay,
                )
                time.sleep(delay)
                continue

            # Lost conditional writes are an expected outcome
            if mapped.error_code == "CONDITIONAL_CHECK_FAILED":
                log = logger.info
            else:
                log = logger.error
            log(
                "aws_api_call_failed",
                service=service_name,
                method=method,
                status=mapped.status.value,
                error_code=mapped.error_code,
                error=str(e),
            )
            return mapped

    # Unreachable: the final attempt always returns
    return OperationResult.transient_error(
        f"{service_name}.{method} exhausted retries", error_code="RATE_LIMITED"
    )
