"""Infrastructure modules for the task pipeline.

Centralized infrastructure components:
- configuration: Settings management (settings, RetrySettings)
- logging: Structured logging (get_module_logger, bind_request_context)
- observability: Metrics sinks (StructlogMetricsSink, safe_emit)
- operations: Operation results and AWS error classification
- clients: AWS clients facade (DynamoDB, SQS)
- persistence: Durable stores with conditional writes
- idempotency: Idempotency guard
- resilience: Error classification and retry decisions
- messaging: Queue transports
- services: Application-scoped providers (get_settings, get_task_submission_service)
"""

from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    "OperationResult",
    "OperationStatus",
]
