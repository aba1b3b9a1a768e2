"""Shared pydantic model base.

Exports:
    InfrastructureModel: Base model configuration for records and reports
"""

from infrastructure.models.base import InfrastructureModel

__all__ = ["InfrastructureModel"]
