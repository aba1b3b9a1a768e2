"""Feature settings __init__ - exports all feature settings."""

from infrastructure.configuration.features.tasks import TasksFeatureSettings

__all__ = ["TasksFeatureSettings"]
