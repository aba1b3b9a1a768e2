"""Base Pydantic model configuration.

Records persisted to the durable store and reports returned to callers
share this configuration.
"""

from pydantic import BaseModel, ConfigDict


class InfrastructureModel(BaseModel):
    """Base model for stored records and reports.

    Enums stay enum objects, fields accept their names or aliases, and
    assignments are validated.
    """

    model_config = ConfigDict(
        use_enum_values=False,
        populate_by_name=True,
        validate_assignment=True,
        from_attributes=True,
    )
