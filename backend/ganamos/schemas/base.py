"""Schema Base — camelCase wire format shared by every request/response model."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys; Python code uses snake_case attributes."""
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True,
    )
