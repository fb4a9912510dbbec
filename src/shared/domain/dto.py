from pydantic import BaseModel, ConfigDict


class FrozenDTO(BaseModel):
    """Immutable pydantic model that can also be read off ORM instances."""

    model_config = ConfigDict(frozen=True, from_attributes=True)
