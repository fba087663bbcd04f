from pydantic import BaseModel


class FieldError(BaseModel):
    """A single constraint violation on an entity field, ready to be shown to the caller."""

    field: str
    message: str
