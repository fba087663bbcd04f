from pydantic import BaseModel

from shared.models.validation import FieldError


class NewIdResponse(BaseModel):
    id: str


class CountResponse(BaseModel):
    count: int


class SumResponse(BaseModel):
    sum: float


class ValidationErrorResponse(BaseModel):
    errors: list[FieldError]
