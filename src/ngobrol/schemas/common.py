"""Shared response envelopes: pagination and input validation."""

import math
from typing import Any, Generic, Mapping, TypeVar, Union

from pydantic import BaseModel, ValidationError

from ngobrol.errors import validation_error

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class PaginationMeta(BaseModel):
    page: int
    per_page: int
    total_items: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, per_page: int, total_items: int) -> "PaginationMeta":
        total_pages = math.ceil(total_items / per_page) if per_page else 0
        return cls(
            page=page,
            per_page=per_page,
            total_items=total_items,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class Page(BaseModel, Generic[T]):
    items: list[T]
    pagination: PaginationMeta


def validate_input(model: type[M], data: Union[M, Mapping[str, Any]]) -> M:
    """Coerce `data` into `model`, raising a VALIDATION_ERROR AppError.

    Already-validated instances (e.g. parsed by FastAPI) pass through.
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise validation_error(e.errors())
