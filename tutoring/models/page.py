from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from tutoring.core.errors import ValidationError

T = TypeVar("T")

MAX_PAGE_SIZE = 100
# Bounds OFFSET well inside BIGINT
MAX_PAGE_NUMBER = 10_000


@dataclass(frozen=True, slots=True)
class Pagination:
    page: int = 1
    limit: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def validate_pagination(pagination: Pagination) -> Pagination:
    if not 1 <= pagination.page <= MAX_PAGE_NUMBER:
        raise ValidationError(f"page must be between 1 and {MAX_PAGE_NUMBER}")
    if not 1 <= pagination.limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    return pagination


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    items: list[T]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        # ceil(total / limit) without floats
        return -(-self.total // self.limit) if self.total else 0
