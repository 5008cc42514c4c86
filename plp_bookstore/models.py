from typing import Optional

from bson.decimal128 import Decimal128
from pydantic import BaseModel, ConfigDict, Field, field_validator


class Book(BaseModel):
    """One document of the books collection.

    `title` identifies a book for the update/delete tasks by convention only;
    nothing enforces uniqueness.
    """

    model_config = ConfigDict(extra="ignore")

    title: str = Field(min_length=1, max_length=255)
    author: str = Field(min_length=1, max_length=255)
    genre: str = Field(min_length=1, max_length=64)
    published_year: int
    price: float = Field(ge=0)
    pages: int = Field(ge=0)
    in_stock: bool
    publisher: Optional[str] = Field(default=None, max_length=255)

    @field_validator("price", mode="before")
    @classmethod
    def _unwrap_decimal128(cls, value):
        # prices written as Decimal are stored as Decimal128
        if isinstance(value, Decimal128):
            return value.to_decimal()
        return value

    def to_document(self) -> dict:
        return self.model_dump(exclude_none=True)
