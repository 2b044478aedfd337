"""Book read model types.

``BookRecord`` is the document kept in the projection store. ``NewBook`` and
``BookChanges`` are the payload shapes carried by creation and update events,
and ``BookSummary`` / ``SearchHit`` are the projections handed to callers of
the query service.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _check_field_names(model: BaseModel) -> None:
    # Extra keys end up as document field names in the projection store,
    # where a dot addresses a nested path and a leading $ names an operator.
    for key in model.model_extra or {}:
        if "." in key or key.startswith("$"):
            raise ValueError(f"field name {key!r} must not contain '.' or start with '$'")


class NamedRef(BaseModel):
    """A structured reference with at least a display ``name``.

    Producers sometimes send the bare display name instead of the object
    form; a plain string is accepted and normalised to ``{"name": value}``.

    Examples:
        >>> Author.model_validate("Frank Herbert")
        Author(name='Frank Herbert')
        >>> Genre.model_validate({"name": "SciFi", "code": "sf"}).name
        'SciFi'
    """

    model_config = ConfigDict(extra="allow")

    name: str

    @model_validator(mode="before")
    @classmethod
    def _accept_plain_name(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"name": value}
        return value

    @model_validator(mode="after")
    def _safe_field_names(self) -> "NamedRef":
        _check_field_names(self)
        return self


class Author(NamedRef):
    """Author of a book."""


class Genre(NamedRef):
    """Genre of a book."""


class BookRecord(BaseModel):
    """A book as projected into the store.

    ``book_id`` is the identity key and is never changed once the record
    exists. Fields other than the ones declared here are kept as-is so that
    producer additions survive the projection.

    Attributes:
        book_id: Stable identifier of the book.
        title: Title of the book.
        author: Author reference.
        genre: Genre reference, absent for uncategorised books.
        user_id: Identifier of the owning user.
        created_at: Opaque creation timestamp supplied by the producer.
        updated_at: Opaque update timestamp supplied by the producer.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    book_id: str = Field(min_length=1)
    title: str | None = None
    author: Author | None = None
    genre: Genre | None = None
    user_id: str | None = None
    created_at: Any = Field(default=None, alias="createdAt")
    updated_at: Any = Field(default=None, alias="updatedAt")

    @model_validator(mode="after")
    def _safe_field_names(self) -> "BookRecord":
        _check_field_names(self)
        return self

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "BookRecord":
        """Build a record from a stored document, ignoring store-internal keys."""
        return cls.model_validate({k: v for k, v in document.items() if k != "_id"})

    def to_document(self) -> dict[str, Any]:
        """Serialise the record using its wire field names."""
        return self.model_dump(by_alias=True, exclude_none=True)


class NewBook(BookRecord):
    """Payload of a creation event: the full record."""

    title: str
    author: Author
    user_id: str


class BookChanges(BaseModel):
    """Payload of an update event: the identifier plus the changed fields."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    book_id: str = Field(min_length=1)
    title: str | None = None
    author: Author | None = None
    genre: Genre | None = None
    user_id: str | None = None
    created_at: Any = Field(default=None, alias="createdAt")
    updated_at: Any = Field(default=None, alias="updatedAt")

    @model_validator(mode="after")
    def _safe_field_names(self) -> "BookChanges":
        _check_field_names(self)
        return self

    def changes(self) -> dict[str, Any]:
        """Return only the fields present in the payload, keyed by wire name.

        Fields that were not sent are omitted so that an update never
        clobbers values it did not mention.
        """
        changed = self.model_dump(by_alias=True, exclude_unset=True, exclude={"book_id"})
        for key, value in (self.model_extra or {}).items():
            changed.setdefault(key, value)
        return changed


class BookRef(BaseModel):
    """Payload of a deletion event: only the identifier matters."""

    model_config = ConfigDict(extra="ignore")

    book_id: str = Field(min_length=1)


class BookSummary(BaseModel):
    """Public projection of a book: identifier, title and display names."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    title: str | None = None
    author: str | None = None
    genre: str | None = None

    @classmethod
    def from_record(cls, record: BookRecord) -> "BookSummary":
        return cls(
            id=record.book_id,
            title=record.title,
            author=record.author.name if record.author else None,
            genre=record.genre.name if record.genre else None,
        )


class SearchHit(BookSummary):
    """A search result: the summary plus the record's timestamps."""

    created_at: Any = Field(default=None, alias="createdAt")
    updated_at: Any = Field(default=None, alias="updatedAt")

    @classmethod
    def from_record(cls, record: BookRecord) -> "SearchHit":
        summary = BookSummary.from_record(record)
        return cls(
            **summary.model_dump(),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
