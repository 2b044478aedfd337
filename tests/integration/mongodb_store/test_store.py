"""Integration tests for MongoProjectionStore using testcontainers."""

import asyncio

import pytest

from catalogsync.application import BookFilter, CatalogQueryService, EventApplier
from catalogsync.application.events import ApplyResult, decode_event
from catalogsync.domain import BookRecord
from tests.fixtures.catalog import created_body, deleted_body, updated_body


def book(book_id: str, title: str, author: str, genre: str | None = None, user_id: str = "u1"):
    data = {"book_id": book_id, "title": title, "author": author, "user_id": user_id}
    if genre is not None:
        data["genre"] = genre
    return BookRecord.model_validate(data)


@pytest.mark.integration
@pytest.mark.asyncio
async def test_indexes_are_created(mongo_store, mongo_config):
    indexes = await mongo_config.books.index_information()

    keys = {tuple(spec["key"]) for spec in indexes.values()}
    assert (("book_id", 1),) in keys
    assert (("genre.name", 1),) in keys
    unique = [spec for spec in indexes.values() if spec.get("unique")]
    assert [spec["key"] for spec in unique] == [[("book_id", 1)]]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_insert_is_insert_if_absent(mongo_store):
    assert await mongo_store.insert(book("b1", "Dune", "Herbert"))
    assert not await mongo_store.insert(book("b1", "Other", "Other"))

    found = await mongo_store.find_one("b1")
    assert found.title == "Dune"
    assert "_id" not in found.to_document()


@pytest.mark.integration
@pytest.mark.asyncio
async def test_concurrent_inserts_create_one_record(mongo_store):
    results = await asyncio.gather(
        *(mongo_store.insert(book("b1", f"Title {i}", "A")) for i in range(5))
    )

    assert results.count(True) == 1
    assert await mongo_store.count(BookFilter()) == 1


@pytest.mark.integration
@pytest.mark.asyncio
async def test_update_fields_merges(mongo_store):
    await mongo_store.insert(book("b1", "Dune", "Herbert", "SciFi"))

    assert await mongo_store.update_fields("b1", {"title": "Dune Messiah"})
    assert not await mongo_store.update_fields("b2", {"title": "x"})

    found = await mongo_store.find_one("b1")
    assert (found.title, found.author.name, found.genre.name) == ("Dune Messiah", "Herbert", "SciFi")


@pytest.mark.integration
@pytest.mark.asyncio
async def test_delete(mongo_store):
    await mongo_store.insert(book("b1", "Dune", "Herbert"))

    assert await mongo_store.delete("b1")
    assert not await mongo_store.delete("b1")
    assert await mongo_store.find_one("b1") is None


@pytest.mark.integration
@pytest.mark.asyncio
async def test_filters_match_like_the_in_memory_store(mongo_store):
    for record in [
        book("b1", "Dune", "Frank Herbert", "SciFi"),
        book("b2", "Dune Messiah", "Frank Herbert", "SciFi", user_id="u2"),
        book("b3", "C++ Primer", "Lippman", "Programming"),
        book("b4", "Foundation", "Isaac Asimov", "Science"),
        book("b5", "Emma", "Jane Austen"),
    ]:
        await mongo_store.insert(record)

    async def found(filter: BookFilter) -> list[str]:
        return [r.book_id for r in await mongo_store.find(filter)]

    assert await found(BookFilter(title_prefix="dune")) == ["b1", "b2"]
    assert await found(BookFilter(title_prefix="une")) == []
    assert await found(BookFilter(title_prefix="c++")) == ["b3"]
    assert await found(BookFilter(title_prefix=".*")) == []
    assert await found(BookFilter(author_prefix="FRANK", user_id="u2")) == ["b2"]
    assert await found(BookFilter(genre_prefixes=["sci", "prog"])) == ["b1", "b2", "b3", "b4"]
    assert await mongo_store.count(BookFilter(genre_prefixes=["Sci"])) == 3


@pytest.mark.integration
@pytest.mark.asyncio
async def test_pages_are_ordered_by_book_id(mongo_store):
    for book_id in ["b5", "b2", "b4", "b1", "b3"]:
        await mongo_store.insert(book(book_id, "Same", "A"))

    pages = [
        [r.book_id for r in await mongo_store.find(BookFilter(), skip=skip, limit=2)]
        for skip in (0, 2, 4)
    ]

    assert pages == [["b1", "b2"], ["b3", "b4"], ["b5"]]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_event_sequence_through_mongo(mongo_store):
    applier = EventApplier(mongo_store)
    queries = CatalogQueryService(mongo_store)

    results = [
        await applier.apply(decode_event(body))
        for body in [
            updated_body("b1", title="Late title"),
            created_body("b1", title="Dune", author="Herbert", genre="SciFi"),
            created_body("b1", title="Dune", author="Herbert", genre="SciFi"),
            updated_body("b1", title="Dune Messiah"),
            created_body("b2", title="Emma", author="Austen"),
            deleted_body("b2"),
            deleted_body("b2"),
        ]
    ]

    assert results == [
        ApplyResult.NOT_FOUND,
        ApplyResult.CREATED,
        ApplyResult.ALREADY_EXISTS,
        ApplyResult.UPDATED,
        ApplyResult.CREATED,
        ApplyResult.DELETED,
        ApplyResult.NOT_FOUND,
    ]
    envelope = await queries.search(title="dune")
    assert envelope.to_dict()["data"]["books"][0]["title"] == "Dune Messiah"
    assert envelope.data.page_info.total_results == 1
