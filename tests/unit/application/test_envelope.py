"""Tests for response envelopes."""

from catalogsync.application import Envelope, ErrorKind
from catalogsync.domain import BookSummary


def test_success_serialises_models_with_wire_names():
    envelope = Envelope.ok([BookSummary(id="b1", title="Dune", author="Herbert")])

    assert envelope.to_dict() == {
        "success": True,
        "data": [{"_id": "b1", "title": "Dune", "author": "Herbert", "genre": None}],
    }


def test_failure_has_message_and_error_kind():
    envelope = Envelope.failure(ErrorKind.FORBIDDEN, "Forbidden")

    assert not envelope.success
    assert envelope.data is None
    assert envelope.to_dict() == {"success": False, "message": "Forbidden", "error": "forbidden"}
