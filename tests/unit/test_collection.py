"""
Unit tests for RecordCollection.
"""

import pytest

from recordstore.core.collection import RecordCollection
from recordstore.core.exceptions import DuplicateKeyError, NotFoundError
from recordstore.core.models import Record


@pytest.fixture
def collection():
    return RecordCollection([
        Record(1, "alice@example.com", "Alice"),
        Record(2, "bob@example.com", "Bob"),
        Record(3, "carol@example.com", "Carol"),
    ])


class TestFind:

    def test_found(self, collection):
        assert collection.find(2) == 1

    def test_absent(self, collection):
        assert collection.find(99) is None

    def test_first_match_wins(self):
        collection = RecordCollection([Record(1, "a", "A"), Record(1, "b", "B")])
        assert collection.find(1) == 0


class TestInsert:

    def test_appends(self, collection):
        collection.insert(Record(4, "dan@example.com", "Dan"))
        assert [r.id for r in collection] == [1, 2, 3, 4]

    def test_duplicate_rejected(self, collection):
        with pytest.raises(DuplicateKeyError) as exc_info:
            collection.insert(Record(1, "new@example.com", "New"))

        assert exc_info.value.record_id == 1
        assert len(collection) == 3


class TestReplaceFields:

    def test_full_update(self, collection):
        updated = collection.replace_fields(1, "alice_new@example.com", "Alice New")

        assert updated == Record(1, "alice_new@example.com", "Alice New")
        assert collection.get(1) == updated

    def test_full_update_accepts_empty_strings(self, collection):
        collection.replace_fields(1, "", "")
        assert collection.get(1) == Record(1, "", "")

    def test_full_update_requires_both(self, collection):
        with pytest.raises(ValueError):
            collection.replace_fields(1, "x@example.com", None)

    def test_partial_email_only(self, collection):
        collection.replace_fields(1, email="patched@example.com", partial=True)
        assert collection.get(1) == Record(1, "patched@example.com", "Alice")

    def test_partial_name_only(self, collection):
        collection.replace_fields(1, name="Alice Patched", partial=True)
        assert collection.get(1) == Record(1, "alice@example.com", "Alice Patched")

    @pytest.mark.parametrize("email,name", [(None, None), ("", ""), ("", None)])
    def test_partial_no_op(self, collection, email, name):
        collection.replace_fields(1, email, name, partial=True)
        assert collection.get(1) == Record(1, "alice@example.com", "Alice")

    def test_missing_id(self, collection):
        with pytest.raises(NotFoundError) as exc_info:
            collection.replace_fields(99, "x@x.com", "X")
        assert exc_info.value.record_id == 99

    def test_order_preserved(self, collection):
        collection.replace_fields(2, "b2@example.com", "Bob Two")
        assert [r.id for r in collection] == [1, 2, 3]


class TestRemove:

    def test_removes_and_keeps_order(self, collection):
        removed = collection.remove(2)

        assert removed.id == 2
        assert [r.id for r in collection] == [1, 3]

    def test_missing_id(self, collection):
        with pytest.raises(NotFoundError):
            collection.remove(99)

    def test_second_remove_fails(self, collection):
        collection.remove(3)
        with pytest.raises(NotFoundError):
            collection.remove(3)


def test_working_copy_does_not_alias_source():
    source = [Record(1, "a@x.com", "A")]
    collection = RecordCollection(source)

    collection.insert(Record(2, "b@x.com", "B"))
    collection.replace_fields(1, "z@x.com", "Z")

    assert source == [Record(1, "a@x.com", "A")]
