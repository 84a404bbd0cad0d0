"""Tests for results, errors and collections."""
from dataclasses import dataclass

import pytest

from graccess_client.errors import ExternalOperationFailed, GalaxyError, NotFoundError
from graccess_client.galaxy.base import (
    CommandResult,
    Found,
    NamedCollection,
    NotFound,
    assert_success,
)


@dataclass
class Item:
    name: str
    value: int = 0


class TestCommandResult:
    """Tests for CommandResult and assert_success."""

    def test_ok(self):
        """Successful result helper."""
        result = CommandResult.ok("done")
        assert result.successful is True
        assert result.text == "done"
        assert "OK" in repr(result)

    def test_failed(self):
        """Failed result helper keeps every field."""
        result = CommandResult.failed("Access Denied", "user lacks rights", id=42)
        assert result.successful is False
        assert result.custom_message == "user lacks rights"
        assert result.id == 42
        assert "FAILED" in repr(result)

    def test_assert_success_passes(self):
        """Successful and missing results do not raise."""
        assert_success(CommandResult.ok())
        assert_success(None)

    def test_assert_success_raises(self):
        """Failed results raise with text and custom message."""
        result = CommandResult.failed("Access Denied", "Contact admin")
        with pytest.raises(ExternalOperationFailed) as exc_info:
            assert_success(result, "Login to Demo")
        message = str(exc_info.value)
        assert message == "Login to Demo failed: Access Denied, Contact admin"
        assert exc_info.value.result is result
        assert exc_info.value.operation == "Login to Demo"

    def test_message_without_operation(self):
        """Message is text and custom message when no operation is named."""
        error = ExternalOperationFailed(CommandResult.failed("Boom"))
        assert str(error) == "Boom, "


class TestErrors:
    """Tests for the exception hierarchy."""

    def test_hierarchy(self):
        assert issubclass(ExternalOperationFailed, GalaxyError)
        assert issubclass(NotFoundError, GalaxyError)
        assert issubclass(NotFoundError, LookupError)


class TestNamedCollection:
    """Tests for NamedCollection."""

    def test_lookup_by_name(self):
        """get() returns Found or NotFound."""
        coll = NamedCollection([Item("a", 1), Item("b", 2)])
        hit = coll.get("b")
        assert isinstance(hit, Found)
        assert hit.value.value == 2
        miss = coll.get("c")
        assert isinstance(miss, NotFound)
        assert miss.name == "c"

    def test_positional_access_is_zero_based(self):
        """at() uses Python positions."""
        coll = NamedCollection([Item("a"), Item("b")])
        assert coll.at(0).name == "a"
        assert coll.at(1).name == "b"
        with pytest.raises(IndexError):
            coll.at(2)

    def test_first(self):
        """first() on empty and non-empty collections."""
        assert isinstance(NamedCollection([]).first(), NotFound)
        first = NamedCollection([Item("a"), Item("b")]).first()
        assert isinstance(first, Found)
        assert first.value.name == "a"

    def test_duplicate_names_keep_first(self):
        """Name lookup resolves to the first item with that name."""
        coll = NamedCollection([Item("a", 1), Item("a", 2)])
        assert len(coll) == 2
        assert coll.get("a").value.value == 1
        assert coll.names() == ["a"]

    def test_container_protocol(self):
        """len, iteration and membership by name."""
        coll = NamedCollection([Item("a"), Item("b")])
        assert len(coll) == 2
        assert [i.name for i in coll] == ["a", "b"]
        assert "a" in coll
        assert "z" not in coll
        assert set(coll.by_name) == {"a", "b"}

    def test_custom_key(self):
        """Items can be keyed by any attribute."""
        coll = NamedCollection([Item("a", 7)], key=lambda i: str(i.value))
        assert "7" in coll
