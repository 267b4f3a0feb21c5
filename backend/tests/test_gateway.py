"""
NoteGate — Dispatch Gateway Unit Tests
========================================

What:  Tests for name resolution, argument decoding and invocation.
How:   A small in-test operations interface with a recording implementation,
       so each dispatch can be compared with a direct call.

What we test:
    ✅ Valid payload → same result as calling the method directly
    ✅ Unknown method → MethodNotFoundError before any parameter resolution
    ✅ Omitted field or explicit null → None argument
    ✅ Wrong JSON shape → ParameterDeserializationError naming the parameter, no call
    ✅ Unresolvable names → ParameterNamesUnavailableError, no call
    ✅ Operation errors pass through unchanged
    ✅ Repeated dispatch on a stateless target is deterministic
"""

import abc
from typing import List, Optional
from unittest.mock import patch

import pytest

from notegate.exceptions import (
    MethodNotFoundError,
    ParameterDeserializationError,
    ParameterNamesUnavailableError,
    StoreErrorCode,
    StoreUserError,
)
from notegate.schemas.types import Note, Tag
from notegate.services.gateway import DispatchGateway, encode_result
from notegate.services.registry import OperationRegistry

tag_registry = OperationRegistry("TagStore")


class TagOperations(abc.ABC):

    @tag_registry.operation("createTag")
    @abc.abstractmethod
    def create_tag(self, name: str, tag: Tag) -> Tag:
        ...

    @tag_registry.operation("listTagNames")
    @abc.abstractmethod
    async def list_tag_names(self, prefix: Optional[str], limit: Optional[int]) -> List[str]:
        ...

    @tag_registry.operation("attachNote")
    @abc.abstractmethod
    async def attach_note(self, note: Note) -> Note:
        ...

    @tag_registry.operation("rejectTag")
    @abc.abstractmethod
    async def reject_tag(self, tag: Tag) -> None:
        ...

    @tag_registry.operation("forward")
    @abc.abstractmethod
    def forward(self, *args) -> None:
        ...


class RecordingTagStore(TagOperations):
    """Implementation that records every call it receives."""

    NAMES = ["alpha", "beta", "gamma"]

    def __init__(self):
        self.calls = []

    def create_tag(self, name, tag):
        self.calls.append(("create_tag", name, tag))
        return tag.model_copy(update={"parent_guid": name})

    async def list_tag_names(self, prefix, limit):
        self.calls.append(("list_tag_names", prefix, limit))
        names = [n for n in self.NAMES if prefix is None or n.startswith(prefix)]
        return names[:limit] if limit is not None else names

    async def attach_note(self, note):
        self.calls.append(("attach_note", note))
        return note

    async def reject_tag(self, tag):
        self.calls.append(("reject_tag", tag))
        raise StoreUserError(StoreErrorCode.DATA_CONFLICT, "Tag.name")

    def forward(self, *args):
        self.calls.append(("forward", args))


class ShortTagStore(RecordingTagStore):
    """Implements createTag with fewer parameters than declared."""

    def create_tag(self, name):
        self.calls.append(("create_tag", name))


class TestInvoke:

    def setup_method(self):
        self.gateway = DispatchGateway(tag_registry)
        self.store = RecordingTagStore()

    @pytest.mark.asyncio
    async def test_named_fields_map_to_parameters(self):
        payload = {"name": "GUID", "tag": {"guid": "TAG_GUID", "name": "TAG_NAME"}}

        result = await self.gateway.invoke(self.store, "createTag", payload)

        assert self.store.calls == [
            ("create_tag", "GUID", Tag(guid="TAG_GUID", name="TAG_NAME"))
        ]
        assert result == RecordingTagStore().create_tag(
            "GUID", Tag(guid="TAG_GUID", name="TAG_NAME")
        )

    @pytest.mark.asyncio
    async def test_async_operation_is_awaited(self):
        result = await self.gateway.invoke(
            self.store, "listTagNames", {"prefix": "a", "limit": 5}
        )
        assert result == ["alpha"]

    @pytest.mark.asyncio
    async def test_omitted_field_becomes_none(self):
        result = await self.gateway.invoke(self.store, "createTag", {"tag": {"name": "T"}})

        assert self.store.calls == [("create_tag", None, Tag(name="T"))]
        assert result.parent_guid is None

    @pytest.mark.asyncio
    async def test_explicit_null_matches_omitted_field(self):
        await self.gateway.invoke(self.store, "createTag", {"name": None, "tag": {"name": "T"}})
        await self.gateway.invoke(self.store, "createTag", {"tag": {"name": "T"}})

        assert self.store.calls == [
            ("create_tag", None, Tag(name="T")),
            ("create_tag", None, Tag(name="T")),
        ]

    @pytest.mark.asyncio
    async def test_empty_payload_passes_all_none(self):
        result = await self.gateway.invoke(self.store, "listTagNames", {})

        assert self.store.calls == [("list_tag_names", None, None)]
        assert result == RecordingTagStore.NAMES

    @pytest.mark.asyncio
    async def test_unexpected_fields_are_ignored(self):
        await self.gateway.invoke(
            self.store, "listTagNames", {"prefix": "b", "limit": 1, "verbose": True}
        )
        assert self.store.calls == [("list_tag_names", "b", 1)]

    @pytest.mark.asyncio
    async def test_base64_binary_fields_are_decoded(self):
        payload = {
            "note": {
                "title": "scan",
                "contentHash": "Rk9P",
                "resources": [{"data": {"body": "QkFS", "size": 3}}],
            }
        }

        note = await self.gateway.invoke(self.store, "attachNote", payload)

        assert note.content_hash == b"FOO"
        assert note.resources[0].data.body == b"BAR"
        assert encode_result(note)["contentHash"] == "Rk9P"

    @pytest.mark.asyncio
    async def test_repeated_dispatch_is_deterministic(self):
        payload = {"name": "GUID", "tag": {"name": "TAG_NAME"}}

        first = await self.gateway.invoke(self.store, "createTag", payload)
        second = await self.gateway.invoke(self.store, "createTag", payload)

        assert first == second
        assert encode_result(first) == encode_result(second)


class TestResolutionErrors:

    def setup_method(self):
        self.gateway = DispatchGateway(tag_registry)
        self.store = RecordingTagStore()

    @pytest.mark.asyncio
    async def test_unknown_method(self):
        with patch.object(tag_registry, "resolve_names") as resolve_names:
            with pytest.raises(MethodNotFoundError) as exc_info:
                await self.gateway.invoke(self.store, "createTagz", {})

        resolve_names.assert_not_called()
        assert exc_info.value.message == (
            "Cannot find methodName=[createTagz] on [RecordingTagStore]."
        )
        assert self.store.calls == []

    @pytest.mark.asyncio
    async def test_method_missing_on_target(self):
        with pytest.raises(MethodNotFoundError):
            await self.gateway.invoke(object(), "createTag", {})

    @pytest.mark.asyncio
    async def test_wrong_field_type_names_parameter(self):
        with pytest.raises(ParameterDeserializationError) as exc_info:
            await self.gateway.invoke(self.store, "createTag", {"tag": {"name": 123}})

        error = exc_info.value
        assert error.parameter == "tag"
        assert error.message == (
            'Cannot parse part of the json for parameter=[tag]. json=[{"name": 123}]'
        )
        assert error.context["errors"]
        assert self.store.calls == []

    @pytest.mark.asyncio
    async def test_scalar_where_object_expected(self):
        with pytest.raises(ParameterDeserializationError) as exc_info:
            await self.gateway.invoke(self.store, "createTag", {"tag": "not-a-tag"})
        assert exc_info.value.parameter == "tag"
        assert self.store.calls == []

    @pytest.mark.asyncio
    async def test_invalid_base64(self):
        with pytest.raises(ParameterDeserializationError) as exc_info:
            await self.gateway.invoke(
                self.store, "attachNote", {"note": {"contentHash": "not base64!"}}
            )
        assert exc_info.value.parameter == "note"

    @pytest.mark.asyncio
    async def test_long_fragment_is_truncated(self):
        with pytest.raises(ParameterDeserializationError) as exc_info:
            await self.gateway.invoke(self.store, "listTagNames", {"limit": "x" * 500})
        assert len(exc_info.value.fragment) == ParameterDeserializationError.SNIPPET_LIMIT + 3

    @pytest.mark.asyncio
    async def test_undescribable_operation(self):
        with pytest.raises(ParameterNamesUnavailableError) as exc_info:
            await self.gateway.invoke(self.store, "forward", {})

        assert exc_info.value.message == "Cannot find parameter names for method=[forward]."
        assert self.store.calls == []

    @pytest.mark.asyncio
    async def test_implementation_arity_mismatch(self):
        store = ShortTagStore()
        with pytest.raises(ParameterNamesUnavailableError):
            await self.gateway.invoke(store, "createTag", {"name": "x"})
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_operation_errors_pass_through(self):
        with pytest.raises(StoreUserError) as exc_info:
            await self.gateway.invoke(self.store, "rejectTag", {"tag": {"name": "dup"}})

        assert exc_info.value.error_code is StoreErrorCode.DATA_CONFLICT
        assert self.store.calls == [("reject_tag", Tag(name="dup"))]


class TestEncodeResult:

    def test_wire_names_and_unset_fields_dropped(self):
        assert encode_result(Tag(name="t", parent_guid="p")) == {
            "name": "t",
            "parentGuid": "p",
        }

    def test_none_and_scalars(self):
        assert encode_result(None) is None
        assert encode_result(7) == 7
        assert encode_result([Tag(guid="g")]) == [{"guid": "g"}]
