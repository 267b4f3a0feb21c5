"""
NoteGate — Local Note Store Tests
===================================

What:  Store rules and queries of LocalNoteStore against a real SQLite
       database (aiosqlite temp file per test).

What we test:
    ✅ Notebooks: default handling, name rules, uniqueness, expunge protection
    ✅ Tags: parent checks, cycles, untagAll, expunge cleanup
    ✅ Saved searches: query required, defaults
    ✅ Notes: content hash, tags by name, findNotes filtering/ordering/paging
    ✅ Application data entries
    ✅ Linked notebooks
    ✅ Update sequence numbers and scope isolation
"""

import hashlib

import pytest

from notegate.exceptions import StoreErrorCode, StoreNotFoundError, StoreUserError
from notegate.schemas.types import (
    Data,
    LinkedNotebook,
    Note,
    NoteFilter,
    Notebook,
    QueryFormat,
    Resource,
    SavedSearch,
    SharedNotebookPrivilegeLevel,
    Tag,
)
from notegate.services.note_store import DEFAULT_NOTEBOOK_NAME


class TestNotebooks:

    @pytest.mark.asyncio
    async def test_first_notebook_becomes_default(self, note_store):
        first = await note_store.create_notebook(Notebook(name="Work"))
        second = await note_store.create_notebook(Notebook(name="Home"))

        assert first.default_notebook is True
        assert second.default_notebook is False
        assert first.guid and first.guid != second.guid
        assert (await note_store.get_default_notebook()).guid == first.guid

    @pytest.mark.asyncio
    async def test_default_notebook_created_on_demand(self, note_store):
        notebook = await note_store.get_default_notebook()

        assert notebook.name == DEFAULT_NOTEBOOK_NAME
        assert notebook.default_notebook is True
        assert [n.guid for n in await note_store.list_notebooks()] == [notebook.guid]

    @pytest.mark.asyncio
    async def test_new_default_clears_previous(self, note_store):
        first = await note_store.create_notebook(Notebook(name="Work"))
        second = await note_store.create_notebook(Notebook(name="Home", default_notebook=True))

        assert (await note_store.get_notebook(first.guid)).default_notebook is False
        assert (await note_store.get_default_notebook()).guid == second.guid

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "name, code",
        [
            (None, StoreErrorCode.DATA_REQUIRED),
            ("", StoreErrorCode.BAD_DATA_FORMAT),
            (" Work", StoreErrorCode.BAD_DATA_FORMAT),
            ("x" * 101, StoreErrorCode.BAD_DATA_FORMAT),
        ],
    )
    async def test_name_rules(self, note_store, name, code):
        with pytest.raises(StoreUserError) as exc_info:
            await note_store.create_notebook(Notebook(name=name))

        assert exc_info.value.error_code is code
        assert exc_info.value.parameter == "Notebook.name"

    @pytest.mark.asyncio
    async def test_names_unique_ignoring_case(self, note_store):
        await note_store.create_notebook(Notebook(name="Work"))

        with pytest.raises(StoreUserError) as exc_info:
            await note_store.create_notebook(Notebook(name="WORK"))
        assert exc_info.value.error_code is StoreErrorCode.DATA_CONFLICT

    @pytest.mark.asyncio
    async def test_update_returns_new_usn(self, note_store):
        notebook = await note_store.create_notebook(Notebook(name="Work"))

        usn = await note_store.update_notebook(
            Notebook(guid=notebook.guid, name="Office", stack="Jobs")
        )

        updated = await note_store.get_notebook(notebook.guid)
        assert usn > notebook.update_sequence_num
        assert updated.update_sequence_num == usn
        assert updated.name == "Office"
        assert updated.stack == "Jobs"
        assert updated.default_notebook is True
        assert updated.service_created == notebook.service_created

    @pytest.mark.asyncio
    async def test_rename_to_own_name_in_other_case(self, note_store):
        notebook = await note_store.create_notebook(Notebook(name="Work"))
        await note_store.update_notebook(Notebook(guid=notebook.guid, name="WORK"))
        assert (await note_store.get_notebook(notebook.guid)).name == "WORK"

    @pytest.mark.asyncio
    async def test_unknown_guid(self, note_store):
        with pytest.raises(StoreNotFoundError) as exc_info:
            await note_store.get_notebook("missing")

        assert exc_info.value.identifier == "Notebook.guid"
        assert exc_info.value.key == "missing"

    @pytest.mark.asyncio
    async def test_default_notebook_cannot_be_expunged(self, note_store):
        default = await note_store.get_default_notebook()

        with pytest.raises(StoreUserError) as exc_info:
            await note_store.expunge_notebook(default.guid)
        assert exc_info.value.error_code is StoreErrorCode.DATA_CONFLICT

    @pytest.mark.asyncio
    async def test_expunge_removes_notes(self, note_store):
        await note_store.get_default_notebook()
        archive = await note_store.create_notebook(Notebook(name="Archive"))
        note = await note_store.create_note(
            Note(title="old", content="<p/>", notebook_guid=archive.guid)
        )

        await note_store.expunge_notebook(archive.guid)

        assert [n.name for n in await note_store.list_notebooks()] == [DEFAULT_NOTEBOOK_NAME]
        with pytest.raises(StoreNotFoundError):
            await note_store.get_note(note.guid, False, False)

    @pytest.mark.asyncio
    async def test_business_notebooks_carry_business_record(
        self, note_store, business_note_store
    ):
        business = await business_note_store.create_notebook(Notebook(name="Team"))
        personal = await note_store.create_notebook(Notebook(name="Team"))

        assert business.business_notebook.privilege is SharedNotebookPrivilegeLevel.FULL_ACCESS
        assert personal.business_notebook is None
        assert [n.guid for n in await note_store.list_notebooks()] == [personal.guid]
        with pytest.raises(StoreNotFoundError):
            await note_store.get_notebook(business.guid)


class TestTags:

    @pytest.mark.asyncio
    async def test_create_and_get(self, note_store):
        parent = await note_store.create_tag(Tag(name="projects"))
        child = await note_store.create_tag(Tag(name="notegate", parent_guid=parent.guid))

        assert (await note_store.get_tag(child.guid)).parent_guid == parent.guid
        assert [t.name for t in await note_store.list_tags()] == ["notegate", "projects"]

    @pytest.mark.asyncio
    async def test_comma_in_name_rejected(self, note_store):
        with pytest.raises(StoreUserError) as exc_info:
            await note_store.create_tag(Tag(name="a,b"))
        assert exc_info.value.error_code is StoreErrorCode.BAD_DATA_FORMAT
        assert exc_info.value.parameter == "Tag.name"

    @pytest.mark.asyncio
    async def test_unknown_parent(self, note_store):
        with pytest.raises(StoreNotFoundError) as exc_info:
            await note_store.create_tag(Tag(name="orphan", parent_guid="nope"))
        assert exc_info.value.identifier == "Tag.parentGuid"

    @pytest.mark.asyncio
    async def test_parent_cycle_rejected(self, note_store):
        a = await note_store.create_tag(Tag(name="a"))
        b = await note_store.create_tag(Tag(name="b", parent_guid=a.guid))

        with pytest.raises(StoreUserError) as exc_info:
            await note_store.update_tag(Tag(guid=a.guid, name="a", parent_guid=b.guid))
        assert exc_info.value.error_code is StoreErrorCode.DATA_CONFLICT

    @pytest.mark.asyncio
    async def test_untag_all(self, note_store):
        tag = await note_store.create_tag(Tag(name="todo"))
        note = await note_store.create_note(
            Note(title="n", content="c", tag_guids=[tag.guid])
        )

        assert await note_store.untag_all(tag.guid) is None

        assert (await note_store.get_note(note.guid, False, False)).tag_guids is None
        assert (await note_store.get_tag(tag.guid)).name == "todo"

    @pytest.mark.asyncio
    async def test_expunge_detaches_children_and_notes(self, note_store):
        parent = await note_store.create_tag(Tag(name="parent"))
        child = await note_store.create_tag(Tag(name="child", parent_guid=parent.guid))
        note = await note_store.create_note(
            Note(title="n", content="c", tag_guids=[parent.guid, child.guid])
        )

        await note_store.expunge_tag(parent.guid)

        assert (await note_store.get_tag(child.guid)).parent_guid is None
        assert (await note_store.get_note(note.guid, False, False)).tag_guids == [child.guid]

    @pytest.mark.asyncio
    async def test_list_tags_by_notebook(self, note_store):
        home = await note_store.create_notebook(Notebook(name="Home"))
        work = await note_store.create_notebook(Notebook(name="Work"))
        used = await note_store.create_tag(Tag(name="used"))
        await note_store.create_tag(Tag(name="unused"))
        await note_store.create_note(
            Note(title="n", content="c", notebook_guid=home.guid, tag_guids=[used.guid])
        )

        assert [t.name for t in await note_store.list_tags_by_notebook(home.guid)] == ["used"]
        assert await note_store.list_tags_by_notebook(work.guid) == []


class TestSavedSearches:

    @pytest.mark.asyncio
    async def test_create_defaults_format(self, note_store):
        search = await note_store.create_search(SavedSearch(name="Todo", query="tag:todo"))

        assert search.format is QueryFormat.USER
        assert (await note_store.get_search(search.guid)).query == "tag:todo"

    @pytest.mark.asyncio
    async def test_query_required(self, note_store):
        with pytest.raises(StoreUserError) as exc_info:
            await note_store.create_search(SavedSearch(name="Todo"))
        assert exc_info.value.error_code is StoreErrorCode.DATA_REQUIRED
        assert exc_info.value.parameter == "SavedSearch.query"

    @pytest.mark.asyncio
    async def test_update_and_expunge(self, note_store):
        search = await note_store.create_search(SavedSearch(name="Todo", query="tag:todo"))

        await note_store.update_search(
            SavedSearch(guid=search.guid, name="Todo", query="tag:later")
        )
        assert (await note_store.get_search(search.guid)).query == "tag:later"

        await note_store.expunge_search(search.guid)
        assert await note_store.list_searches() == []


class TestNotes:

    @pytest.mark.asyncio
    async def test_create_computes_hash_and_uses_default_notebook(self, note_store):
        content = "<en-note>Hello</en-note>"
        note = await note_store.create_note(Note(title="Hello", content=content))

        default = await note_store.get_default_notebook()
        assert note.notebook_guid == default.guid
        assert note.content is None
        assert note.content_hash == hashlib.md5(content.encode()).digest()
        assert note.content_length == len(content)
        assert note.active is True
        assert await note_store.get_note_content(note.guid) == content

    @pytest.mark.asyncio
    async def test_title_and_content_required(self, note_store):
        with pytest.raises(StoreUserError) as exc_info:
            await note_store.create_note(Note(content="c"))
        assert exc_info.value.parameter == "Note.title"

        with pytest.raises(StoreUserError) as exc_info:
            await note_store.create_note(Note(title="t"))
        assert exc_info.value.parameter == "Note.content"

    @pytest.mark.asyncio
    async def test_unknown_notebook(self, note_store):
        with pytest.raises(StoreNotFoundError) as exc_info:
            await note_store.create_note(Note(title="t", content="c", notebook_guid="nope"))
        assert exc_info.value.identifier == "Note.notebookGuid"

    @pytest.mark.asyncio
    async def test_tag_names_create_missing_tags(self, note_store):
        existing = await note_store.create_tag(Tag(name="Work"))

        note = await note_store.create_note(
            Note(title="t", content="c", tag_names=["work", "urgent"])
        )

        assert note.tag_guids[0] == existing.guid
        assert await note_store.get_note_tag_names(note.guid) == ["Work", "urgent"]
        assert {t.name for t in await note_store.list_tags()} == {"Work", "urgent"}

    @pytest.mark.asyncio
    async def test_get_note_strips_unrequested_parts(self, note_store):
        note = await note_store.create_note(
            Note(
                title="scan",
                content="c",
                resources=[Resource(mime="image/png", data=Data(body=b"FOO"))],
            )
        )

        bare = await note_store.get_note(note.guid, False, False)
        full = await note_store.get_note(note.guid, True, True)

        assert bare.content is None
        assert bare.resources[0].data.body is None
        assert bare.resources[0].data.body_hash == hashlib.md5(b"FOO").digest()
        assert full.content == "c"
        assert full.resources[0].data.body == b"FOO"
        assert full.resources[0].data.size == 3
        assert full.resources[0].note_guid == note.guid

    @pytest.mark.asyncio
    async def test_update_keeps_content_when_omitted(self, note_store):
        note = await note_store.create_note(Note(title="t", content="body"))

        updated = await note_store.update_note(Note(guid=note.guid, title="renamed"))

        assert updated.title == "renamed"
        assert updated.update_sequence_num > note.update_sequence_num
        assert await note_store.get_note_content(note.guid) == "body"

    @pytest.mark.asyncio
    async def test_delete_then_restore(self, note_store):
        note = await note_store.create_note(Note(title="t", content="c"))

        usn = await note_store.delete_note(note.guid)
        trashed = await note_store.get_note(note.guid, False, False)
        assert trashed.active is False
        assert trashed.deleted is not None
        assert trashed.update_sequence_num == usn

        with pytest.raises(StoreUserError):
            await note_store.delete_note(note.guid)

        restored = await note_store.update_note(Note(guid=note.guid, title="t", active=True))
        assert restored.active is True
        assert restored.deleted is None

    @pytest.mark.asyncio
    async def test_copy_note(self, note_store):
        await note_store.get_default_notebook()
        other = await note_store.create_notebook(Notebook(name="Other"))
        note = await note_store.create_note(Note(title="t", content="c"))

        copy = await note_store.copy_note(note.guid, other.guid)

        assert copy.guid != note.guid
        assert copy.notebook_guid == other.guid
        assert await note_store.get_note_content(copy.guid) == "c"

    @pytest.mark.asyncio
    async def test_expunge_note(self, note_store):
        note = await note_store.create_note(Note(title="t", content="c"))
        await note_store.expunge_note(note.guid)

        with pytest.raises(StoreNotFoundError) as exc_info:
            await note_store.get_note(note.guid, False, False)
        assert exc_info.value.identifier == "Note.guid"


class TestFindNotes:

    async def _seed(self, note_store):
        home = await note_store.create_notebook(Notebook(name="Home"))
        work = await note_store.create_notebook(Notebook(name="Work"))
        tag = await note_store.create_tag(Tag(name="urgent"))
        notes = [
            await note_store.create_note(
                Note(title="Groceries", content="milk eggs", notebook_guid=home.guid,
                     created=1000, updated=4000)
            ),
            await note_store.create_note(
                Note(title="Budget", content="rent and milk", notebook_guid=home.guid,
                     tag_guids=[tag.guid], created=2000, updated=3000)
            ),
            await note_store.create_note(
                Note(title="Agenda", content="standup", notebook_guid=work.guid,
                     tag_guids=[tag.guid], created=3000, updated=2000)
            ),
        ]
        return home, work, tag, notes

    @pytest.mark.asyncio
    async def test_default_order_is_newest_first(self, note_store):
        await self._seed(note_store)

        result = await note_store.find_notes(None, None, None)

        assert result.start_index == 0
        assert result.total_notes == 3
        assert [n.title for n in result.notes] == ["Agenda", "Budget", "Groceries"]
        assert all(n.content is None for n in result.notes)
        assert result.update_count == (await note_store.get_sync_state()).update_count

    @pytest.mark.asyncio
    async def test_filters(self, note_store):
        home, _, tag, _ = await self._seed(note_store)

        by_notebook = await note_store.find_notes(NoteFilter(notebook_guid=home.guid), 0, 10)
        by_tag = await note_store.find_notes(NoteFilter(tag_guids=[tag.guid]), 0, 10)
        by_words = await note_store.find_notes(NoteFilter(words="MILK"), 0, 10)

        assert {n.title for n in by_notebook.notes} == {"Groceries", "Budget"}
        assert {n.title for n in by_tag.notes} == {"Budget", "Agenda"}
        assert {n.title for n in by_words.notes} == {"Groceries", "Budget"}
        assert by_words.searched_words == ["milk"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "order, ascending, expected",
        [
            (2, False, ["Groceries", "Budget", "Agenda"]),
            (5, True, ["Agenda", "Budget", "Groceries"]),
            (1, True, ["Groceries", "Budget", "Agenda"]),
        ],
    )
    async def test_ordering(self, note_store, order, ascending, expected):
        await self._seed(note_store)

        result = await note_store.find_notes(
            NoteFilter(order=order, ascending=ascending), 0, 10
        )
        assert [n.title for n in result.notes] == expected

    @pytest.mark.asyncio
    async def test_paging(self, note_store):
        await self._seed(note_store)

        page = await note_store.find_notes(NoteFilter(order=5, ascending=True), 1, 1)

        assert page.start_index == 1
        assert page.total_notes == 3
        assert [n.title for n in page.notes] == ["Budget"]

    @pytest.mark.asyncio
    async def test_page_size_capped(self, note_store):
        for i in range(3):
            await note_store.create_note(Note(title=f"n{i}", content="c"))
        note_store.max_notes_per_page = 2

        result = await note_store.find_notes(None, 0, 100)
        assert len(result.notes) == 2
        assert result.total_notes == 3

    @pytest.mark.asyncio
    async def test_bad_paging_arguments(self, note_store):
        with pytest.raises(StoreUserError) as exc_info:
            await note_store.find_notes(None, -1, 10)
        assert exc_info.value.parameter == "offset"

        with pytest.raises(StoreUserError) as exc_info:
            await note_store.find_notes(None, 0, 0)
        assert exc_info.value.parameter == "maxNotes"

    @pytest.mark.asyncio
    async def test_trash_is_separate(self, note_store):
        _, _, _, notes = await self._seed(note_store)
        await note_store.delete_note(notes[0].guid)

        active = await note_store.find_notes(None, 0, 10)
        trash = await note_store.find_notes(NoteFilter(inactive=True), 0, 10)

        assert active.total_notes == 2
        assert [n.title for n in trash.notes] == ["Groceries"]

    @pytest.mark.asyncio
    async def test_note_counts(self, note_store):
        home, work, tag, notes = await self._seed(note_store)
        await note_store.delete_note(notes[0].guid)

        counts = await note_store.find_note_counts(NoteFilter(), True)

        assert counts.notebook_counts == {home.guid: 1, work.guid: 1}
        assert counts.tag_counts == {tag.guid: 2}
        assert counts.trash_count == 1


class TestApplicationData:

    @pytest.mark.asyncio
    async def test_set_get_unset(self, note_store):
        note = await note_store.create_note(Note(title="t", content="c"))

        usn = await note_store.set_note_application_data_entry(note.guid, "reader", "pos=4")
        assert usn > note.update_sequence_num
        assert await note_store.get_note_application_data_entry(note.guid, "reader") == "pos=4"

        app_data = await note_store.get_note_application_data(note.guid)
        assert app_data.keys_only == ["reader"]
        assert app_data.full_map == {"reader": "pos=4"}

        await note_store.unset_note_application_data_entry(note.guid, "reader")
        with pytest.raises(StoreNotFoundError) as exc_info:
            await note_store.get_note_application_data_entry(note.guid, "reader")
        assert exc_info.value.identifier == "NoteAttributes.applicationData"

    @pytest.mark.asyncio
    async def test_empty_map(self, note_store):
        note = await note_store.create_note(Note(title="t", content="c"))

        app_data = await note_store.get_note_application_data(note.guid)
        assert app_data.keys_only == []
        assert app_data.full_map == {}


class TestLinkedNotebooks:

    @pytest.mark.asyncio
    async def test_lifecycle(self, note_store):
        linked = await note_store.create_linked_notebook(
            LinkedNotebook(share_name="Recipes", username="bob")
        )
        await note_store.update_linked_notebook(
            LinkedNotebook(guid=linked.guid, share_name="Family recipes", username="bob")
        )

        [stored] = await note_store.list_linked_notebooks()
        assert stored.share_name == "Family recipes"

        await note_store.expunge_linked_notebook(linked.guid)
        assert await note_store.list_linked_notebooks() == []

    @pytest.mark.asyncio
    async def test_share_name_required(self, note_store):
        with pytest.raises(StoreUserError) as exc_info:
            await note_store.create_linked_notebook(LinkedNotebook(username="bob"))
        assert exc_info.value.parameter == "LinkedNotebook.shareName"


class TestSyncState:

    @pytest.mark.asyncio
    async def test_every_mutation_bumps_update_count(self, note_store):
        assert (await note_store.get_sync_state()).update_count == 0

        notebook = await note_store.create_notebook(Notebook(name="Work"))
        tag = await note_store.create_tag(Tag(name="t"))
        usn = await note_store.expunge_tag(tag.guid)

        state = await note_store.get_sync_state()
        assert notebook.update_sequence_num == 1
        assert tag.update_sequence_num == 2
        assert usn == 3
        assert state.update_count == 3

    @pytest.mark.asyncio
    async def test_scopes_have_separate_counters(self, note_store, business_note_store):
        await note_store.create_tag(Tag(name="a"))
        await note_store.create_tag(Tag(name="b"))
        await business_note_store.create_tag(Tag(name="a"))

        assert (await note_store.get_sync_state()).update_count == 2
        assert (await business_note_store.get_sync_state()).update_count == 1

    @pytest.mark.asyncio
    async def test_uploaded_counts_content(self, note_store):
        await note_store.create_note(Note(title="t", content="12345"))
        assert (await note_store.get_sync_state()).uploaded == 5
