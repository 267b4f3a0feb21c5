"""
NoteGate — Local Note Store
=============================

What:  Self-hosted implementation of `NoteStoreOperations` backed by the
       `store_entities` / `sync_counters` tables.
How:   One instance per request, bound to that request's AsyncSession and to
       a scope ('personal' or 'business'). Records are stored as JSON
       payloads; the columns carry what lookups and uniqueness checks need.
       Every mutation takes the next update sequence number (USN) of the
       scope and stamps it on the changed record.
Who:   Created by the store accessor for /noteStore and /businessNoteStore.
When:  For every dispatched note store operation.

Rules enforced here (raised as StoreUserError / StoreNotFoundError):
    - Notebook, tag and saved search names: required, 1-100 characters, no
      leading/trailing whitespace, unique per scope ignoring case. Tag
      names may not contain commas.
    - Note titles: required, 1-255 characters, no leading/trailing
      whitespace. New notes need content.
    - The first notebook becomes the default; the default notebook cannot
      be expunged.
    - Unknown GUIDs → StoreNotFoundError("<Type>.<field>", guid).

Error Handling:
    SQLAlchemy failures are logged and re-raised as DatabaseError; store
    rule violations propagate as-is. The request's session is rolled back
    by get_db_session on any exception.
"""

import hashlib
import logging
import time
import uuid
from typing import Iterable, List, Optional, Tuple, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notegate.exceptions import (
    DatabaseError,
    StoreErrorCode,
    StoreNotFoundError,
    StoreUserError,
)
from notegate.models.entity import StoreEntity, SyncCounter
from notegate.schemas.types import (
    NOTE_SORT_ORDER_CODES,
    BusinessNotebook,
    LazyMap,
    LinkedNotebook,
    Note,
    NoteAttributes,
    NoteCollectionCounts,
    NoteFilter,
    NoteList,
    Notebook,
    NoteSortOrder,
    QueryFormat,
    SavedSearch,
    SharedNotebookPrivilegeLevel,
    StoreRecord,
    SyncState,
    Tag,
)
from notegate.services.operations import NoteStoreOperations

logger = logging.getLogger(__name__)

PERSONAL_SCOPE = "personal"
BUSINESS_SCOPE = "business"

# Entity kinds stored in store_entities.kind
NOTEBOOK = "notebook"
TAG = "tag"
NOTE = "note"
SEARCH = "search"
LINKED_NOTEBOOK = "linked_notebook"

DEFAULT_NOTEBOOK_NAME = "Default Notebook"

NAME_LEN_MAX = 100
TITLE_LEN_MAX = 255
QUERY_LEN_MAX = 1024

R = TypeVar("R", bound=StoreRecord)


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def _new_guid() -> str:
    return str(uuid.uuid4())


def _md5(data: bytes) -> bytes:
    return hashlib.md5(data).digest()


def _require(value, parameter: str):
    if value is None:
        raise StoreUserError(StoreErrorCode.DATA_REQUIRED, parameter)
    return value


def _check_text(value: Optional[str], parameter: str, max_len: int) -> str:
    """Required, 1..max_len characters, no surrounding whitespace."""
    _require(value, parameter)
    if not 1 <= len(value) <= max_len or value != value.strip():
        raise StoreUserError(StoreErrorCode.BAD_DATA_FORMAT, parameter)
    return value


class LocalNoteStore(NoteStoreOperations):
    """
    Note store operations over one scope of the local database.

    Args:
        db: The request's AsyncSession
        scope: PERSONAL_SCOPE or BUSINESS_SCOPE
        max_notes_per_page: Upper bound for findNotes page size
    """

    def __init__(
        self,
        db: AsyncSession,
        scope: str = PERSONAL_SCOPE,
        max_notes_per_page: int = 250,
    ):
        self.db = db
        self.scope = scope
        self.max_notes_per_page = max_notes_per_page

    # ══════════════════════════════════════════════════════════════════════
    # Persistence helpers
    # ══════════════════════════════════════════════════════════════════════

    async def _rows(self, kind: str, parent_guid: Optional[str] = None) -> List[StoreEntity]:
        stmt = select(StoreEntity).where(
            StoreEntity.scope == self.scope,
            StoreEntity.kind == kind,
        )
        if parent_guid is not None:
            stmt = stmt.where(StoreEntity.parent_guid == parent_guid)
        stmt = stmt.order_by(StoreEntity.name, StoreEntity.update_sequence_num)
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error("Database error listing %s (%s): %s", kind, self.scope, str(e))
            raise DatabaseError(context={"kind": kind, "scope": self.scope})
        return list(result.scalars().all())

    async def _row(self, kind: str, guid: Optional[str], identifier: str) -> StoreEntity:
        _require(guid, identifier)
        try:
            row = await self.db.get(StoreEntity, guid)
        except SQLAlchemyError as e:
            logger.error("Database error fetching %s %s: %s", kind, guid, str(e))
            raise DatabaseError(context={"kind": kind, "guid": guid})
        if row is None or row.scope != self.scope or row.kind != kind:
            raise StoreNotFoundError(identifier, guid)
        return row

    async def _flush(self) -> None:
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error writing to %s scope: %s", self.scope, str(e))
            raise DatabaseError(context={"scope": self.scope})

    async def _counter(self) -> SyncCounter:
        try:
            counter = await self.db.get(SyncCounter, self.scope)
        except SQLAlchemyError as e:
            logger.error("Database error reading sync counter: %s", str(e))
            raise DatabaseError(context={"scope": self.scope})
        if counter is None:
            counter = SyncCounter(scope=self.scope, update_count=0)
            self.db.add(counter)
            # Flushed so the next get() finds it in the identity map
            await self._flush()
        return counter

    async def _next_usn(self) -> int:
        counter = await self._counter()
        counter.update_count += 1
        return counter.update_count

    async def _save(
        self,
        kind: str,
        record: StoreRecord,
        name: Optional[str],
        parent_guid: Optional[str] = None,
        row: Optional[StoreEntity] = None,
    ) -> StoreEntity:
        if row is None:
            row = StoreEntity(guid=record.guid, scope=self.scope, kind=kind)
            self.db.add(row)
        row.name = name
        row.parent_guid = parent_guid
        row.update_sequence_num = record.update_sequence_num
        # New dict each time so the JSON column is marked dirty
        row.payload = record.to_wire()
        await self._flush()
        return row

    async def _delete(self, rows: Iterable[StoreEntity]) -> None:
        for row in rows:
            await self.db.delete(row)
        await self._flush()

    @staticmethod
    def _load(model: Type[R], row: StoreEntity) -> R:
        return model.model_validate(row.payload)

    async def _ensure_unique(
        self,
        kind: str,
        name: str,
        parameter: str,
        exclude_guid: Optional[str] = None,
    ) -> None:
        key = name.casefold()
        for row in await self._rows(kind):
            if row.name == key and row.guid != exclude_guid:
                raise StoreUserError(StoreErrorCode.DATA_CONFLICT, parameter)

    # ══════════════════════════════════════════════════════════════════════
    # Sync
    # ══════════════════════════════════════════════════════════════════════

    async def get_sync_state(self) -> SyncState:
        counter = await self._counter()
        uploaded = sum(
            self._load(Note, row).content_length or 0 for row in await self._rows(NOTE)
        )
        return SyncState(
            current_time=now_ms(),
            full_sync_before=0,
            update_count=counter.update_count,
            uploaded=uploaded,
        )

    # ══════════════════════════════════════════════════════════════════════
    # Notebooks
    # ══════════════════════════════════════════════════════════════════════

    async def list_notebooks(self) -> List[Notebook]:
        return [self._load(Notebook, row) for row in await self._rows(NOTEBOOK)]

    async def get_notebook(self, guid: str) -> Notebook:
        return self._load(Notebook, await self._row(NOTEBOOK, guid, "Notebook.guid"))

    async def get_default_notebook(self) -> Notebook:
        """
        The scope's default notebook.

        An empty scope gets a "Default Notebook" created on first request.
        """
        notebooks = await self.list_notebooks()
        for notebook in notebooks:
            if notebook.default_notebook:
                return notebook
        if notebooks:
            return notebooks[0]
        logger.info("Creating default notebook for %s scope", self.scope)
        return await self.create_notebook(Notebook(name=DEFAULT_NOTEBOOK_NAME))

    async def _clear_default(self, keep_guid: str) -> None:
        for row in await self._rows(NOTEBOOK):
            if row.guid == keep_guid:
                continue
            other = self._load(Notebook, row)
            if other.default_notebook:
                other.default_notebook = False
                other.update_sequence_num = await self._next_usn()
                await self._save(NOTEBOOK, other, row.name, row=row)

    async def create_notebook(self, notebook: Optional[Notebook]) -> Notebook:
        _require(notebook, "Notebook")
        name = _check_text(notebook.name, "Notebook.name", NAME_LEN_MAX)
        await self._ensure_unique(NOTEBOOK, name, "Notebook.name")

        is_first = not await self._rows(NOTEBOOK)
        timestamp = now_ms()
        created = notebook.model_copy(
            update={
                "guid": _new_guid(),
                "default_notebook": bool(notebook.default_notebook) or is_first,
                "service_created": timestamp,
                "service_updated": timestamp,
                "update_sequence_num": await self._next_usn(),
            }
        )
        if self.scope == BUSINESS_SCOPE and created.business_notebook is None:
            created.business_notebook = BusinessNotebook(
                privilege=SharedNotebookPrivilegeLevel.FULL_ACCESS,
                recommended=False,
            )

        await self._save(NOTEBOOK, created, name.casefold())
        if created.default_notebook and not is_first:
            await self._clear_default(created.guid)

        logger.info("Notebook created: %s (%s scope)", created.guid, self.scope)
        return created

    async def update_notebook(self, notebook: Optional[Notebook]) -> int:
        _require(notebook, "Notebook")
        row = await self._row(NOTEBOOK, notebook.guid, "Notebook.guid")
        current = self._load(Notebook, row)
        name = _check_text(notebook.name, "Notebook.name", NAME_LEN_MAX)
        await self._ensure_unique(NOTEBOOK, name, "Notebook.name", exclude_guid=row.guid)

        # Setting defaultNotebook=false on the default notebook has no effect
        becomes_default = bool(notebook.default_notebook) and not current.default_notebook
        updated = notebook.model_copy(
            update={
                "guid": current.guid,
                "default_notebook": bool(current.default_notebook or notebook.default_notebook),
                "service_created": current.service_created,
                "service_updated": now_ms(),
                "update_sequence_num": await self._next_usn(),
            }
        )
        if self.scope == BUSINESS_SCOPE and updated.business_notebook is None:
            updated.business_notebook = current.business_notebook

        await self._save(NOTEBOOK, updated, name.casefold(), row=row)
        if becomes_default:
            await self._clear_default(updated.guid)
        return updated.update_sequence_num

    async def expunge_notebook(self, guid: str) -> int:
        """Remove a notebook and every note in it. The default notebook is protected."""
        row = await self._row(NOTEBOOK, guid, "Notebook.guid")
        if self._load(Notebook, row).default_notebook:
            raise StoreUserError(StoreErrorCode.DATA_CONFLICT, "Notebook.guid")

        notes = await self._rows(NOTE, parent_guid=row.guid)
        await self._delete([*notes, row])
        logger.info(
            "Notebook expunged: %s with %d note(s) (%s scope)", guid, len(notes), self.scope
        )
        return await self._next_usn()

    # ══════════════════════════════════════════════════════════════════════
    # Tags
    # ══════════════════════════════════════════════════════════════════════

    def _check_tag_name(self, name: Optional[str]) -> str:
        name = _check_text(name, "Tag.name", NAME_LEN_MAX)
        if "," in name:
            raise StoreUserError(StoreErrorCode.BAD_DATA_FORMAT, "Tag.name")
        return name

    async def list_tags(self) -> List[Tag]:
        return [self._load(Tag, row) for row in await self._rows(TAG)]

    async def list_tags_by_notebook(self, notebook_guid: str) -> List[Tag]:
        """Tags applied to at least one active note in the notebook."""
        notebook_row = await self._row(NOTEBOOK, notebook_guid, "Notebook.guid")
        used = set()
        for row in await self._rows(NOTE, parent_guid=notebook_row.guid):
            note = self._load(Note, row)
            if note.active is not False:
                used.update(note.tag_guids or ())
        return [tag for tag in await self.list_tags() if tag.guid in used]

    async def get_tag(self, guid: str) -> Tag:
        return self._load(Tag, await self._row(TAG, guid, "Tag.guid"))

    async def create_tag(self, tag: Optional[Tag]) -> Tag:
        _require(tag, "Tag")
        name = self._check_tag_name(tag.name)
        await self._ensure_unique(TAG, name, "Tag.name")
        if tag.parent_guid is not None:
            await self._row(TAG, tag.parent_guid, "Tag.parentGuid")

        created = tag.model_copy(
            update={"guid": _new_guid(), "update_sequence_num": await self._next_usn()}
        )
        await self._save(TAG, created, name.casefold())
        logger.info("Tag created: %s (%s scope)", created.guid, self.scope)
        return created

    async def update_tag(self, tag: Optional[Tag]) -> int:
        _require(tag, "Tag")
        row = await self._row(TAG, tag.guid, "Tag.guid")
        name = self._check_tag_name(tag.name)
        await self._ensure_unique(TAG, name, "Tag.name", exclude_guid=row.guid)

        if tag.parent_guid is not None:
            # Walk up from the new parent; reaching this tag means a cycle
            ancestor = tag.parent_guid
            while ancestor is not None:
                if ancestor == row.guid:
                    raise StoreUserError(StoreErrorCode.DATA_CONFLICT, "Tag.parentGuid")
                ancestor = self._load(
                    Tag, await self._row(TAG, ancestor, "Tag.parentGuid")
                ).parent_guid

        updated = tag.model_copy(update={"update_sequence_num": await self._next_usn()})
        await self._save(TAG, updated, name.casefold(), row=row)
        return updated.update_sequence_num

    async def _remove_tag_from_notes(self, tag_guid: str) -> int:
        touched = 0
        for row in await self._rows(NOTE):
            note = self._load(Note, row)
            if tag_guid in (note.tag_guids or ()):
                note.tag_guids = [g for g in note.tag_guids if g != tag_guid] or None
                note.update_sequence_num = await self._next_usn()
                await self._save(NOTE, note, row.name, row.parent_guid, row=row)
                touched += 1
        return touched

    async def untag_all(self, guid: str) -> None:
        row = await self._row(TAG, guid, "Tag.guid")
        touched = await self._remove_tag_from_notes(row.guid)
        logger.info("Tag %s removed from %d note(s)", guid, touched)

    async def expunge_tag(self, guid: str) -> int:
        """Remove a tag from all notes, detach its children, then delete it."""
        row = await self._row(TAG, guid, "Tag.guid")
        await self._remove_tag_from_notes(row.guid)

        for child_row in await self._rows(TAG):
            child = self._load(Tag, child_row)
            if child.parent_guid == row.guid:
                child.parent_guid = None
                child.update_sequence_num = await self._next_usn()
                await self._save(TAG, child, child_row.name, row=child_row)

        await self._delete([row])
        return await self._next_usn()

    # ══════════════════════════════════════════════════════════════════════
    # Saved searches
    # ══════════════════════════════════════════════════════════════════════

    async def list_searches(self) -> List[SavedSearch]:
        return [self._load(SavedSearch, row) for row in await self._rows(SEARCH)]

    async def get_search(self, guid: str) -> SavedSearch:
        return self._load(SavedSearch, await self._row(SEARCH, guid, "SavedSearch.guid"))

    async def create_search(self, search: Optional[SavedSearch]) -> SavedSearch:
        _require(search, "SavedSearch")
        name = _check_text(search.name, "SavedSearch.name", NAME_LEN_MAX)
        _check_text(search.query, "SavedSearch.query", QUERY_LEN_MAX)
        await self._ensure_unique(SEARCH, name, "SavedSearch.name")

        created = search.model_copy(
            update={
                "guid": _new_guid(),
                "format": search.format or QueryFormat.USER,
                "update_sequence_num": await self._next_usn(),
            }
        )
        await self._save(SEARCH, created, name.casefold())
        return created

    async def update_search(self, search: Optional[SavedSearch]) -> int:
        _require(search, "SavedSearch")
        row = await self._row(SEARCH, search.guid, "SavedSearch.guid")
        name = _check_text(search.name, "SavedSearch.name", NAME_LEN_MAX)
        _check_text(search.query, "SavedSearch.query", QUERY_LEN_MAX)
        await self._ensure_unique(SEARCH, name, "SavedSearch.name", exclude_guid=row.guid)

        updated = search.model_copy(
            update={
                "format": search.format or QueryFormat.USER,
                "update_sequence_num": await self._next_usn(),
            }
        )
        await self._save(SEARCH, updated, name.casefold(), row=row)
        return updated.update_sequence_num

    async def expunge_search(self, guid: str) -> int:
        row = await self._row(SEARCH, guid, "SavedSearch.guid")
        await self._delete([row])
        return await self._next_usn()

    # ══════════════════════════════════════════════════════════════════════
    # Notes
    # ══════════════════════════════════════════════════════════════════════

    @staticmethod
    def _strip(note: Note, with_content: bool, with_resources_data: bool) -> Note:
        """Copy of `note` without the parts the caller did not ask for."""
        stripped = note.model_copy(deep=True)
        if not with_content:
            stripped.content = None
        if not with_resources_data:
            for resource in stripped.resources or ():
                if resource.data is not None:
                    resource.data.body = None
        return stripped

    @staticmethod
    def _matches(note: Note, note_filter: NoteFilter, words: List[str]) -> bool:
        if (note.active is not False) == bool(note_filter.inactive):
            return False
        if note_filter.notebook_guid and note.notebook_guid != note_filter.notebook_guid:
            return False
        if note_filter.tag_guids and not set(note_filter.tag_guids) <= set(note.tag_guids or ()):
            return False
        if words:
            text = f"{note.title or ''} {note.content or ''}".casefold()
            if not all(word in text for word in words):
                return False
        return True

    @staticmethod
    def _sort_key(order: NoteSortOrder, words: List[str]):
        def key(note: Note):
            if order is NoteSortOrder.UPDATED:
                primary = note.updated or 0
            elif order is NoteSortOrder.RELEVANCE:
                text = f"{note.title or ''} {note.content or ''}".casefold()
                primary = sum(text.count(word) for word in words)
            elif order is NoteSortOrder.UPDATE_SEQUENCE_NUMBER:
                primary = note.update_sequence_num or 0
            elif order is NoteSortOrder.TITLE:
                primary = (note.title or "").casefold()
            else:
                primary = note.created or 0
            return (primary, note.update_sequence_num or 0)

        return key

    async def _notes(self) -> List[Note]:
        return [self._load(Note, row) for row in await self._rows(NOTE)]

    async def find_notes(
        self,
        filter: Optional[NoteFilter],
        offset: Optional[int],
        max_notes: Optional[int],
    ) -> NoteList:
        """
        Page through the notes matching `filter`.

        Defaults: offset 0, maxNotes = max_notes_per_page (also the cap),
        order CREATED, descending. Returned notes carry no content and no
        resource bodies.
        """
        note_filter = filter or NoteFilter()
        offset = 0 if offset is None else offset
        if offset < 0:
            raise StoreUserError(StoreErrorCode.BAD_DATA_FORMAT, "offset")
        if max_notes is None:
            max_notes = self.max_notes_per_page
        if max_notes <= 0:
            raise StoreUserError(StoreErrorCode.BAD_DATA_FORMAT, "maxNotes")
        max_notes = min(max_notes, self.max_notes_per_page)

        words = (note_filter.words or "").casefold().split()
        matches = [n for n in await self._notes() if self._matches(n, note_filter, words)]
        order = NOTE_SORT_ORDER_CODES.get(note_filter.order, NoteSortOrder.CREATED)
        matches.sort(key=self._sort_key(order, words), reverse=not note_filter.ascending)

        page = matches[offset:offset + max_notes]
        counter = await self._counter()
        return NoteList(
            start_index=offset,
            total_notes=len(matches),
            notes=[self._strip(n, with_content=False, with_resources_data=False) for n in page],
            searched_words=words or None,
            update_count=counter.update_count,
        )

    async def find_note_counts(
        self,
        filter: Optional[NoteFilter],
        with_trash: Optional[bool],
    ) -> NoteCollectionCounts:
        """Per-notebook and per-tag counts of active notes matching `filter`."""
        note_filter = filter or NoteFilter()
        words = (note_filter.words or "").casefold().split()
        notes = await self._notes()

        active_filter = note_filter.model_copy(update={"inactive": False})
        notebook_counts: dict = {}
        tag_counts: dict = {}
        for note in notes:
            if not self._matches(note, active_filter, words):
                continue
            notebook_counts[note.notebook_guid] = notebook_counts.get(note.notebook_guid, 0) + 1
            for tag_guid in note.tag_guids or ():
                tag_counts[tag_guid] = tag_counts.get(tag_guid, 0) + 1

        trash_count = None
        if with_trash:
            trash_filter = note_filter.model_copy(update={"inactive": True})
            trash_count = sum(1 for n in notes if self._matches(n, trash_filter, words))

        return NoteCollectionCounts(
            notebook_counts=notebook_counts or None,
            tag_counts=tag_counts or None,
            trash_count=trash_count,
        )

    async def get_note(
        self,
        guid: str,
        with_content: Optional[bool],
        with_resources_data: Optional[bool],
    ) -> Note:
        note = self._load(Note, await self._row(NOTE, guid, "Note.guid"))
        return self._strip(note, bool(with_content), bool(with_resources_data))

    async def get_note_content(self, guid: str) -> str:
        note = self._load(Note, await self._row(NOTE, guid, "Note.guid"))
        return note.content or ""

    async def get_note_tag_names(self, guid: str) -> List[str]:
        note = self._load(Note, await self._row(NOTE, guid, "Note.guid"))
        names = []
        for tag_guid in note.tag_guids or ():
            tag = self._load(Tag, await self._row(TAG, tag_guid, "Tag.guid"))
            names.append(tag.name)
        return names

    async def _resolve_tags(self, note: Note) -> Optional[List[str]]:
        """Validate tagGuids and turn tagNames into GUIDs, creating missing tags."""
        guids: List[str] = []
        for tag_guid in note.tag_guids or ():
            await self._row(TAG, tag_guid, "Note.tagGuids")
            if tag_guid not in guids:
                guids.append(tag_guid)

        if note.tag_names:
            by_name = {t.name.casefold(): t for t in await self.list_tags()}
            for tag_name in note.tag_names:
                tag = by_name.get(tag_name.strip().casefold())
                if tag is None:
                    tag = await self.create_tag(Tag(name=tag_name.strip()))
                    by_name[tag.name.casefold()] = tag
                if tag.guid not in guids:
                    guids.append(tag.guid)
        return guids or None

    async def _resolve_notebook(self, notebook_guid: Optional[str]) -> str:
        if notebook_guid is None:
            return (await self.get_default_notebook()).guid
        return (await self._row(NOTEBOOK, notebook_guid, "Note.notebookGuid")).guid

    @staticmethod
    def _prepare_resources(note: Note) -> None:
        for resource in note.resources or ():
            if resource.guid is None:
                resource.guid = _new_guid()
            resource.note_guid = note.guid
            if resource.data is not None and resource.data.body is not None:
                resource.data.body_hash = _md5(resource.data.body)
                resource.data.size = len(resource.data.body)

    @staticmethod
    def _set_content(note: Note, content: str) -> None:
        encoded = content.encode("utf-8")
        note.content = content
        note.content_hash = _md5(encoded)
        note.content_length = len(encoded)

    async def create_note(self, note: Optional[Note]) -> Note:
        _require(note, "Note")
        title = _check_text(note.title, "Note.title", TITLE_LEN_MAX)
        content = _require(note.content, "Note.content")

        timestamp = now_ms()
        created = note.model_copy(deep=True)
        created.guid = _new_guid()
        created.tag_guids = await self._resolve_tags(note)
        created.notebook_guid = await self._resolve_notebook(note.notebook_guid)
        created.tag_names = None
        created.created = note.created or timestamp
        created.updated = note.updated or timestamp
        created.active = True
        created.deleted = None
        self._set_content(created, content)
        self._prepare_resources(created)
        created.update_sequence_num = await self._next_usn()

        await self._save(NOTE, created, title, created.notebook_guid)
        logger.info(
            "Note created: %s in notebook %s (%s scope)",
            created.guid, created.notebook_guid, self.scope,
        )
        return self._strip(created, with_content=False, with_resources_data=False)

    async def update_note(self, note: Optional[Note]) -> Note:
        """
        Replace a note's fields. Omitted content keeps the stored content;
        `active=true` restores a note from the trash.
        """
        _require(note, "Note")
        row = await self._row(NOTE, note.guid, "Note.guid")
        current = self._load(Note, row)
        title = _check_text(note.title, "Note.title", TITLE_LEN_MAX)

        updated = note.model_copy(deep=True)
        updated.guid = current.guid
        updated.notebook_guid = (
            await self._resolve_notebook(note.notebook_guid)
            if note.notebook_guid is not None
            else current.notebook_guid
        )
        updated.tag_guids = await self._resolve_tags(note)
        updated.tag_names = None
        updated.created = note.created or current.created
        updated.updated = note.updated or now_ms()
        updated.active = current.active if note.active is None else note.active
        updated.deleted = None if updated.active else (current.deleted or now_ms())
        self._set_content(updated, note.content if note.content is not None else current.content or "")
        if note.resources is None:
            updated.resources = current.resources
        if note.attributes is None:
            updated.attributes = current.attributes
        self._prepare_resources(updated)
        updated.update_sequence_num = await self._next_usn()

        await self._save(NOTE, updated, title, updated.notebook_guid, row=row)
        return self._strip(updated, with_content=False, with_resources_data=False)

    async def delete_note(self, guid: str) -> int:
        """Move a note to the trash."""
        row = await self._row(NOTE, guid, "Note.guid")
        note = self._load(Note, row)
        if note.active is False:
            raise StoreUserError(StoreErrorCode.DATA_CONFLICT, "Note.active")
        note.active = False
        note.deleted = now_ms()
        note.update_sequence_num = await self._next_usn()
        await self._save(NOTE, note, row.name, row.parent_guid, row=row)
        return note.update_sequence_num

    async def expunge_note(self, guid: str) -> int:
        row = await self._row(NOTE, guid, "Note.guid")
        await self._delete([row])
        return await self._next_usn()

    async def copy_note(self, note_guid: str, to_notebook_guid: str) -> Note:
        source = self._load(Note, await self._row(NOTE, note_guid, "Note.guid"))
        notebook_row = await self._row(NOTEBOOK, to_notebook_guid, "Notebook.guid")

        copied = source.model_copy(deep=True)
        copied.guid = _new_guid()
        copied.notebook_guid = notebook_row.guid
        for resource in copied.resources or ():
            resource.guid = None
        self._prepare_resources(copied)
        copied.update_sequence_num = await self._next_usn()

        await self._save(NOTE, copied, copied.title, copied.notebook_guid)
        return self._strip(copied, with_content=False, with_resources_data=False)

    # ══════════════════════════════════════════════════════════════════════
    # Note application data
    # ══════════════════════════════════════════════════════════════════════

    async def _note_with_app_data(self, guid: str) -> Tuple[StoreEntity, Note, dict]:
        row = await self._row(NOTE, guid, "Note.guid")
        note = self._load(Note, row)
        app_data = note.attributes.application_data if note.attributes else None
        entries = dict(app_data.full_map or {}) if app_data else {}
        return row, note, entries

    async def _write_app_data(self, row: StoreEntity, note: Note, entries: dict) -> int:
        if note.attributes is None:
            note.attributes = NoteAttributes()
        note.attributes.application_data = (
            LazyMap(keys_only=sorted(entries), full_map=entries) if entries else None
        )
        note.update_sequence_num = await self._next_usn()
        await self._save(NOTE, note, row.name, row.parent_guid, row=row)
        return note.update_sequence_num

    async def get_note_application_data(self, guid: str) -> LazyMap:
        _, _, entries = await self._note_with_app_data(guid)
        return LazyMap(keys_only=sorted(entries), full_map=entries)

    async def get_note_application_data_entry(self, guid: str, key: str) -> str:
        _require(key, "key")
        _, _, entries = await self._note_with_app_data(guid)
        if key not in entries:
            raise StoreNotFoundError("NoteAttributes.applicationData", key)
        return entries[key]

    async def set_note_application_data_entry(self, guid: str, key: str, value: str) -> int:
        if not _require(key, "key"):
            raise StoreUserError(StoreErrorCode.BAD_DATA_FORMAT, "key")
        _require(value, "value")
        row, note, entries = await self._note_with_app_data(guid)
        entries[key] = value
        return await self._write_app_data(row, note, entries)

    async def unset_note_application_data_entry(self, guid: str, key: str) -> int:
        _require(key, "key")
        row, note, entries = await self._note_with_app_data(guid)
        entries.pop(key, None)
        return await self._write_app_data(row, note, entries)

    # ══════════════════════════════════════════════════════════════════════
    # Linked notebooks
    # ══════════════════════════════════════════════════════════════════════

    async def list_linked_notebooks(self) -> List[LinkedNotebook]:
        return [self._load(LinkedNotebook, row) for row in await self._rows(LINKED_NOTEBOOK)]

    async def create_linked_notebook(
        self, linked_notebook: Optional[LinkedNotebook]
    ) -> LinkedNotebook:
        _require(linked_notebook, "LinkedNotebook")
        share_name = _check_text(
            linked_notebook.share_name, "LinkedNotebook.shareName", NAME_LEN_MAX
        )
        created = linked_notebook.model_copy(
            update={"guid": _new_guid(), "update_sequence_num": await self._next_usn()}
        )
        await self._save(LINKED_NOTEBOOK, created, share_name.casefold())
        return created

    async def update_linked_notebook(self, linked_notebook: Optional[LinkedNotebook]) -> int:
        _require(linked_notebook, "LinkedNotebook")
        row = await self._row(LINKED_NOTEBOOK, linked_notebook.guid, "LinkedNotebook.guid")
        share_name = _check_text(
            linked_notebook.share_name, "LinkedNotebook.shareName", NAME_LEN_MAX
        )
        updated = linked_notebook.model_copy(
            update={"update_sequence_num": await self._next_usn()}
        )
        await self._save(LINKED_NOTEBOOK, updated, share_name.casefold(), row=row)
        return updated.update_sequence_num

    async def expunge_linked_notebook(self, guid: str) -> int:
        row = await self._row(LINKED_NOTEBOOK, guid, "LinkedNotebook.guid")
        await self._delete([row])
        return await self._next_usn()
