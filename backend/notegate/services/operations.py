"""
NoteGate — Store Operations Interfaces
========================================

What:  The fixed operation catalogues that the gateway can dispatch to:
       `NoteStoreOperations` (also used by the business note store) and
       `UserStoreOperations`.
How:   Abstract base classes. Every method is registered in its interface's
       `OperationRegistry` under the service's camelCase wire name. Concrete
       stores subclass these and implement each method with the same
       parameters, in the same order.
Who:   Implemented by LocalNoteStore / LocalUserStore; read by the gateway
       through `note_store_registry` / `user_store_registry`.

Return conventions:
    - "update" and "expunge" operations return the new update sequence number.
    - Lookups raise StoreNotFoundError for unknown GUIDs.
    - Rule violations raise StoreUserError.
"""

import abc
from typing import List, Optional

from notegate.schemas.types import (
    LazyMap,
    LinkedNotebook,
    Note,
    NoteCollectionCounts,
    NoteFilter,
    NoteList,
    Notebook,
    PremiumInfo,
    PublicUserInfo,
    SavedSearch,
    SyncState,
    Tag,
    User,
)
from notegate.services.registry import OperationRegistry

note_store_registry = OperationRegistry("NoteStore")
user_store_registry = OperationRegistry("UserStore")

_op = note_store_registry.operation


class NoteStoreOperations(abc.ABC):
    """Operations on one account's notes, notebooks, tags and searches."""

    # ── Sync ──────────────────────────────────────────────────────────────

    @_op("getSyncState")
    @abc.abstractmethod
    async def get_sync_state(self) -> SyncState:
        ...

    # ── Notebooks ─────────────────────────────────────────────────────────

    @_op("listNotebooks")
    @abc.abstractmethod
    async def list_notebooks(self) -> List[Notebook]:
        ...

    @_op("getNotebook")
    @abc.abstractmethod
    async def get_notebook(self, guid: str) -> Notebook:
        ...

    @_op("getDefaultNotebook")
    @abc.abstractmethod
    async def get_default_notebook(self) -> Notebook:
        ...

    @_op("createNotebook")
    @abc.abstractmethod
    async def create_notebook(self, notebook: Optional[Notebook]) -> Notebook:
        ...

    @_op("updateNotebook")
    @abc.abstractmethod
    async def update_notebook(self, notebook: Optional[Notebook]) -> int:
        ...

    @_op("expungeNotebook")
    @abc.abstractmethod
    async def expunge_notebook(self, guid: str) -> int:
        ...

    # ── Tags ──────────────────────────────────────────────────────────────

    @_op("listTags")
    @abc.abstractmethod
    async def list_tags(self) -> List[Tag]:
        ...

    @_op("listTagsByNotebook")
    @abc.abstractmethod
    async def list_tags_by_notebook(self, notebook_guid: str) -> List[Tag]:
        ...

    @_op("getTag")
    @abc.abstractmethod
    async def get_tag(self, guid: str) -> Tag:
        ...

    @_op("createTag")
    @abc.abstractmethod
    async def create_tag(self, tag: Optional[Tag]) -> Tag:
        ...

    @_op("updateTag")
    @abc.abstractmethod
    async def update_tag(self, tag: Optional[Tag]) -> int:
        ...

    @_op("untagAll")
    @abc.abstractmethod
    async def untag_all(self, guid: str) -> None:
        ...

    @_op("expungeTag")
    @abc.abstractmethod
    async def expunge_tag(self, guid: str) -> int:
        ...

    # ── Saved searches ────────────────────────────────────────────────────

    @_op("listSearches")
    @abc.abstractmethod
    async def list_searches(self) -> List[SavedSearch]:
        ...

    @_op("getSearch")
    @abc.abstractmethod
    async def get_search(self, guid: str) -> SavedSearch:
        ...

    @_op("createSearch")
    @abc.abstractmethod
    async def create_search(self, search: Optional[SavedSearch]) -> SavedSearch:
        ...

    @_op("updateSearch")
    @abc.abstractmethod
    async def update_search(self, search: Optional[SavedSearch]) -> int:
        ...

    @_op("expungeSearch")
    @abc.abstractmethod
    async def expunge_search(self, guid: str) -> int:
        ...

    # ── Notes ─────────────────────────────────────────────────────────────

    @_op("findNotes")
    @abc.abstractmethod
    async def find_notes(
        self,
        filter: Optional[NoteFilter],
        offset: Optional[int],
        max_notes: Optional[int],
    ) -> NoteList:
        ...

    @_op("findNoteCounts")
    @abc.abstractmethod
    async def find_note_counts(
        self,
        filter: Optional[NoteFilter],
        with_trash: Optional[bool],
    ) -> NoteCollectionCounts:
        ...

    @_op("getNote")
    @abc.abstractmethod
    async def get_note(
        self,
        guid: str,
        with_content: Optional[bool],
        with_resources_data: Optional[bool],
    ) -> Note:
        ...

    @_op("getNoteContent")
    @abc.abstractmethod
    async def get_note_content(self, guid: str) -> str:
        ...

    @_op("getNoteTagNames")
    @abc.abstractmethod
    async def get_note_tag_names(self, guid: str) -> List[str]:
        ...

    @_op("createNote")
    @abc.abstractmethod
    async def create_note(self, note: Optional[Note]) -> Note:
        ...

    @_op("updateNote")
    @abc.abstractmethod
    async def update_note(self, note: Optional[Note]) -> Note:
        ...

    @_op("deleteNote")
    @abc.abstractmethod
    async def delete_note(self, guid: str) -> int:
        ...

    @_op("expungeNote")
    @abc.abstractmethod
    async def expunge_note(self, guid: str) -> int:
        ...

    @_op("copyNote")
    @abc.abstractmethod
    async def copy_note(self, note_guid: str, to_notebook_guid: str) -> Note:
        ...

    # ── Note application data ─────────────────────────────────────────────

    @_op("getNoteApplicationData")
    @abc.abstractmethod
    async def get_note_application_data(self, guid: str) -> LazyMap:
        ...

    @_op("getNoteApplicationDataEntry")
    @abc.abstractmethod
    async def get_note_application_data_entry(self, guid: str, key: str) -> str:
        ...

    @_op("setNoteApplicationDataEntry")
    @abc.abstractmethod
    async def set_note_application_data_entry(self, guid: str, key: str, value: str) -> int:
        ...

    @_op("unsetNoteApplicationDataEntry")
    @abc.abstractmethod
    async def unset_note_application_data_entry(self, guid: str, key: str) -> int:
        ...

    # ── Linked notebooks ──────────────────────────────────────────────────

    @_op("listLinkedNotebooks")
    @abc.abstractmethod
    async def list_linked_notebooks(self) -> List[LinkedNotebook]:
        ...

    @_op("createLinkedNotebook")
    @abc.abstractmethod
    async def create_linked_notebook(
        self, linked_notebook: Optional[LinkedNotebook]
    ) -> LinkedNotebook:
        ...

    @_op("updateLinkedNotebook")
    @abc.abstractmethod
    async def update_linked_notebook(self, linked_notebook: Optional[LinkedNotebook]) -> int:
        ...

    @_op("expungeLinkedNotebook")
    @abc.abstractmethod
    async def expunge_linked_notebook(self, guid: str) -> int:
        ...


class UserStoreOperations(abc.ABC):
    """Operations on the account itself."""

    @user_store_registry.operation("checkVersion")
    @abc.abstractmethod
    async def check_version(
        self,
        client_name: str,
        edam_version_major: Optional[int],
        edam_version_minor: Optional[int],
    ) -> bool:
        ...

    @user_store_registry.operation("getUser")
    @abc.abstractmethod
    async def get_user(self) -> User:
        ...

    @user_store_registry.operation("getPublicUserInfo")
    @abc.abstractmethod
    async def get_public_user_info(self, username: str) -> PublicUserInfo:
        ...

    @user_store_registry.operation("getPremiumInfo")
    @abc.abstractmethod
    async def get_premium_info(self) -> PremiumInfo:
        ...

    @user_store_registry.operation("getNoteStoreUrl")
    @abc.abstractmethod
    async def get_note_store_url(self) -> str:
        ...
