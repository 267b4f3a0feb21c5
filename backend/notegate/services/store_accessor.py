"""
NoteGate — Store Accessors
============================

What:  FastAPI dependencies that hand the routes an operations handle for
       each store variant, and the table of variants the app can mount.
How:   Note store handles are bound to the request's database session, so a
       handle never outlives its request. The user store needs no session.
Who:   routes/stores.py builds one router per `StoreVariant`.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from notegate.config import settings
from notegate.database import get_db_session
from notegate.services.note_store import BUSINESS_SCOPE, PERSONAL_SCOPE, LocalNoteStore
from notegate.services.operations import note_store_registry, user_store_registry
from notegate.services.registry import OperationRegistry
from notegate.services.user_store import LocalUserStore


async def get_note_store(db: AsyncSession = Depends(get_db_session)) -> LocalNoteStore:
    return LocalNoteStore(db, PERSONAL_SCOPE, settings.max_notes_per_page)


async def get_business_note_store(
    db: AsyncSession = Depends(get_db_session),
) -> LocalNoteStore:
    return LocalNoteStore(db, BUSINESS_SCOPE, settings.max_notes_per_page)


async def get_user_store() -> LocalUserStore:
    return LocalUserStore(settings)


@dataclass(frozen=True)
class StoreVariant:
    """One mountable store: URL name, its operation registry and handle dependency."""

    name: str
    registry: OperationRegistry
    accessor: Callable[..., Any]


STORE_VARIANTS: Dict[str, StoreVariant] = {
    variant.name: variant
    for variant in (
        StoreVariant("noteStore", note_store_registry, get_note_store),
        StoreVariant("userStore", user_store_registry, get_user_store),
        StoreVariant("businessNoteStore", note_store_registry, get_business_note_store),
    )
}
