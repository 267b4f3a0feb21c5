"""
NoteGate — Local User Store
=============================

What:  `UserStoreOperations` for the single account this deployment serves.
How:   The identity (id, username, name, email, timezone, premium flag)
       comes from settings; nothing is persisted.
Who:   Created by the store accessor for /userStore.
"""

import logging
from typing import Optional

from notegate.config import Settings
from notegate.exceptions import StoreErrorCode, StoreNotFoundError, StoreUserError
from notegate.schemas.types import (
    Accounting,
    PremiumInfo,
    PremiumOrderStatus,
    PrivilegeLevel,
    PublicUserInfo,
    User,
)
from notegate.services.note_store import now_ms
from notegate.services.operations import UserStoreOperations

logger = logging.getLogger(__name__)

# Protocol version spoken by this service
EDAM_VERSION_MAJOR = 1
EDAM_VERSION_MINOR = 28

SHARD_ID = "s1"


class LocalUserStore(UserStoreOperations):
    """User store answering from configuration."""

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def _privilege(self) -> PrivilegeLevel:
        return PrivilegeLevel.PREMIUM if self.settings.account_premium else PrivilegeLevel.NORMAL

    async def check_version(
        self,
        client_name: str,
        edam_version_major: Optional[int],
        edam_version_minor: Optional[int],
    ) -> bool:
        """
        True when the client speaks this service's major version and a minor
        version no newer than ours. Missing versions count as current.
        """
        major = EDAM_VERSION_MAJOR if edam_version_major is None else edam_version_major
        minor = EDAM_VERSION_MINOR if edam_version_minor is None else edam_version_minor
        supported = major == EDAM_VERSION_MAJOR and minor <= EDAM_VERSION_MINOR
        if not supported:
            logger.info(
                "Client %r uses unsupported protocol %d.%d", client_name, major, minor
            )
        return supported

    async def get_user(self) -> User:
        s = self.settings
        return User(
            id=s.account_id,
            username=s.account_username,
            email=s.account_email,
            name=s.account_name,
            timezone=s.account_timezone,
            privilege=self._privilege,
            active=True,
            shard_id=SHARD_ID,
            accounting=Accounting(
                premium_service_status=(
                    PremiumOrderStatus.ACTIVE if s.account_premium else PremiumOrderStatus.NONE
                ),
            ),
            premium_info=await self.get_premium_info(),
        )

    async def get_public_user_info(self, username: str) -> PublicUserInfo:
        if not username:
            raise StoreUserError(StoreErrorCode.DATA_REQUIRED, "username")
        if username.casefold() != self.settings.account_username.casefold():
            raise StoreNotFoundError("User.username", username)
        return PublicUserInfo(
            user_id=self.settings.account_id,
            shard_id=SHARD_ID,
            privilege=self._privilege,
            username=self.settings.account_username,
            note_store_url=await self.get_note_store_url(),
            web_api_url_prefix=self.settings.public_base_url.rstrip("/") + "/",
        )

    async def get_premium_info(self) -> PremiumInfo:
        premium = self.settings.account_premium
        return PremiumInfo(
            current_time=now_ms(),
            premium=premium,
            premium_recurring=False,
            premium_extendable=False,
            premium_pending=False,
            premium_cancellation_pending=False,
            can_purchase_upload_allowance=False,
            premium_upgradable=not premium,
        )

    async def get_note_store_url(self) -> str:
        return f"{self.settings.public_base_url.rstrip('/')}/noteStore"
