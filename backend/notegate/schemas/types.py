"""
NoteGate — Note Service Domain Types
======================================

What:  Pydantic models for every record the store operations accept or return.
How:   Python attributes are snake_case; JSON field names are the service's
       camelCase names (generated by `to_camel`, with explicit aliases where
       the service's spelling differs, e.g. `sourceURL`). Binary fields travel
       as base64 strings. Enumerations travel by name.
Who:   The dispatch gateway decodes request fields into these types; the
       local stores persist and return them.

Conventions:
    - Every field is optional. A record is a bag of "set" fields; absent
      fields are `None` and are omitted from JSON output.
    - Timestamps are integers: milliseconds since the Unix epoch (UTC).
    - Unknown JSON fields are ignored.
"""

import base64
import binascii
import enum
from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel


# ══════════════════════════════════════════════════════════════════════════
# Base record and shared field types
# ══════════════════════════════════════════════════════════════════════════


def _decode_base64(value):
    """Accept raw bytes from Python callers, base64 text from JSON callers."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        try:
            return base64.b64decode(value, validate=True)
        except binascii.Error as exc:
            raise ValueError("invalid base64 data") from exc
    raise ValueError("expected a base64-encoded string")


Binary = Annotated[
    bytes,
    BeforeValidator(_decode_base64),
    PlainSerializer(
        lambda raw: base64.b64encode(raw).decode("ascii"),
        return_type=str,
        when_used="json",
    ),
]

# Milliseconds since the Unix epoch
Timestamp = int


class StoreRecord(BaseModel):
    """Common configuration for all domain records."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        """JSON-compatible dict using wire names, unset fields dropped."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ══════════════════════════════════════════════════════════════════════════
# Enumerations
# ══════════════════════════════════════════════════════════════════════════


class QueryFormat(str, enum.Enum):
    USER = "USER"
    SEXP = "SEXP"


class NoteSortOrder(str, enum.Enum):
    """
    Sort orders for notes. `NoteFilter.order` carries the ordinal code
    (see `NOTE_SORT_ORDER_CODES`), `Publishing.order` carries the name.
    """

    CREATED = "CREATED"
    UPDATED = "UPDATED"
    RELEVANCE = "RELEVANCE"
    UPDATE_SEQUENCE_NUMBER = "UPDATE_SEQUENCE_NUMBER"
    TITLE = "TITLE"


NOTE_SORT_ORDER_CODES: Dict[int, NoteSortOrder] = {
    1: NoteSortOrder.CREATED,
    2: NoteSortOrder.UPDATED,
    3: NoteSortOrder.RELEVANCE,
    4: NoteSortOrder.UPDATE_SEQUENCE_NUMBER,
    5: NoteSortOrder.TITLE,
}


class PrivilegeLevel(str, enum.Enum):
    NORMAL = "NORMAL"
    PREMIUM = "PREMIUM"
    VIP = "VIP"
    MANAGER = "MANAGER"
    SUPPORT = "SUPPORT"
    ADMIN = "ADMIN"


class SharedNotebookPrivilegeLevel(str, enum.Enum):
    READ_NOTEBOOK = "READ_NOTEBOOK"
    MODIFY_NOTEBOOK_PLUS_ACTIVITY = "MODIFY_NOTEBOOK_PLUS_ACTIVITY"
    READ_NOTEBOOK_PLUS_ACTIVITY = "READ_NOTEBOOK_PLUS_ACTIVITY"
    GROUP = "GROUP"
    FULL_ACCESS = "FULL_ACCESS"
    BUSINESS_FULL_ACCESS = "BUSINESS_FULL_ACCESS"


class SharedNotebookInstanceRestrictions(str, enum.Enum):
    ONLY_JOINED_OR_PREVIEW = "ONLY_JOINED_OR_PREVIEW"
    NO_SHARED_NOTEBOOKS = "NO_SHARED_NOTEBOOKS"


class BusinessUserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    NORMAL = "NORMAL"


class SponsoredGroupRole(str, enum.Enum):
    GROUP_MEMBER = "GROUP_MEMBER"
    GROUP_ADMIN = "GROUP_ADMIN"
    GROUP_OWNER = "GROUP_OWNER"


class PremiumOrderStatus(str, enum.Enum):
    NONE = "NONE"
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"
    CANCELLATION_PENDING = "CANCELLATION_PENDING"
    CANCELED = "CANCELED"


class ReminderEmailConfig(str, enum.Enum):
    DO_NOT_SEND = "DO_NOT_SEND"
    SEND_DAILY_EMAIL = "SEND_DAILY_EMAIL"


# ══════════════════════════════════════════════════════════════════════════
# Content records
# ══════════════════════════════════════════════════════════════════════════


class Data(StoreRecord):
    """A binary blob with its MD5 hash and size."""

    body_hash: Optional[Binary] = None
    size: Optional[int] = None
    body: Optional[Binary] = None


class LazyMap(StoreRecord):
    """Application data: either just the keys, or the full key/value map."""

    keys_only: Optional[List[str]] = None
    full_map: Optional[Dict[str, str]] = None


class ResourceAttributes(StoreRecord):
    source_url: Optional[str] = Field(default=None, alias="sourceURL")
    timestamp: Optional[Timestamp] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    altitude: Optional[float] = None
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None
    client_will_index: Optional[bool] = None
    reco_type: Optional[str] = None
    file_name: Optional[str] = None
    attachment: Optional[bool] = None
    application_data: Optional[LazyMap] = None


class Resource(StoreRecord):
    """A file attached to a note."""

    guid: Optional[str] = None
    note_guid: Optional[str] = None
    data: Optional[Data] = None
    mime: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    duration: Optional[int] = None
    active: Optional[bool] = None
    recognition: Optional[Data] = None
    attributes: Optional[ResourceAttributes] = None
    update_sequence_num: Optional[int] = None
    alternate_data: Optional[Data] = None


class NoteAttributes(StoreRecord):
    subject_date: Optional[Timestamp] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    altitude: Optional[float] = None
    author: Optional[str] = None
    source: Optional[str] = None
    source_url: Optional[str] = Field(default=None, alias="sourceURL")
    source_application: Optional[str] = None
    share_date: Optional[Timestamp] = None
    reminder_order: Optional[int] = None
    reminder_done_time: Optional[Timestamp] = None
    reminder_time: Optional[Timestamp] = None
    place_name: Optional[str] = None
    content_class: Optional[str] = None
    application_data: Optional[LazyMap] = None
    last_edited_by: Optional[str] = None
    classifications: Optional[Dict[str, str]] = None
    creator_id: Optional[int] = None
    last_editor_id: Optional[int] = None


class Note(StoreRecord):
    """
    A single note.

    `content_hash` and `content_length` are computed by the store from
    `content`; values sent by clients are overwritten.
    """

    guid: Optional[str] = None
    title: Optional[str] = None
    content: Optional[str] = None
    content_hash: Optional[Binary] = None
    content_length: Optional[int] = None
    created: Optional[Timestamp] = None
    updated: Optional[Timestamp] = None
    deleted: Optional[Timestamp] = None
    active: Optional[bool] = None
    update_sequence_num: Optional[int] = None
    notebook_guid: Optional[str] = None
    tag_guids: Optional[List[str]] = None
    resources: Optional[List[Resource]] = None
    attributes: Optional[NoteAttributes] = None
    tag_names: Optional[List[str]] = None


class Tag(StoreRecord):
    guid: Optional[str] = None
    name: Optional[str] = None
    parent_guid: Optional[str] = None
    update_sequence_num: Optional[int] = None


class SavedSearchScope(StoreRecord):
    include_account: Optional[bool] = None
    include_personal_linked_notebooks: Optional[bool] = None
    include_business_linked_notebooks: Optional[bool] = None


class SavedSearch(StoreRecord):
    guid: Optional[str] = None
    name: Optional[str] = None
    query: Optional[str] = None
    format: Optional[QueryFormat] = None
    update_sequence_num: Optional[int] = None
    scope: Optional[SavedSearchScope] = None


class LinkedNotebook(StoreRecord):
    """A reference to a notebook shared from another account."""

    share_name: Optional[str] = None
    username: Optional[str] = None
    shard_id: Optional[str] = None
    share_key: Optional[str] = None
    uri: Optional[str] = None
    guid: Optional[str] = None
    update_sequence_num: Optional[int] = None
    note_store_url: Optional[str] = None
    web_api_url_prefix: Optional[str] = None
    stack: Optional[str] = None
    business_id: Optional[int] = None


# ══════════════════════════════════════════════════════════════════════════
# Account records
# ══════════════════════════════════════════════════════════════════════════


class UserAttributes(StoreRecord):
    default_location_name: Optional[str] = None
    default_latitude: Optional[float] = None
    default_longitude: Optional[float] = None
    preactivation: Optional[bool] = None
    viewed_promotions: Optional[List[str]] = None
    incoming_email_address: Optional[str] = None
    recent_mailed_addresses: Optional[List[str]] = None
    comments: Optional[str] = None
    date_agreed_to_terms_of_service: Optional[Timestamp] = None
    max_referrals: Optional[int] = None
    referral_count: Optional[int] = None
    referer_code: Optional[str] = None
    sent_email_date: Optional[Timestamp] = None
    sent_email_count: Optional[int] = None
    daily_email_limit: Optional[int] = None
    email_opt_out_date: Optional[Timestamp] = None
    partner_email_opt_in_date: Optional[Timestamp] = None
    preferred_language: Optional[str] = None
    preferred_country: Optional[str] = None
    clip_full_page: Optional[bool] = None
    twitter_user_name: Optional[str] = None
    twitter_id: Optional[str] = None
    group_name: Optional[str] = None
    recognition_language: Optional[str] = None
    referral_proof: Optional[str] = None
    educational_discount: Optional[bool] = None
    business_address: Optional[str] = None
    hide_sponsor_billing: Optional[bool] = None
    tax_exempt: Optional[bool] = None
    use_email_auto_filing: Optional[bool] = None
    reminder_email_config: Optional[ReminderEmailConfig] = None


class Accounting(StoreRecord):
    upload_limit: Optional[int] = None
    upload_limit_end: Optional[Timestamp] = None
    upload_limit_next_month: Optional[int] = None
    premium_service_status: Optional[PremiumOrderStatus] = None
    premium_order_number: Optional[str] = None
    premium_commerce_service: Optional[str] = None
    premium_service_start: Optional[Timestamp] = None
    premium_service_sku: Optional[str] = Field(default=None, alias="premiumServiceSKU")
    last_successful_charge: Optional[Timestamp] = None
    last_failed_charge: Optional[Timestamp] = None
    last_failed_charge_reason: Optional[str] = None
    next_payment_due: Optional[Timestamp] = None
    premium_lock_until: Optional[Timestamp] = None
    updated: Optional[Timestamp] = None
    premium_subscription_number: Optional[str] = None
    last_requested_charge: Optional[Timestamp] = None
    currency: Optional[str] = None
    unit_price: Optional[int] = None
    business_id: Optional[int] = None
    business_name: Optional[str] = None
    business_role: Optional[BusinessUserRole] = None
    unit_discount: Optional[int] = None
    next_charge_date: Optional[Timestamp] = None


class PremiumInfo(StoreRecord):
    current_time: Optional[Timestamp] = None
    premium: Optional[bool] = None
    premium_recurring: Optional[bool] = None
    premium_expiration_date: Optional[Timestamp] = None
    premium_extendable: Optional[bool] = None
    premium_pending: Optional[bool] = None
    premium_cancellation_pending: Optional[bool] = None
    can_purchase_upload_allowance: Optional[bool] = None
    sponsored_group_name: Optional[str] = None
    sponsored_group_role: Optional[SponsoredGroupRole] = None
    premium_upgradable: Optional[bool] = None


class BusinessUserInfo(StoreRecord):
    business_id: Optional[int] = None
    business_name: Optional[str] = None
    role: Optional[BusinessUserRole] = None
    email: Optional[str] = None


class User(StoreRecord):
    id: Optional[int] = None
    username: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    timezone: Optional[str] = None
    privilege: Optional[PrivilegeLevel] = None
    created: Optional[Timestamp] = None
    updated: Optional[Timestamp] = None
    deleted: Optional[Timestamp] = None
    active: Optional[bool] = None
    shard_id: Optional[str] = None
    attributes: Optional[UserAttributes] = None
    accounting: Optional[Accounting] = None
    premium_info: Optional[PremiumInfo] = None
    business_user_info: Optional[BusinessUserInfo] = None


class PublicUserInfo(StoreRecord):
    user_id: Optional[int] = None
    shard_id: Optional[str] = None
    privilege: Optional[PrivilegeLevel] = None
    username: Optional[str] = None
    note_store_url: Optional[str] = None
    web_api_url_prefix: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Notebook records
# ══════════════════════════════════════════════════════════════════════════


class Publishing(StoreRecord):
    uri: Optional[str] = None
    order: Optional[NoteSortOrder] = None
    ascending: Optional[bool] = None
    public_description: Optional[str] = None


class SharedNotebookRecipientSettings(StoreRecord):
    reminder_notify_email: Optional[bool] = None
    reminder_notify_in_app: Optional[bool] = None


class SharedNotebook(StoreRecord):
    id: Optional[int] = None
    user_id: Optional[int] = None
    notebook_guid: Optional[str] = None
    email: Optional[str] = None
    notebook_modifiable: Optional[bool] = None
    require_login: Optional[bool] = None
    service_created: Optional[Timestamp] = None
    service_updated: Optional[Timestamp] = None
    share_key: Optional[str] = None
    username: Optional[str] = None
    privilege: Optional[SharedNotebookPrivilegeLevel] = None
    allow_preview: Optional[bool] = None
    recipient_settings: Optional[SharedNotebookRecipientSettings] = None


class BusinessNotebook(StoreRecord):
    notebook_description: Optional[str] = None
    privilege: Optional[SharedNotebookPrivilegeLevel] = None
    recommended: Optional[bool] = None


class NotebookRestrictions(StoreRecord):
    no_read_notes: Optional[bool] = None
    no_create_notes: Optional[bool] = None
    no_update_notes: Optional[bool] = None
    no_expunge_notes: Optional[bool] = None
    no_share_notes: Optional[bool] = None
    no_email_notes: Optional[bool] = None
    no_send_message_to_recipients: Optional[bool] = None
    no_update_notebook: Optional[bool] = None
    no_expunge_notebook: Optional[bool] = None
    no_set_default_notebook: Optional[bool] = None
    no_set_notebook_stack: Optional[bool] = None
    no_publish_to_public: Optional[bool] = None
    no_publish_to_business_library: Optional[bool] = None
    no_create_tags: Optional[bool] = None
    no_update_tags: Optional[bool] = None
    no_expunge_tags: Optional[bool] = None
    no_set_parent_tag: Optional[bool] = None
    no_create_shared_notebooks: Optional[bool] = None
    update_which_shared_notebook_restrictions: Optional[SharedNotebookInstanceRestrictions] = None
    expunge_which_shared_notebook_restrictions: Optional[SharedNotebookInstanceRestrictions] = None


class Notebook(StoreRecord):
    guid: Optional[str] = None
    name: Optional[str] = None
    update_sequence_num: Optional[int] = None
    default_notebook: Optional[bool] = None
    service_created: Optional[Timestamp] = None
    service_updated: Optional[Timestamp] = None
    publishing: Optional[Publishing] = None
    published: Optional[bool] = None
    stack: Optional[str] = None
    shared_notebook_ids: Optional[List[int]] = None
    shared_notebooks: Optional[List[SharedNotebook]] = None
    business_notebook: Optional[BusinessNotebook] = None
    contact: Optional[User] = None
    restrictions: Optional[NotebookRestrictions] = None


# ══════════════════════════════════════════════════════════════════════════
# Search and sync records
# ══════════════════════════════════════════════════════════════════════════


class NoteFilter(StoreRecord):
    """
    Criteria for `findNotes` / `findNoteCounts`.

    `order` is a NoteSortOrder code (see NOTE_SORT_ORDER_CODES).
    """

    order: Optional[int] = None
    ascending: Optional[bool] = None
    words: Optional[str] = None
    notebook_guid: Optional[str] = None
    tag_guids: Optional[List[str]] = None
    time_zone: Optional[str] = None
    inactive: Optional[bool] = None
    emphasized: Optional[str] = None


class NoteList(StoreRecord):
    start_index: Optional[int] = None
    total_notes: Optional[int] = None
    notes: Optional[List[Note]] = None
    stopped_words: Optional[List[str]] = None
    searched_words: Optional[List[str]] = None
    update_count: Optional[int] = None


class NoteCollectionCounts(StoreRecord):
    notebook_counts: Optional[Dict[str, int]] = None
    tag_counts: Optional[Dict[str, int]] = None
    trash_count: Optional[int] = None


class SyncState(StoreRecord):
    current_time: Optional[Timestamp] = None
    full_sync_before: Optional[Timestamp] = None
    update_count: Optional[int] = None
    uploaded: Optional[int] = None
