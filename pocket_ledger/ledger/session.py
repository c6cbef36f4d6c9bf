"""
Edit Session

One open add/edit form. The session:
1. Starts in CREATE mode (blank form) or EDIT mode (seeded from a record)
2. Collects field values as the user types, unchecked
3. Validates everything on commit and hands ONE write to the record store
4. Closes on successful commit or on cancel, and is unusable afterwards

CRITICAL: A commit that fails (validation or store) leaves the session
open with every field intact so the user can fix and retry. Nothing is
retried automatically.

The session never touches the transaction cache. A committed write shows
up in the cache when the next snapshot arrives, not before.
"""

from enum import Enum
from typing import Any, Optional

from pocket_ledger.logs import get_logger
from pocket_ledger.models.transaction import (
    Transaction,
    TransactionType,
)
from pocket_ledger.services.storage.interface import RecordStoreInterface
from pocket_ledger.validation import TransactionValidator, ValidationError


class EditMode(str, Enum):
    CREATE = "create"
    EDIT = "edit"


EDITABLE_FIELDS = ("amount", "category", "type", "note", "date")


class SessionClosedError(Exception):
    """The session was already committed or cancelled."""
    pass


def _coerce(name: str, value: Any) -> Any:
    """Light clean-up only. Real checking happens at commit."""
    if isinstance(value, str):
        value = value.strip()
        if name == "type":
            value = value.lower()
    return value


class EditSession:
    """
    Working state of one transaction form.

    Use EditSession.create(store) or EditSession.edit(store, record).
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        mode: EditMode,
        fields: dict[str, Any],
        target_id: Optional[str] = None,
        validator: Optional[TransactionValidator] = None,
    ):
        if mode == EditMode.EDIT and not target_id:
            raise ValueError("Edit sessions need the id of the record being edited")
        if mode == EditMode.CREATE and target_id:
            raise ValueError("Create sessions cannot target an existing record")
        self._store = store
        self._mode = mode
        self._fields = fields
        self._target_id = target_id
        self._validator = validator or TransactionValidator()
        self._closed = False
        self._logger = get_logger(__name__)

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def start(
        cls,
        store: RecordStoreInterface,
        mode: EditMode,
        seed: Optional[Transaction] = None,
        validator: Optional[TransactionValidator] = None,
    ) -> "EditSession":
        """Open a form in the given mode; EDIT requires the seed record."""
        mode = EditMode(mode)
        if mode == EditMode.CREATE:
            return cls(
                store,
                mode,
                {
                    "amount": None,
                    "category": None,
                    "type": TransactionType.EXPENSE,
                    "note": "",
                    "date": None,
                },
                validator=validator,
            )
        if seed is None:
            raise ValueError("Edit sessions must be seeded with an existing transaction")
        return cls(
            store,
            mode,
            {
                "amount": seed.amount,
                "category": seed.category,
                "type": seed.type,
                "note": seed.note,
                "date": seed.date,
            },
            target_id=seed.id,
            validator=validator,
        )

    @classmethod
    def create(cls, store: RecordStoreInterface, **kwargs) -> "EditSession":
        return cls.start(store, EditMode.CREATE, **kwargs)

    @classmethod
    def edit(cls, store: RecordStoreInterface, seed: Transaction, **kwargs) -> "EditSession":
        return cls.start(store, EditMode.EDIT, seed=seed, **kwargs)

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def mode(self) -> EditMode:
        return self._mode

    @property
    def target_id(self) -> Optional[str]:
        return self._target_id

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def fields(self) -> dict[str, Any]:
        """A copy of the working values."""
        return dict(self._fields)

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError("This form has already been closed")

    def set_field(self, name: str, value: Any) -> None:
        """Update one working field. No validation happens here."""
        self._ensure_open()
        if name not in EDITABLE_FIELDS:
            raise ValueError(f"Unknown field: {name}")
        self._fields[name] = _coerce(name, value)

    # -------------------------------------------------------------------------
    # Exit
    # -------------------------------------------------------------------------

    async def commit(self) -> str:
        """
        Validate and write.

        Returns:
            The id of the inserted (create) or updated (edit) record

        Raises:
            ValidationError: Fields are invalid; no write was issued
                (in EDIT mode a cleared date is invalid, not "now")
            NotFoundError: The edited record no longer exists
            StoreUnavailableError: The write failed
        """
        self._ensure_open()

        try:
            payload = self._validator.validate(
                self._fields,
                require_date=self._mode == EditMode.EDIT,
            )
        except ValidationError as e:
            self._logger.info(
                "validation_failed",
                mode=self._mode.value,
                fields=e.fields,
            )
            raise

        try:
            if self._mode == EditMode.CREATE:
                record_id = await self._store.insert(payload)
            else:
                await self._store.update(self._target_id, payload)
                record_id = self._target_id
        except Exception as e:
            self._logger.error(
                "write_failed",
                mode=self._mode.value,
                target_id=self._target_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise

        self._closed = True
        self._logger.info("write_requested", mode=self._mode.value, record_id=record_id)
        return record_id

    def cancel(self) -> None:
        """Close the form without writing anything."""
        self._ensure_open()
        self._closed = True


async def delete_transaction(store: RecordStoreInterface, record_id: str) -> None:
    """
    Remove one transaction. Not sessioned; confirmation is the UI's job.

    The cache is not touched here: the record disappears from it with the
    next snapshot.

    Raises:
        NotFoundError: The record is already gone
        StoreUnavailableError: The delete failed
    """
    logger = get_logger(__name__)
    try:
        await store.delete(record_id)
    except Exception as e:
        logger.error(
            "delete_failed",
            record_id=record_id,
            error_type=type(e).__name__,
            error=str(e),
        )
        raise
    logger.info("delete_requested", record_id=record_id)
