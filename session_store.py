import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from config import config
from database import db
from identity_cache import IdentityCache
from line_items import LineItemStore
from models import IdentityRecord, InvoiceMetadata, InvoiceSnapshot, Landlord, Tenant, Totals
from totals import compute_totals, formatted_totals

logger = logging.getLogger(__name__)

# Custom exception for input validation errors
class InputValidationError(Exception):
    """Custom exception for input validation errors with user-friendly messages"""
    pass

identity_cache = IdentityCache(db)

class InvoiceSession:
    """All mutable state behind one invoice being edited"""

    def __init__(self, session_id: str, cache: IdentityCache = None):
        self.session_id = session_id
        self.cache = cache or identity_cache
        self.items = LineItemStore()

        identity = self.cache.load()
        self.landlord: Landlord = identity["landlord"]
        self.tenant: Tenant = identity["tenant"]

        self._metadata: Optional[InvoiceMetadata] = None
        self.last_active = datetime.now(timezone.utc)

    def touch(self) -> None:
        self.last_active = datetime.now(timezone.utc)

    def is_expired(self, now: datetime = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now - self.last_active > timedelta(hours=config.SESSION_TTL_HOURS)

    @property
    def is_ready(self) -> bool:
        return self._metadata is not None

    @property
    def metadata(self) -> InvoiceMetadata:
        """Invoice id and issue date, generated on first use and fixed afterwards"""
        if self._metadata is None:
            self._metadata = InvoiceMetadata.generate()
            logger.info(f"Issued invoice {self._metadata.invoice_id} for session {self.session_id}")
        return self._metadata

    def totals(self) -> Totals:
        return compute_totals(self.items.items)

    def identity_record(self, kind: str) -> IdentityRecord:
        if kind == "landlord":
            return self.landlord
        if kind == "tenant":
            return self.tenant
        raise InputValidationError(f"Unknown identity record '{kind}'. Expected 'landlord' or 'tenant'.")

    def update_identity(self, kind: str, field: str, value: Any) -> IdentityRecord:
        """Set one landlord/tenant field, then persist the record unless it is all empty"""
        record = self.identity_record(kind)
        if field not in type(record).model_fields:
            raise InputValidationError(
                f"Unknown {kind} field '{field}'. "
                f"Expected one of: {', '.join(type(record).model_fields)}"
            )

        setattr(record, field, "" if value is None else str(value))
        if not record.is_empty():
            self.cache.save(record)
        return record

    def snapshot(self) -> InvoiceSnapshot:
        return InvoiceSnapshot(
            landlord=self.landlord.model_copy(deep=True),
            tenant=self.tenant.model_copy(deep=True),
            items=[item.model_copy(deep=True) for item in self.items.items],
            metadata=self.metadata,
        )

    def view(self) -> Dict[str, Any]:
        """Everything the preview needs to render this session"""
        totals = self.totals()
        return {
            "session_id": self.session_id,
            "invoice_id": self.metadata.invoice_id,
            "issue_date": self.metadata.issue_date.isoformat(),
            "landlord": self.landlord.model_dump(),
            "tenant": self.tenant.model_dump(),
            "items": [item.model_dump(mode="json") for item in self.items.items],
            "totals": totals.model_dump(),
            "formatted_totals": formatted_totals(totals),
        }

_sessions: Dict[str, InvoiceSession] = {}

def create_session(session_id: str = None) -> InvoiceSession:
    """Start a new invoice session, prefilled from the identity cache"""
    cleanup_expired_sessions()
    session_id = session_id or str(uuid.uuid4())
    session = InvoiceSession(session_id)
    _sessions[session_id] = session
    logger.info(f"Created session {session_id} for invoice {session.metadata.invoice_id}")
    return session

def get_session(session_id: str) -> Optional[InvoiceSession]:
    """Get a live session; idle ones past their TTL are dropped"""
    session = _sessions.get(session_id)
    if session is None:
        return None

    if session.is_expired():
        delete_session(session_id)
        return None

    session.touch()
    return session

def reset_session(session_id: str) -> InvoiceSession:
    """Reset a session to initial state"""
    session = create_session(session_id)
    logger.info(f"Reset session: {session_id}")
    return session

def delete_session(session_id: str) -> bool:
    """Delete a session"""
    deleted = _sessions.pop(session_id, None) is not None
    if deleted:
        logger.info(f"Deleted session: {session_id}")
    return deleted

def cleanup_expired_sessions() -> int:
    """Clean up expired sessions"""
    now = datetime.now(timezone.utc)
    expired = [session_id for session_id, session in _sessions.items() if session.is_expired(now)]
    for session_id in expired:
        del _sessions[session_id]

    if expired:
        logger.info(f"Cleaned up {len(expired)} expired sessions")
    return len(expired)
