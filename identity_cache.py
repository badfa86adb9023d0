import json
import logging
import sqlite3
from typing import Dict, Type, TypeVar

from pydantic import ValidationError

from database import Database
from models import IdentityRecord, Landlord, Tenant

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=IdentityRecord)

class IdentityCache:
    """Remembers the last-entered landlord and tenant details between sessions.

    Reads fail soft to an empty record and writes are best-effort: neither
    ever raises to the caller.
    """

    def __init__(self, storage: Database):
        self.storage = storage

    def load(self) -> Dict[str, IdentityRecord]:
        return {
            "landlord": self._load_record(Landlord),
            "tenant": self._load_record(Tenant),
        }

    def _load_record(self, record_type: Type[RecordT]) -> RecordT:
        key = record_type.STORAGE_KEY
        try:
            payload = self.storage.get(key)
        except sqlite3.Error as e:
            logger.warning(f"Could not read {key}: {str(e)}")
            return record_type()

        if payload is None:
            return record_type()

        try:
            data = json.loads(payload)
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            return record_type.model_validate(data)
        except (json.JSONDecodeError, ValidationError, ValueError) as e:
            logger.warning(f"Discarding malformed record stored under {key}: {str(e)}")
            return record_type()

    def save(self, record: IdentityRecord) -> bool:
        key = record.STORAGE_KEY
        try:
            self.storage.set(key, record.model_dump_json())
            return True
        except sqlite3.Error as e:
            logger.warning(f"Could not persist {key}: {str(e)}")
            return False
