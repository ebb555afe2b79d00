"""
In-memory user registry.

One instance is created by the application factory and lives for the whole
process; it is handed to AuthService explicitly. Keys are always lowercased
before they touch the table, so mixed-case input can never create a second
logical user for the same account.
"""

import logging
from dataclasses import replace
from typing import Dict

from wallet_login.core.errors import AlreadyExistsError, NotFoundError
from wallet_login.db.rwlock import ReadWriteLock
from wallet_login.models.users import UserRecord

logger = logging.getLogger(__name__)


def _key(address: str) -> str:
    return address.lower()


class UserRegistry:
    def __init__(self):
        self._lock = ReadWriteLock()
        self._users: Dict[str, UserRecord] = {}

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._users)

    def __contains__(self, address: str) -> bool:
        with self._lock.read_locked():
            return _key(address) in self._users

    def create_if_absent(self, address: str, nonce: str) -> UserRecord:
        """Insert a new user with ``nonce``; AlreadyExistsError if the address is taken."""
        key = _key(address)
        record = UserRecord(address=key, nonce=nonce)
        with self._lock.write_locked():
            if key in self._users:
                raise AlreadyExistsError()
            self._users[key] = record
        return record

    def get(self, address: str) -> UserRecord:
        with self._lock.read_locked():
            record = self._users.get(_key(address))
        if record is None:
            raise NotFoundError()
        return record

    def update(self, record: UserRecord) -> None:
        """Upsert; the last writer for an address wins."""
        key = _key(record.address)
        if record.address != key:
            record = replace(record, address=key)
        with self._lock.write_locked():
            self._users[key] = record

    def compare_and_swap_nonce(self, address: str, expected: str, new: str) -> bool:
        """
        Replace the user's nonce with ``new`` only if it is still ``expected``.

        Returns False when another caller rotated it first. This is the single
        point where a nonce is consumed.
        """
        key = _key(address)
        with self._lock.write_locked():
            record = self._users.get(key)
            if record is None:
                raise NotFoundError()
            swapped = record.nonce == expected
            if swapped:
                self._users[key] = replace(record, nonce=new)
        if not swapped:
            logger.debug("nonce for %s already rotated", key)
        return swapped
