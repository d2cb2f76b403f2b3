"""Allow-list of users permitted to sign in, with admin flags and quotas."""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, List, Optional

from posterai.config import UNLIMITED_DAILY_LIMIT, get_settings
from posterai.services.database import Database, get_database, to_iso, utcnow
from posterai.services.errors import UserStoreError, mask_email

logger = logging.getLogger(__name__)


@dataclass
class AllowedUser:
    id: int
    email: str
    name: Optional[str]
    is_active: bool
    is_admin: bool
    daily_limit: int
    created_at: str
    updated_at: str

    @property
    def is_unlimited(self) -> bool:
        return self.daily_limit >= UNLIMITED_DAILY_LIMIT


def _normalise_email(email: str | None) -> str:
    return (email or "").strip().lower()


def _row_to_user(row: sqlite3.Row) -> AllowedUser:
    return AllowedUser(
        id=row["id"],
        email=row["email"],
        name=row["name"],
        is_active=bool(row["is_active"]),
        is_admin=bool(row["is_admin"]),
        daily_limit=int(row["daily_limit"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class UserStore:
    """CRUD over ``allowed_users`` enforcing the admin safety rules."""

    def __init__(self, db: Database, *, default_daily_limit: int = 100) -> None:
        self.db = db
        self.default_daily_limit = default_daily_limit

    # ---------- lookups ----------

    def get_user_by_email(self, email: str) -> Optional[AllowedUser]:
        key = _normalise_email(email)
        if not key:
            return None
        with self.db.connect() as con:
            row = con.execute("SELECT * FROM allowed_users WHERE email = ?", (key,)).fetchone()
        return _row_to_user(row) if row else None

    def get_user(self, user_id: int) -> Optional[AllowedUser]:
        with self.db.connect() as con:
            row = con.execute("SELECT * FROM allowed_users WHERE id = ?", (user_id,)).fetchone()
        return _row_to_user(row) if row else None

    def check_user_access(self, email: str) -> bool:
        user = self.get_user_by_email(email)
        return bool(user and user.is_active)

    def check_user_admin(self, email: str) -> bool:
        user = self.get_user_by_email(email)
        return bool(user and user.is_active and user.is_admin)

    def get_daily_limit(self, email: str) -> int:
        user = self.get_user_by_email(email)
        return user.daily_limit if user else self.default_daily_limit

    def list_users(self) -> List[AllowedUser]:
        with self.db.connect() as con:
            rows = con.execute(
                "SELECT * FROM allowed_users ORDER BY created_at DESC, id DESC"
            ).fetchall()
        return [_row_to_user(row) for row in rows]

    def count_active_admins(self) -> int:
        with self.db.connect() as con:
            row = con.execute(
                "SELECT COUNT(*) AS n FROM allowed_users WHERE is_admin = 1 AND is_active = 1"
            ).fetchone()
        return int(row["n"])

    # ---------- mutations ----------

    def add_user(self, email: str, name: Optional[str] = None, *, is_admin: bool = False) -> AllowedUser:
        key = _normalise_email(email)
        if not key or "@" not in key:
            raise UserStoreError("A valid email address is required")
        now = to_iso(utcnow())
        try:
            with self.db.connect() as con:
                cur = con.execute(
                    """
                    INSERT INTO allowed_users (email, name, is_active, is_admin, daily_limit, created_at, updated_at)
                    VALUES (?, ?, 1, ?, ?, ?, ?)
                    """,
                    (key, (name or "").strip() or None, 1 if is_admin else 0, self.default_daily_limit, now, now),
                )
                user_id = cur.lastrowid
        except sqlite3.IntegrityError as exc:
            raise UserStoreError("This email address is already registered", status_code=409) from exc
        logger.info("allow-list entry added for %s", mask_email(key))
        return self._require(int(user_id))

    def _require(self, user_id: int) -> AllowedUser:
        user = self.get_user(user_id)
        if user is None:
            raise UserStoreError("User not found", status_code=404)
        return user

    def _is_last_active_admin(self, user: AllowedUser) -> bool:
        return user.is_admin and user.is_active and self.count_active_admins() <= 1

    def remove_user(self, user_id: int, target_email: str, actor_email: str) -> AllowedUser:
        user = self._require(user_id)
        if _normalise_email(target_email) and _normalise_email(target_email) != user.email:
            raise UserStoreError("User id and email do not match")
        if self._is_last_active_admin(user):
            if user.email == _normalise_email(actor_email):
                raise UserStoreError("You cannot remove yourself as the last administrator", status_code=403)
            raise UserStoreError("The last administrator cannot be removed", status_code=403)
        with self.db.connect() as con:
            con.execute("DELETE FROM allowed_users WHERE id = ?", (user_id,))
        logger.info("allow-list entry removed for %s", mask_email(user.email))
        return user

    def set_active(self, user_id: int, is_active: bool, actor_email: str | None = None) -> AllowedUser:
        user = self._require(user_id)
        if not is_active and self._is_last_active_admin(user):
            raise UserStoreError("The last administrator cannot be deactivated", status_code=403)
        self._update(user_id, "is_active", 1 if is_active else 0)
        logger.info(
            "%s %s by %s",
            mask_email(user.email),
            "activated" if is_active else "deactivated",
            mask_email(actor_email) or "system",
        )
        return self._require(user_id)

    def set_admin(self, user_id: int, target_email: str, actor_email: str, is_admin: bool) -> AllowedUser:
        user = self._require(user_id)
        if _normalise_email(target_email) and _normalise_email(target_email) != user.email:
            raise UserStoreError("User id and email do not match")
        if user.email == _normalise_email(actor_email):
            raise UserStoreError("You cannot change your own administrator role", status_code=403)
        if not is_admin and self._is_last_active_admin(user):
            raise UserStoreError("At least one administrator is required", status_code=403)
        self._update(user_id, "is_admin", 1 if is_admin else 0)
        return self._require(user_id)

    def set_daily_limit(self, user_id: int, daily_limit: int) -> AllowedUser:
        if isinstance(daily_limit, bool) or not isinstance(daily_limit, int):
            raise UserStoreError("Daily limit must be an integer")
        if daily_limit < 1 or daily_limit > UNLIMITED_DAILY_LIMIT:
            raise UserStoreError(f"Daily limit must be between 1 and {UNLIMITED_DAILY_LIMIT}")
        self._require(user_id)
        self._update(user_id, "daily_limit", daily_limit)
        return self._require(user_id)

    def _update(self, user_id: int, column: str, value: int) -> None:
        if column not in {"is_active", "is_admin", "daily_limit"}:
            raise ValueError(f"unsupported column {column}")
        with self.db.connect() as con:
            con.execute(
                f"UPDATE allowed_users SET {column} = ?, updated_at = ? WHERE id = ?",
                (value, to_iso(utcnow()), user_id),
            )

    def ensure_admins(self, emails: Iterable[str]) -> None:
        """Make sure every bootstrap address exists as an active admin."""

        for email in emails:
            key = _normalise_email(email)
            if not key:
                continue
            existing = self.get_user_by_email(key)
            if existing is None:
                self.add_user(key, is_admin=True)
                continue
            if not existing.is_admin:
                self._update(existing.id, "is_admin", 1)
            if not existing.is_active:
                self._update(existing.id, "is_active", 1)


@lru_cache(maxsize=1)
def get_user_store() -> UserStore:
    settings = get_settings()
    store = UserStore(get_database(), default_daily_limit=settings.quota.default_daily_limit)
    store.ensure_admins(settings.auth.admin_emails)
    return store
