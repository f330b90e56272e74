"""User repository for SQLite operations."""

from dataclasses import dataclass
from typing import List, Mapping, Optional

from common.logging_config import get_logger
from custodian.database import get_db_connection

logger = get_logger(__name__)


@dataclass
class User:
    id: int
    username: str
    first_name: str
    last_name: str
    phone: str = ""
    is_admin: bool = False

    @property
    def has_phone(self) -> bool:
        return bool(self.phone)

    @property
    def display_name(self) -> str:
        if self.username:
            return self.username
        return f"{self.first_name} {self.last_name}".strip()


def _row_to_user(row) -> User:
    return User(
        id=row["id"],
        username=row["username"] or "",
        first_name=row["first_name"] or "",
        last_name=row["last_name"] or "",
        phone=row["phone"] or "",
        is_admin=bool(row["is_admin"]),
    )


class UserRepository:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def get_user(self, user_id: int) -> Optional[User]:
        logger.debug(f"Fetching user [user_id={user_id}]")
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """SELECT id, username, first_name, last_name, phone, is_admin
                   FROM users WHERE id = ?""",
                (user_id,)
            )
            row = cursor.fetchone()

            if row is None:
                logger.debug(f"User not found [user_id={user_id}]")
                return None

            return _row_to_user(row)

    def save_user(self, user: User) -> None:
        logger.debug(f"Saving user: {user.username} [user_id={user.id}]")
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    """
                    INSERT INTO users (id, username, first_name, last_name, phone, is_admin)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        username = excluded.username,
                        first_name = excluded.first_name,
                        last_name = excluded.last_name,
                        phone = excluded.phone,
                        is_admin = excluded.is_admin
                    """,
                    (user.id, user.username, user.first_name, user.last_name,
                     user.phone, int(user.is_admin))
                )
                conn.commit()
                logger.info(f"User saved: {user.username} [user_id={user.id}]")
            except Exception as e:
                logger.error(f"Failed to save user [user_id={user.id}]: {e}", exc_info=True)
                raise

    def set_user_phone(self, user_id: int, phone: str) -> bool:
        logger.debug(f"Updating phone [user_id={user_id}]")
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    "UPDATE users SET phone = ? WHERE id = ?",
                    (phone, user_id)
                )
                conn.commit()
            except Exception as e:
                logger.error(f"Failed to update phone [user_id={user_id}]: {e}", exc_info=True)
                raise

            updated = cursor.rowcount > 0
            if updated:
                logger.info(f"Phone saved [user_id={user_id}]")
            else:
                logger.warning(f"Phone update matched no user [user_id={user_id}]")
            return updated

    def reconcile_admins(self, admins: Mapping[str, bool]) -> int:
        """
        Make the is_admin column mirror the configured administrator set.

        All flags are cleared and then set for every username mapped to
        True, inside one transaction: a failure at any step rolls back to
        the previous flags.

        Args:
            admins: Mapping of username to administrator intent

        Returns:
            Number of users flagged as administrators
        """
        usernames = [username for username, is_admin in admins.items() if is_admin]
        logger.debug(f"Reconciling administrators: {usernames}")

        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            try:
                cursor.execute("BEGIN")
                cursor.execute("UPDATE users SET is_admin = 0")
                flagged = 0
                for username in usernames:
                    cursor.execute(
                        "UPDATE users SET is_admin = 1 WHERE username = ?",
                        (username,)
                    )
                    flagged += cursor.rowcount
                conn.commit()
            except Exception as e:
                conn.rollback()
                logger.error(f"Failed to reconcile administrators: {e}", exc_info=True)
                raise

        logger.info(f"Administrators reconciled: {flagged} user(s) flagged")
        return flagged

    def get_all_users(self) -> List[User]:
        logger.debug("Fetching all users")
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """SELECT id, username, first_name, last_name, phone, is_admin
                   FROM users ORDER BY id"""
            )
            users = [_row_to_user(row) for row in cursor.fetchall()]

        logger.debug(f"Fetched {len(users)} users")
        return users
