"""Users: accounts, passwords, permissions and the groups they can reach."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from n9e.busi_group import BusiGroup
from n9e.busi_group_member import busi_group_ids, user_group_ids_of_busi_group
from n9e.db import Database, ModelError, Statistics, crypto_pass
from n9e.roles import ADMIN_ROLE, role_has_operation
from n9e.textutil import dangerous, is_mail, is_phone
from n9e.user_group import UserGroup, my_group_ids, user_group_member_count

_COLUMNS = (
    "username",
    "nickname",
    "password",
    "phone",
    "email",
    "portrait",
    "roles",
    "contacts",
    "maintainer",
    "create_at",
    "create_by",
    "update_at",
    "update_by",
)

_SEARCH = "(username like ? or nickname like ? or phone like ? or email like ?)"


@dataclass
class User:
    """An account that can log in and act on groups."""

    id: int = 0
    username: str = ""
    nickname: str = ""
    password: str = field(default="", repr=False)
    phone: str = ""
    email: str = ""
    portrait: str = ""
    roles: str = ""
    roles_lst: list[str] = field(default_factory=list)
    contacts: str = ""
    maintainer: int = 0
    create_at: int = 0
    create_by: str = ""
    update_at: int = 0
    update_by: str = ""
    admin: bool = False

    def __post_init__(self) -> None:
        if self.roles and not self.roles_lst:
            self.roles_lst = self.roles.split()
        self.admin = self.is_admin()

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "User":
        return cls(id=row["id"], **{column: row[column] for column in _COLUMNS})

    def _values(self, columns: tuple[str, ...] | list[str]) -> dict[str, Any]:
        return {column: getattr(self, column) for column in columns}

    def is_admin(self) -> bool:
        return ADMIN_ROLE in self.roles_lst

    def verify(self) -> None:
        self.username = self.username.strip()
        if not self.username:
            raise ModelError("Username is blank")
        if dangerous(self.username):
            raise ModelError("Username has invalid characters")
        if dangerous(self.nickname):
            raise ModelError("Nickname has invalid characters")
        if self.phone and not is_phone(self.phone):
            raise ModelError("Phone invalid")
        if self.email and not is_mail(self.email):
            raise ModelError("Email invalid")

    def add(self, db: Database) -> None:
        if user_get_by_username(db, self.username) is not None:
            raise ModelError("Username already exists")
        now = int(time.time())
        self.create_at = now
        self.update_at = now
        self.id = db.insert("users", self._values(_COLUMNS))

    def update(self, db: Database, *args: str) -> None:
        """Write the named columns of this user back to storage."""
        self.verify()
        if not args:
            raise ModelError("no fields selected for update")
        unknown = [column for column in args if column not in _COLUMNS]
        if unknown:
            raise ModelError(f"unknown fields: {', '.join(unknown)}")
        db.update("users", self._values(list(args)), "id = ?", self.id)

    def update_all_fields(self, db: Database) -> None:
        self.verify()
        self.update_at = int(time.time())
        db.update("users", self._values(_COLUMNS), "id = ?", self.id)

    def update_password(self, db: Database, password: str, update_by: str) -> None:
        now = int(time.time())
        db.update(
            "users",
            {"password": password, "update_at": now, "update_by": update_by},
            "id = ?",
            self.id,
        )
        self.password = password
        self.update_at = now
        self.update_by = update_by

    def delete(self, db: Database) -> None:
        with db.transaction():
            db.delete("user_group_member", "user_id = ?", self.id)
            db.delete("users", "id = ?", self.id)

    def change_password(self, db: Database, oldpass: str, newpass: str) -> None:
        hashed_old = crypto_pass(db, oldpass)
        hashed_new = crypto_pass(db, newpass)
        if self.password != hashed_old:
            raise ModelError("Incorrect old password")
        self.update_password(db, hashed_new, self.username)

    def can_modify_user_group(self, db: Database, ug: UserGroup) -> bool:
        if self.is_admin():
            return True
        if ug.create_by == self.username:
            return True
        return user_group_member_count(db, "user_id = ? and group_id = ?", self.id, ug.id) > 0

    def can_do_busi_group(self, db: Database, bg: BusiGroup, perm_flag: str | None = None) -> bool:
        if self.is_admin():
            return True
        ugids = user_group_ids_of_busi_group(db, bg.id, perm_flag)
        if not ugids:
            return False
        return user_group_member_count(db, "user_id = ? and group_id in ?", self.id, ugids) > 0

    def check_perm(self, db: Database, operation: str) -> bool:
        if self.is_admin():
            return True
        return role_has_operation(db, self.roles_lst, operation)

    def nopri_idents(self, db: Database, idents: list[str]) -> list[str]:
        """The idents this user may not modify."""
        if self.is_admin():
            return []
        ugids = my_group_ids(db, self.id)
        if not ugids:
            return list(idents)
        bgids = busi_group_ids(db, ugids, "rw")
        if not bgids:
            return list(idents)
        rows = db.query("SELECT ident FROM target WHERE group_id in ?", bgids)
        allowed = {row["ident"] for row in rows}
        return [ident for ident in idents if ident not in allowed]

    def busi_groups(
        self, db: Database, limit: int, query: str = "", all_groups: bool = False
    ) -> list[BusiGroup]:
        """Business groups visible to this user whose name contains ``query``."""
        like = f"%{query}%"
        if self.is_admin() or all_groups:
            rows = db.query(
                "SELECT * FROM busi_group WHERE name like ? ORDER BY name LIMIT ?", like, limit
            )
            return [BusiGroup.from_row(row) for row in rows]
        bgids = busi_group_ids(db, my_group_ids(db, self.id))
        if not bgids:
            return []
        rows = db.query(
            "SELECT * FROM busi_group WHERE id in ? AND name like ? ORDER BY name LIMIT ?",
            bgids,
            like,
            limit,
        )
        return [BusiGroup.from_row(row) for row in rows]

    def user_groups(self, db: Database, limit: int, query: str = "") -> list[UserGroup]:
        """User groups this user belongs to or created, filtered by name."""
        like = f"%{query}%"
        if self.is_admin():
            rows = db.query(
                "SELECT * FROM user_group WHERE name like ? ORDER BY name LIMIT ?", like, limit
            )
            return [UserGroup.from_row(row) for row in rows]
        ids = my_group_ids(db, self.id)
        if ids:
            rows = db.query(
                "SELECT * FROM user_group WHERE (id in ? or create_by = ?) "
                "AND name like ? ORDER BY name LIMIT ?",
                ids,
                self.username,
                like,
                limit,
            )
        else:
            rows = db.query(
                "SELECT * FROM user_group WHERE create_by = ? AND name like ? "
                "ORDER BY name LIMIT ?",
                self.username,
                like,
                limit,
            )
        return [UserGroup.from_row(row) for row in rows]


def user_get(db: Database, where: str, *args: Any) -> User | None:
    rows = db.query(f"SELECT * FROM users WHERE {where}", *args)
    return User.from_row(rows[0]) if rows else None


def user_get_by_username(db: Database, username: str) -> User | None:
    return user_get(db, "username = ?", username)


def user_get_by_id(db: Database, user_id: int) -> User | None:
    return user_get(db, "id = ?", user_id)


def init_root(db: Database) -> bool:
    """Hash the root user's plain-text password once; True if it was done now."""
    user = user_get_by_username(db, "root")
    if user is None:
        return False
    if len(user.password) > 31:
        return False
    hashed = crypto_pass(db, user.password)
    db.update("users", {"password": hashed}, "id = ?", user.id)
    return True


def pass_login(db: Database, username: str, password: str) -> User:
    user = user_get_by_username(db, username)
    if user is None:
        raise ModelError("Username or password invalid")
    if crypto_pass(db, password) != user.password:
        raise ModelError("Username or password invalid")
    return user


def user_total(db: Database, query: str = "") -> int:
    if query:
        like = f"%{query}%"
        return db.count(f"SELECT 1 FROM users WHERE {_SEARCH}", like, like, like, like)
    return db.count("SELECT 1 FROM users")


def user_gets(db: Database, query: str, limit: int, offset: int) -> list[User]:
    sql = "SELECT * FROM users"
    args: list[Any] = []
    if query:
        like = f"%{query}%"
        sql += f" WHERE {_SEARCH}"
        args += [like, like, like, like]
    sql += " ORDER BY username LIMIT ? OFFSET ?"
    return [User.from_row(row) for row in db.query(sql, *args, limit, offset)]


def user_get_all(db: Database) -> list[User]:
    return [User.from_row(row) for row in db.query("SELECT * FROM users")]


def user_gets_by_ids(db: Database, ids: list[int]) -> list[User]:
    if not ids:
        return []
    rows = db.query("SELECT * FROM users WHERE id in ? ORDER BY username", list(ids))
    return [User.from_row(row) for row in rows]


def user_statistics(db: Database) -> Statistics:
    return db.statistics("users", "update_at")