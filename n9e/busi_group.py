"""Business groups: the unit that owns targets, rules and dashboards."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from n9e.busi_group_member import (
    BusiGroupMember,
    busi_group_member_add,
    busi_group_member_count,
    busi_group_member_del,
    busi_group_member_gets_by_busi_group_id,
)
from n9e.db import Database, ModelError, Statistics
from n9e.user_group import UserGroup, user_group_get, user_group_get_by_id

_COLUMNS = (
    "name",
    "label_enable",
    "label_value",
    "create_at",
    "create_by",
    "update_at",
    "update_by",
)

# tables that block deletion while they still reference the group
_DEPENDENTS = (
    ("alert_mute", "Some alert mutes still in the BusiGroup"),
    ("alert_subscribe", "Some alert subscribes still in the BusiGroup"),
    ("target", "Some targets still in the BusiGroup"),
    ("dashboard", "Some dashboards still in the BusiGroup"),
    ("task_tpl", "Some recovery scripts still in the BusiGroup"),
    ("alert_rule", "Some alert rules still in the BusiGroup"),
)


@dataclass
class UserGroupWithPermFlag:
    user_group: UserGroup | None
    perm_flag: str


@dataclass
class BusiGroup:
    id: int = 0
    name: str = ""
    label_enable: int = 0
    label_value: str = ""
    create_at: int = 0
    create_by: str = ""
    update_at: int = 0
    update_by: str = ""
    user_groups: list[UserGroupWithPermFlag] = field(default_factory=list, compare=False)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "BusiGroup":
        return cls(id=row["id"], **{column: row[column] for column in _COLUMNS})

    def fill_user_groups(self, db: Database) -> None:
        for member in busi_group_member_gets_by_busi_group_id(db, self.id):
            self.user_groups.append(
                UserGroupWithPermFlag(
                    user_group=user_group_get_by_id(db, member.user_group_id),
                    perm_flag=member.perm_flag,
                )
            )

    def delete(self, db: Database) -> None:
        """Delete the group; refuse while anything still belongs to it."""
        for table, message in _DEPENDENTS:
            if db.exists(f"SELECT 1 FROM {table} WHERE group_id = ?", self.id):
                raise ModelError(message)
        with db.transaction():
            db.delete("busi_group_member", "busi_group_id = ?", self.id)
            db.delete("busi_group", "id = ?", self.id)
            # its rules are gone, so its active alerts can never recover
            db.delete("alert_cur_event", "group_id = ?", self.id)

    def _touch(self, db: Database, username: str) -> None:
        self.update_at = int(time.time())
        self.update_by = username
        db.update(
            "busi_group",
            {"update_at": self.update_at, "update_by": username},
            "id = ?",
            self.id,
        )

    def add_members(self, db: Database, members: list[BusiGroupMember], username: str) -> None:
        for member in members:
            busi_group_member_add(db, member)
        self._touch(db, username)

    def del_members(self, db: Database, members: list[BusiGroupMember], username: str) -> None:
        for member in members:
            others = busi_group_member_count(
                db,
                "busi_group_id = ? and user_group_id <> ?",
                member.busi_group_id,
                member.user_group_id,
            )
            if others == 0:
                raise ModelError("The business group must retain at least one team")
            busi_group_member_del(
                db,
                "busi_group_id = ? and user_group_id = ?",
                member.busi_group_id,
                member.user_group_id,
            )
        self._touch(db, username)

    def update(
        self, db: Database, name: str, label_enable: int, label_value: str, update_by: str
    ) -> None:
        if (
            self.name == name
            and self.label_enable == label_enable
            and self.label_value == label_value
        ):
            return
        if busi_group_exists(db, "name = ? and id <> ?", name, self.id):
            raise ModelError("BusiGroup already exists")
        if label_enable == 1:
            if busi_group_exists(
                db, "label_enable = 1 and label_value = ? and id <> ?", label_value, self.id
            ):
                raise ModelError("BusiGroup already exists")
        else:
            label_value = ""
        now = int(time.time())
        db.update(
            "busi_group",
            {
                "name": name,
                "label_enable": label_enable,
                "label_value": label_value,
                "update_at": now,
                "update_by": update_by,
            },
            "id = ?",
            self.id,
        )
        self.name = name
        self.label_enable = label_enable
        self.label_value = label_value
        self.update_at = now
        self.update_by = update_by


def busi_group_get_map(db: Database) -> dict[int, BusiGroup]:
    groups = (BusiGroup.from_row(row) for row in db.query("SELECT * FROM busi_group"))
    return {group.id: group for group in groups}


def busi_group_get(db: Database, where: str, *args: Any) -> BusiGroup | None:
    rows = db.query(f"SELECT * FROM busi_group WHERE {where}", *args)
    return BusiGroup.from_row(rows[0]) if rows else None


def busi_group_get_by_id(db: Database, group_id: int) -> BusiGroup | None:
    return busi_group_get(db, "id = ?", group_id)


def busi_group_exists(db: Database, where: str, *args: Any) -> bool:
    return db.exists(f"SELECT 1 FROM busi_group WHERE {where}", *args)


def busi_group_add(
    db: Database,
    name: str,
    label_enable: int,
    label_value: str,
    members: list[BusiGroupMember],
    creator: str,
) -> int:
    """Create a business group with its member teams; return its id."""
    if busi_group_exists(db, "name = ?", name):
        raise ModelError("BusiGroup already exists")
    if label_enable == 1:
        if busi_group_exists(db, "label_enable = 1 and label_value = ?", label_value):
            raise ModelError("BusiGroup already exists")
    else:
        label_value = ""
    for member in members:
        if user_group_get(db, "id = ?", member.user_group_id) is None:
            raise ModelError("Some UserGroup id not exists")

    now = int(time.time())
    with db.transaction():
        group_id = db.insert(
            "busi_group",
            {
                "name": name,
                "label_enable": label_enable,
                "label_value": label_value,
                "create_at": now,
                "create_by": creator,
                "update_at": now,
                "update_by": creator,
            },
        )
        for member in members:
            db.insert(
                "busi_group_member",
                {
                    "busi_group_id": group_id,
                    "user_group_id": member.user_group_id,
                    "perm_flag": member.perm_flag,
                },
            )
    return group_id


def busi_group_statistics(db: Database) -> Statistics:
    return db.statistics("busi_group", "update_at")