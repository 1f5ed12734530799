"""Which user groups may act on a business group, and with what permission."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from n9e.db import Database


@dataclass
class BusiGroupMember:
    busi_group_id: int = 0
    user_group_id: int = 0
    perm_flag: str = ""


def _from_row(row: dict[str, Any]) -> BusiGroupMember:
    return BusiGroupMember(
        busi_group_id=row["busi_group_id"],
        user_group_id=row["user_group_id"],
        perm_flag=row["perm_flag"],
    )


def busi_group_ids(
    db: Database, user_group_ids: list[int], perm_flag: str | None = None
) -> list[int]:
    if not user_group_ids:
        return []
    sql = "SELECT busi_group_id FROM busi_group_member WHERE user_group_id in ?"
    args: list[Any] = [list(user_group_ids)]
    if perm_flag is not None:
        sql += " AND perm_flag = ?"
        args.append(perm_flag)
    return [row["busi_group_id"] for row in db.query(sql, *args)]


def user_group_ids_of_busi_group(
    db: Database, busi_group_id: int, perm_flag: str | None = None
) -> list[int]:
    sql = "SELECT user_group_id FROM busi_group_member WHERE busi_group_id = ?"
    args: list[Any] = [busi_group_id]
    if perm_flag is not None:
        sql += " AND perm_flag = ?"
        args.append(perm_flag)
    return [row["user_group_id"] for row in db.query(sql, *args)]


def busi_group_member_count(db: Database, where: str, *args: Any) -> int:
    return db.count(f"SELECT 1 FROM busi_group_member WHERE {where}", *args)


def busi_group_member_get(db: Database, where: str, *args: Any) -> BusiGroupMember | None:
    rows = db.query(f"SELECT * FROM busi_group_member WHERE {where}", *args)
    return _from_row(rows[0]) if rows else None


def busi_group_member_add(db: Database, member: BusiGroupMember) -> None:
    """Insert the member, or change its permission if it already exists."""
    where = "busi_group_id = ? and user_group_id = ?"
    existing = busi_group_member_get(db, where, member.busi_group_id, member.user_group_id)
    if existing is None:
        db.insert(
            "busi_group_member",
            {
                "busi_group_id": member.busi_group_id,
                "user_group_id": member.user_group_id,
                "perm_flag": member.perm_flag,
            },
        )
        return
    if existing.perm_flag == member.perm_flag:
        return
    db.update(
        "busi_group_member",
        {"perm_flag": member.perm_flag},
        where,
        member.busi_group_id,
        member.user_group_id,
    )


def busi_group_member_del(db: Database, where: str, *args: Any) -> None:
    db.delete("busi_group_member", where, *args)


def busi_group_member_gets(db: Database, where: str, *args: Any) -> list[BusiGroupMember]:
    rows = db.query(f"SELECT * FROM busi_group_member WHERE {where} ORDER BY perm_flag", *args)
    return [_from_row(row) for row in rows]


def busi_group_member_gets_by_busi_group_id(
    db: Database, busi_group_id: int
) -> list[BusiGroupMember]:
    return busi_group_member_gets(db, "busi_group_id = ?", busi_group_id)