"""Roles and the operations they grant."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from n9e.db import Database

ADMIN_ROLE = "Admin"


@dataclass
class Role:
    id: int = 0
    name: str = ""
    note: str = ""


def role_gets(db: Database, where: str = "", *args: Any) -> list[Role]:
    sql = "SELECT id, name, note FROM role"
    if where:
        sql += f" WHERE {where}"
    sql += " ORDER BY name"
    return [Role(**row) for row in db.query(sql, *args)]


def role_gets_all(db: Database) -> list[Role]:
    return role_gets(db)


def role_has_operation(db: Database, roles: list[str], operation: str) -> bool:
    if not roles:
        return False
    return db.exists(
        "SELECT 1 FROM role_operation WHERE operation = ? and role_name in ?",
        operation,
        list(roles),
    )


def operations_of_role(db: Database, roles: list[str]) -> list[str]:
    """Distinct operations granted to the roles; the admin role gets them all."""
    if ADMIN_ROLE in roles:
        rows = db.query("SELECT DISTINCT operation FROM role_operation")
    else:
        rows = db.query(
            "SELECT DISTINCT operation FROM role_operation WHERE role_name in ?", list(roles)
        )
    return [row["operation"] for row in rows]