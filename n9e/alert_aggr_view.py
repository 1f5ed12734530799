"""Saved aggregation rules for the alert aggregation view."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from n9e.db import Database, ModelError

_COLUMNS = ("name", "rule", "cate", "create_at", "create_by", "update_at")

VALID_FIELDS = frozenset(
    {
        "cluster",
        "group_id",
        "group_name",
        "rule_id",
        "rule_name",
        "severity",
        "runbook_url",
        "target_ident",
        "target_note",
    }
)


@dataclass
class AlertAggrView:
    """A named rule such as ``field:cluster::tagkey:ident``."""

    id: int = 0
    name: str = ""
    rule: str = ""
    cate: int = 0
    create_at: int = 0
    create_by: int = 0
    update_at: int = 0

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "AlertAggrView":
        return cls(id=row["id"], **{column: row[column] for column in _COLUMNS})

    def verify(self) -> None:
        self.name = self.name.strip()
        if not self.name:
            raise ModelError("name is blank")
        self.rule = self.rule.strip()
        if not self.rule:
            raise ModelError("rule is blank")
        for part in self.rule.split("::"):
            pair = part.split(":")
            if len(pair) != 2 or pair[0] not in ("field", "tagkey"):
                raise ModelError("rule invalid")
            if pair[0] == "field" and pair[1] not in VALID_FIELDS:
                raise ModelError(f"unsupported field: {pair[1]}")

    def add(self, db: Database) -> None:
        self.verify()
        now = int(time.time())
        self.create_at = now
        self.update_at = now
        self.cate = 1
        self.id = db.insert("alert_aggr_view", {c: getattr(self, c) for c in _COLUMNS})

    def update(self, db: Database, name: str, rule: str, cate: int, create_by: int) -> None:
        self.verify()
        self.update_at = int(time.time())
        self.name = name
        self.rule = rule
        self.cate = cate
        if self.create_by == 0:
            self.create_by = create_by
        columns = ("name", "rule", "cate", "update_at", "create_by")
        db.update("alert_aggr_view", {c: getattr(self, c) for c in columns}, "id = ?", self.id)


def alert_aggr_view_del(db: Database, ids: list[int], create_by: int | None = None) -> None:
    """Delete views; with ``create_by`` only those that user created."""
    if not ids:
        return
    if create_by is not None:
        db.delete("alert_aggr_view", "id in ? and create_by = ?", list(ids), create_by)
    else:
        db.delete("alert_aggr_view", "id in ?", list(ids))


def alert_aggr_view_gets(db: Database, create_by: int) -> list[AlertAggrView]:
    """Public views and the user's own, ordered by category then name."""
    rows = db.query("SELECT * FROM alert_aggr_view WHERE create_by = ? or cate = 0", create_by)
    views = [AlertAggrView.from_row(row) for row in rows]
    return sorted(views, key=lambda view: (view.cate, view.name))


def alert_aggr_view_get(db: Database, where: str, *args: Any) -> AlertAggrView | None:
    rows = db.query(f"SELECT * FROM alert_aggr_view WHERE {where}", *args)
    return AlertAggrView.from_row(rows[0]) if rows else None