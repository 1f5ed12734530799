"""Saved metric views."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from n9e.db import Database, ModelError

_COLUMNS = ("name", "cate", "configs", "create_at", "create_by", "update_at")


@dataclass
class MetricView:
    """A named metric view configuration."""

    id: int = 0
    name: str = ""
    cate: int = 0
    configs: str = ""
    create_at: int = 0
    create_by: int = 0
    update_at: int = 0

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "MetricView":
        return cls(id=row["id"], **{column: row[column] for column in _COLUMNS})

    def verify(self) -> None:
        self.name = self.name.strip()
        if not self.name:
            raise ModelError("name is blank")
        self.configs = self.configs.strip()
        if not self.configs:
            raise ModelError("configs is blank")

    def add(self, db: Database) -> None:
        self.verify()
        now = int(time.time())
        self.create_at = now
        self.update_at = now
        self.id = db.insert("metric_view", {c: getattr(self, c) for c in _COLUMNS})

    def update(self, db: Database, name: str, configs: str, cate: int, create_by: int) -> None:
        self.verify()
        self.update_at = int(time.time())
        self.name = name
        self.configs = configs
        self.cate = cate
        if self.create_by == 0:
            self.create_by = create_by
        columns = ("name", "configs", "cate", "update_at", "create_by")
        db.update("metric_view", {c: getattr(self, c) for c in columns}, "id = ?", self.id)


def metric_view_del(db: Database, ids: list[int], create_by: int | None = None) -> None:
    """Delete views; with ``create_by`` only those that user created."""
    if not ids:
        return
    if create_by is not None:
        db.delete("metric_view", "id in ? and create_by = ?", list(ids), create_by)
    else:
        db.delete("metric_view", "id in ?", list(ids))


def metric_view_gets(db: Database, create_by: int) -> list[MetricView]:
    """Public views and the user's own, ordered by category then name."""
    rows = db.query("SELECT * FROM metric_view WHERE create_by = ? or cate = 0", create_by)
    views = [MetricView.from_row(row) for row in rows]
    return sorted(views, key=lambda view: (view.cate, view.name))


def metric_view_get(db: Database, where: str, *args: Any) -> MetricView | None:
    rows = db.query(f"SELECT * FROM metric_view WHERE {where}", *args)
    return MetricView.from_row(rows[0]) if rows else None