"""Alert mutes: time windows during which matching alerts are silenced."""

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass, field
from typing import Any, Pattern

from n9e.db import Database, ModelError, Statistics

_COLUMNS = ("group_id", "prod", "cluster", "tags", "cause", "btime", "etime", "create_by", "create_at")

EXPIRY_BUFFER = 30


@dataclass
class TagFilter:
    """One tag condition: ``==``, ``=~`` (regex) or ``in`` (space-separated set)."""

    key: str = ""
    func: str = ""
    value: str = ""
    regexp: Pattern[str] | None = field(default=None, compare=False)
    vset: set[str] | None = None


def parse_tag_filters(raw: str | bytes) -> list[TagFilter]:
    """Decode a JSON array of tag filters and prepare their matchers."""
    try:
        items = json.loads(raw)
    except ValueError as err:
        raise ModelError(f"invalid tags: {err}") from err
    if items is None:
        return []
    if not isinstance(items, list):
        raise ModelError("invalid tags: not an array")

    filters = []
    for item in items:
        if not isinstance(item, dict):
            raise ModelError("invalid tags: filter is not an object")
        parts = {}
        for name in ("key", "func", "value"):
            value = item.get(name, "")
            if value is None:
                value = ""
            if not isinstance(value, str):
                raise ModelError(f"invalid tags: {name} is not a string")
            parts[name] = value
        tag_filter = TagFilter(**parts)
        if tag_filter.func == "=~":
            try:
                tag_filter.regexp = re.compile(tag_filter.value)
            except re.error as err:
                raise ModelError(f"invalid regexp {tag_filter.value!r}: {err}") from err
        elif tag_filter.func == "in":
            tag_filter.vset = set(tag_filter.value.split())
        filters.append(tag_filter)
    return filters


@dataclass
class AlertMute:
    """A mute rule for one cluster within a business group."""

    id: int = 0
    group_id: int = 0
    prod: str = ""
    cluster: str = ""
    tags: str = ""
    cause: str = ""
    btime: int = 0
    etime: int = 0
    create_by: str = ""
    create_at: int = 0
    itags: list[TagFilter] = field(default_factory=list, compare=False)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "AlertMute":
        return cls(id=row["id"], **{column: row[column] for column in _COLUMNS})

    def verify(self) -> None:
        if self.group_id < 0:
            raise ModelError("group_id invalid")
        if not self.cluster:
            raise ModelError("cluster invalid")
        if self.etime <= self.btime:
            raise ModelError(f"Oops... etime({self.etime}) <= btime({self.btime})")
        self.parse()
        if not self.itags:
            raise ModelError("tags is blank")

    def parse(self) -> None:
        self.itags = parse_tag_filters(self.tags)

    def add(self, db: Database) -> None:
        self.verify()
        self.create_at = int(time.time())
        self.id = db.insert("alert_mute", {column: getattr(self, column) for column in _COLUMNS})


def _mutes(rows: list[dict[str, Any]]) -> list[AlertMute]:
    return [AlertMute.from_row(row) for row in rows]


def alert_mute_gets(db: Database, prods: list[str], bgid: int, query: str = "") -> list[AlertMute]:
    sql = "SELECT * FROM alert_mute WHERE group_id = ? and prod in ?"
    args: list[Any] = [bgid, list(prods)]
    for word in query.split():
        sql += " AND cause like ?"
        args.append(f"%{word}%")
    return _mutes(db.query(sql + " ORDER BY id DESC", *args))


def alert_mute_gets_by_bg(db: Database, group_id: int) -> list[AlertMute]:
    return _mutes(db.query("SELECT * FROM alert_mute WHERE group_id = ? ORDER BY id DESC", group_id))


def alert_mute_del(db: Database, ids: list[int]) -> None:
    if not ids:
        return
    db.delete("alert_mute", "id in ?", list(ids))


def alert_mute_statistics(db: Database, cluster: str = "") -> Statistics:
    if cluster:
        return db.statistics("alert_mute", "create_at", "cluster = ?", cluster)
    return db.statistics("alert_mute", "create_at")


def alert_mute_gets_by_cluster(db: Database, cluster: str = "") -> list[AlertMute]:
    """Remove mutes that have (nearly) expired, then list the cluster's mutes."""
    db.delete("alert_mute", "etime < ?", int(time.time()) + EXPIRY_BUFFER)
    if cluster:
        return _mutes(db.query("SELECT * FROM alert_mute WHERE cluster = ?", cluster))
    return _mutes(db.query("SELECT * FROM alert_mute"))