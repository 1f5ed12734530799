"""Alert subscriptions: extra notify targets and overrides for matching alerts."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import Any

from n9e.alert_mute import TagFilter, parse_tag_filters
from n9e.alert_rule import alert_rule_get_name
from n9e.db import Database, ModelError, Statistics
from n9e.user_group import UserGroup, user_group_get_by_id

_COLUMNS = (
    "group_id",
    "cluster",
    "rule_id",
    "tags",
    "redefine_severity",
    "new_severity",
    "redefine_channels",
    "new_channels",
    "user_group_ids",
    "create_by",
    "create_at",
    "update_by",
    "update_at",
)

RULE_NOT_FOUND = "Error: AlertRule not found"

_INT_RE = re.compile(r"[+-]?\d+")


def _is_int(text: str) -> bool:
    return bool(_INT_RE.fullmatch(text)) and -(2**63) <= int(text) < 2**63


def _to_int(text: str) -> int:
    return int(text) if _is_int(text) else 0


@dataclass
class AlertSubscribe:
    """A subscription to the alerts of one rule or of matching tags."""

    id: int = 0
    group_id: int = 0
    cluster: str = ""
    rule_id: int = 0
    rule_name: str = ""
    tags: str = ""
    redefine_severity: int = 0
    new_severity: int = 0
    redefine_channels: int = 0
    new_channels: str = ""
    user_group_ids: str = ""
    user_groups: list[UserGroup] = field(default_factory=list, compare=False)
    create_by: str = ""
    create_at: int = 0
    update_by: str = ""
    update_at: int = 0
    itags: list[TagFilter] = field(default_factory=list, compare=False)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "AlertSubscribe":
        return cls(id=row["id"], **{column: row[column] for column in _COLUMNS})

    def verify(self) -> None:
        if not self.cluster:
            raise ModelError("cluster invalid")
        self.parse()
        if not self.itags and self.rule_id == 0:
            raise ModelError("rule_id and tags are both blank")
        for ugid in self.user_group_ids.split():
            if not _is_int(ugid):
                raise ModelError("user_group_ids invalid")

    def parse(self) -> None:
        self.itags = parse_tag_filters(self.tags)

    def add(self, db: Database) -> None:
        self.verify()
        now = int(time.time())
        self.create_at = now
        self.update_at = now
        self.id = db.insert(
            "alert_subscribe", {column: getattr(self, column) for column in _COLUMNS}
        )

    def fill_rule_name(self, db: Database, cache: dict[int, str]) -> None:
        if self.rule_id <= 0:
            self.rule_name = ""
            return
        if self.rule_id in cache:
            self.rule_name = cache[self.rule_id]
            return
        name = alert_rule_get_name(db, self.rule_id) or RULE_NOT_FOUND
        self.rule_name = name
        cache[self.rule_id] = name

    def fill_user_groups(self, db: Database, cache: dict[int, UserGroup]) -> None:
        """Resolve user groups; drop ids of groups that no longer exist."""
        ugids = self.user_group_ids.split()
        if not ugids:
            self.user_groups = []
            return

        kept: list[str] = []
        removed = False
        for ugid_text in ugids:
            ugid = _to_int(ugid_text)
            if ugid in cache:
                kept.append(ugid_text)
                self.user_groups.append(cache[ugid])
                continue
            group = user_group_get_by_id(db, ugid)
            if group is None:
                removed = True
            else:
                kept.append(ugid_text)
                self.user_groups.append(group)
                cache[ugid] = group

        if removed:
            self.user_group_ids = " ".join(kept)
            db.update(
                "alert_subscribe", {"user_group_ids": self.user_group_ids}, "id = ?", self.id
            )

    def update(self, db: Database, *args: str) -> None:
        """Write the named columns of this subscription back to storage."""
        self.verify()
        if not args:
            raise ModelError("no fields selected for update")
        unknown = [column for column in args if column not in _COLUMNS]
        if unknown:
            raise ModelError(f"unknown fields: {', '.join(unknown)}")
        db.update("alert_subscribe", {c: getattr(self, c) for c in args}, "id = ?", self.id)


def _subscribes(rows: list[dict[str, Any]]) -> list[AlertSubscribe]:
    return [AlertSubscribe.from_row(row) for row in rows]


def alert_subscribe_gets(db: Database, group_id: int) -> list[AlertSubscribe]:
    return _subscribes(
        db.query("SELECT * FROM alert_subscribe WHERE group_id = ? ORDER BY id DESC", group_id)
    )


def alert_subscribe_get(db: Database, where: str, *args: Any) -> AlertSubscribe | None:
    rows = db.query(f"SELECT * FROM alert_subscribe WHERE {where}", *args)
    return AlertSubscribe.from_row(rows[0]) if rows else None


def alert_subscribe_del(db: Database, ids: list[int]) -> None:
    if not ids:
        return
    db.delete("alert_subscribe", "id in ?", list(ids))


def alert_subscribe_statistics(db: Database, cluster: str = "") -> Statistics:
    if cluster:
        return db.statistics("alert_subscribe", "update_at", "cluster = ?", cluster)
    return db.statistics("alert_subscribe", "update_at")


def alert_subscribe_gets_by_cluster(db: Database, cluster: str = "") -> list[AlertSubscribe]:
    if cluster:
        return _subscribes(db.query("SELECT * FROM alert_subscribe WHERE cluster = ?", cluster))
    return _subscribes(db.query("SELECT * FROM alert_subscribe"))