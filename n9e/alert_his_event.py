"""Historical alert events: every firing and recovery that was recorded."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from n9e.db import Database
from n9e.user_group import UserGroup, user_group_get_by_id

_COLUMNS = (
    "is_recovered",
    "cluster",
    "group_id",
    "group_name",
    "hash",
    "rule_id",
    "rule_name",
    "rule_note",
    "rule_prod",
    "rule_algo",
    "severity",
    "prom_for_duration",
    "prom_ql",
    "prom_eval_interval",
    "callbacks",
    "runbook_url",
    "notify_recovered",
    "notify_channels",
    "notify_groups",
    "target_ident",
    "target_note",
    "trigger_time",
    "trigger_value",
    "recover_time",
    "last_eval_time",
    "tags",
    "notify_cur_number",
)

_INT_RE = re.compile(r"[+-]?\d+")


def _parse_int(text: str) -> int | None:
    if _INT_RE.fullmatch(text) and -(2**63) <= int(text) < 2**63:
        return int(text)
    return None


@dataclass
class AlertHisEvent:
    """One recorded alert event."""

    id: int = 0
    is_recovered: int = 0
    cluster: str = ""
    group_id: int = 0
    group_name: str = ""
    hash: str = ""
    rule_id: int = 0
    rule_name: str = ""
    rule_note: str = ""
    rule_prod: str = ""
    rule_algo: str = ""
    severity: int = 0
    prom_for_duration: int = 0
    prom_ql: str = ""
    prom_eval_interval: int = 0
    callbacks: str = ""
    callbacks_json: list[str] = field(default_factory=list)
    runbook_url: str = ""
    notify_recovered: int = 0
    notify_channels: str = ""
    notify_channels_json: list[str] = field(default_factory=list)
    notify_groups: str = ""
    notify_groups_json: list[str] = field(default_factory=list)
    notify_groups_obj: list[UserGroup] = field(default_factory=list, compare=False)
    target_ident: str = ""
    target_note: str = ""
    trigger_time: int = 0
    trigger_value: str = ""
    recover_time: int = 0
    last_eval_time: int = 0
    tags: str = ""
    tags_json: list[str] = field(default_factory=list)
    notify_cur_number: int = 0

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "AlertHisEvent":
        return cls(id=row["id"], **{column: row[column] for column in _COLUMNS})

    def add(self, db: Database) -> None:
        self.id = db.insert(
            "alert_his_event", {column: getattr(self, column) for column in _COLUMNS}
        )

    def db2fe(self) -> None:
        """Unpack the stored text fields into lists."""
        self.notify_channels_json = self.notify_channels.split()
        self.notify_groups_json = self.notify_groups.split()
        self.callbacks_json = self.callbacks.split()
        self.tags_json = self.tags.split(",,")

    def fill_notify_groups(self, db: Database, cache: dict[int, UserGroup]) -> None:
        """Resolve notify group ids; ids that are not numbers or are gone are skipped."""
        if not self.notify_groups_json:
            self.notify_groups_obj = []
            return
        for gid_text in self.notify_groups_json:
            gid = _parse_int(gid_text)
            if gid is None:
                continue
            if gid in cache:
                self.notify_groups_obj.append(cache[gid])
                continue
            group = user_group_get_by_id(db, gid)
            if group is not None:
                self.notify_groups_obj.append(group)
                cache[gid] = group


def _where(
    prod: str,
    bgid: int,
    stime: int,
    etime: int,
    severity: int,
    recovered: int,
    clusters: list[str],
    query: str,
) -> tuple[str, list[Any]]:
    clauses = ["last_eval_time between ? and ? and rule_prod = ?"]
    args: list[Any] = [stime, etime, prod]
    if bgid > 0:
        clauses.append("group_id = ?")
        args.append(bgid)
    if severity >= 0:
        clauses.append("severity = ?")
        args.append(severity)
    if recovered >= 0:
        clauses.append("is_recovered = ?")
        args.append(recovered)
    if clusters:
        clauses.append("cluster in ?")
        args.append(list(clusters))
    for word in query.split():
        like = f"%{word}%"
        clauses.append("rule_name like ? or tags like ?")
        args += [like, like]
    return " AND ".join(f"({clause})" for clause in clauses), args


def alert_his_event_total(
    db: Database,
    prod: str,
    bgid: int,
    stime: int,
    etime: int,
    severity: int,
    recovered: int,
    clusters: list[str],
    query: str,
) -> int:
    where, args = _where(prod, bgid, stime, etime, severity, recovered, clusters, query)
    return db.count(f"SELECT 1 FROM alert_his_event WHERE {where}", *args)


def alert_his_event_gets(
    db: Database,
    prod: str,
    bgid: int,
    stime: int,
    etime: int,
    severity: int,
    recovered: int,
    clusters: list[str],
    query: str,
    limit: int,
    offset: int,
) -> list[AlertHisEvent]:
    where, args = _where(prod, bgid, stime, etime, severity, recovered, clusters, query)
    rows = db.query(
        f"SELECT * FROM alert_his_event WHERE {where} ORDER BY id DESC LIMIT ? OFFSET ?",
        *args,
        limit,
        offset,
    )
    events = [AlertHisEvent.from_row(row) for row in rows]
    for event in events:
        event.db2fe()
    return events


def alert_his_event_get(db: Database, where: str, *args: Any) -> AlertHisEvent | None:
    rows = db.query(f"SELECT * FROM alert_his_event WHERE {where}", *args)
    if not rows:
        return None
    event = AlertHisEvent.from_row(rows[0])
    event.db2fe()
    event.fill_notify_groups(db, {})
    return event


def alert_his_event_get_by_id(db: Database, event_id: int) -> AlertHisEvent | None:
    return alert_his_event_get(db, "id = ?", event_id)