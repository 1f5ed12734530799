"""Active alert events: alerts that are firing right now."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from n9e.alert_his_event import AlertHisEvent
from n9e.db import Database
from n9e.user_group import UserGroup, user_group_get_by_id

_COLUMNS = (
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
    "tags",
    "notify_cur_number",
)

NULL_TITLE = "Null"

_INT_RE = re.compile(r"[+-]?\d+")


def _parse_int(text: str) -> int | None:
    if _INT_RE.fullmatch(text) and -(2**63) <= int(text) < 2**63:
        return int(text)
    return None


@dataclass
class AggrRule:
    """One part of an aggregation rule: a ``field`` or a ``tagkey`` and its name."""

    type: str = ""
    value: str = ""


@dataclass
class AlertCurEvent:
    """An alert that is currently firing."""

    id: int = 0
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
    tags: str = ""
    tags_json: list[str] = field(default_factory=list)
    tags_map: dict[str, str] = field(default_factory=dict)
    is_recovered: bool = False
    last_eval_time: int = 0
    last_sent_time: int = 0
    notify_cur_number: int = 0

    @classmethod
    def from_row(cls, row: Any) -> "AlertCurEvent":
        return cls(id=row["id"], **{column: row[column] for column in _COLUMNS})

    def add(self, db: Database) -> None:
        self.id = db.insert(
            "alert_cur_event", {column: getattr(self, column) for column in _COLUMNS}
        )

    def gen_card_title(self, rules: list[AggrRule]) -> str:
        """Join the values the rules select with ``::``; missing ones read ``Null``."""
        parts = []
        for rule in rules:
            value = ""
            if rule.type == "field":
                value = self.get_field(rule.value)
            elif rule.type == "tagkey":
                value = self.get_tag_value(rule.value)
            parts.append(value or NULL_TITLE)
        return "::".join(parts)

    def get_tag_value(self, tagkey: str) -> str:
        prefix = f"{tagkey}="
        for tag in self.tags_json:
            if prefix in tag:
                return tag[len(prefix):]
        return ""

    def get_field(self, field: str) -> str:
        fields = {
            "cluster": self.cluster,
            "group_id": str(self.group_id),
            "group_name": self.group_name,
            "rule_id": str(self.rule_id),
            "rule_name": self.rule_name,
            "severity": str(self.severity),
            "runbook_url": self.runbook_url,
            "target_ident": self.target_ident,
            "target_note": self.target_note,
        }
        return fields.get(field, "")

    def to_his(self) -> AlertHisEvent:
        """The history record of this event."""
        return AlertHisEvent(
            is_recovered=1 if self.is_recovered else 0,
            cluster=self.cluster,
            group_id=self.group_id,
            group_name=self.group_name,
            hash=self.hash,
            rule_id=self.rule_id,
            rule_name=self.rule_name,
            rule_prod=self.rule_prod,
            rule_algo=self.rule_algo,
            rule_note=self.rule_note,
            severity=self.severity,
            prom_for_duration=self.prom_for_duration,
            prom_ql=self.prom_ql,
            prom_eval_interval=self.prom_eval_interval,
            callbacks=self.callbacks,
            runbook_url=self.runbook_url,
            notify_recovered=self.notify_recovered,
            notify_channels=self.notify_channels,
            notify_groups=self.notify_groups,
            target_ident=self.target_ident,
            target_note=self.target_note,
            trigger_time=self.trigger_time,
            trigger_value=self.trigger_value,
            tags=self.tags,
            recover_time=self.last_eval_time if self.is_recovered else 0,
            last_eval_time=self.last_eval_time,
            notify_cur_number=self.notify_cur_number,
        )

    def db2fe(self) -> None:
        """Unpack the stored text fields into lists."""
        self.notify_channels_json = self.notify_channels.split()
        self.notify_groups_json = self.notify_groups.split()
        self.callbacks_json = self.callbacks.split()
        self.tags_json = self.tags.split(",,")

    def db2mem(self) -> None:
        """Unpack the stored fields for evaluation, including the tag map."""
        self.is_recovered = False
        self.db2fe()
        self.tags_map = {}
        for tag in self.tags_json:
            pair = tag.strip()
            if not pair:
                continue
            parts = pair.split("=")
            if len(parts) != 2:
                continue
            self.tags_map[parts[0]] = parts[1]

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


def _events(rows: list[Any], unpack: bool = False) -> list[AlertCurEvent]:
    events = [AlertCurEvent.from_row(row) for row in rows]
    if unpack:
        for event in events:
            event.db2fe()
    return events


def _where(
    prod: str,
    bgid: int,
    stime: int,
    etime: int,
    severity: int,
    clusters: list[str],
    query: str,
) -> tuple[str, list[Any]]:
    clauses = ["trigger_time between ? and ? and rule_prod = ?"]
    args: list[Any] = [stime, etime, prod]
    if bgid > 0:
        clauses.append("group_id = ?")
        args.append(bgid)
    if severity >= 0:
        clauses.append("severity = ?")
        args.append(severity)
    if clusters:
        clauses.append("cluster in ?")
        args.append(list(clusters))
    for word in query.split():
        like = f"%{word}%"
        clauses.append("rule_name like ? or tags like ?")
        args += [like, like]
    return " AND ".join(f"({clause})" for clause in clauses), args


def alert_cur_event_total(
    db: Database,
    prod: str,
    bgid: int,
    stime: int,
    etime: int,
    severity: int,
    clusters: list[str],
    query: str,
) -> int:
    where, args = _where(prod, bgid, stime, etime, severity, clusters, query)
    return db.count(f"SELECT 1 FROM alert_cur_event WHERE {where}", *args)


def alert_cur_event_gets(
    db: Database,
    prod: str,
    bgid: int,
    stime: int,
    etime: int,
    severity: int,
    clusters: list[str],
    query: str,
    limit: int,
    offset: int,
) -> list[AlertCurEvent]:
    where, args = _where(prod, bgid, stime, etime, severity, clusters, query)
    rows = db.query(
        f"SELECT * FROM alert_cur_event WHERE {where} ORDER BY id DESC LIMIT ? OFFSET ?",
        *args,
        limit,
        offset,
    )
    return _events(rows, unpack=True)


def alert_cur_event_del(db: Database, ids: list[int]) -> None:
    if not ids:
        return
    db.delete("alert_cur_event", "id in ?", list(ids))


def alert_cur_event_del_by_hash(db: Database, event_hash: str) -> None:
    db.delete("alert_cur_event", "hash = ?", event_hash)


def alert_cur_event_exists(db: Database, where: str, *args: Any) -> bool:
    return db.exists(f"SELECT 1 FROM alert_cur_event WHERE {where}", *args)


def alert_cur_event_get(db: Database, where: str, *args: Any) -> AlertCurEvent | None:
    rows = db.query(f"SELECT * FROM alert_cur_event WHERE {where}", *args)
    if not rows:
        return None
    event = AlertCurEvent.from_row(rows[0])
    event.db2fe()
    event.fill_notify_groups(db, {})
    return event


def alert_cur_event_get_by_id(db: Database, event_id: int) -> AlertCurEvent | None:
    return alert_cur_event_get(db, "id = ?", event_id)


def alert_numbers(db: Database, bgids: list[int]) -> dict[int, int]:
    """Number of active alerts per business group."""
    if not bgids:
        return {}
    rows = db.query(
        "SELECT group_id, count(*) AS group_count FROM alert_cur_event "
        "WHERE group_id in ? GROUP BY group_id",
        list(bgids),
    )
    return {row["group_id"]: row["group_count"] for row in rows}


def alert_cur_event_get_all(db: Database, cluster: str = "") -> list[AlertCurEvent]:
    if cluster:
        return _events(db.query("SELECT * FROM alert_cur_event WHERE cluster = ?", cluster))
    return _events(db.query("SELECT * FROM alert_cur_event"))


def alert_cur_event_get_by_ids(db: Database, ids: list[int]) -> list[AlertCurEvent]:
    if not ids:
        return []
    rows = db.query("SELECT * FROM alert_cur_event WHERE id in ? ORDER BY id DESC", list(ids))
    return _events(rows, unpack=True)


def alert_cur_event_get_by_rule(db: Database, rule_id: int) -> list[AlertCurEvent]:
    return _events(db.query("SELECT * FROM alert_cur_event WHERE rule_id = ?", rule_id))


def alert_cur_event_get_map(db: Database, cluster: str = "") -> dict[int, set[str]]:
    """Hashes of the active alerts, keyed by rule id."""
    if cluster:
        rows = db.query(
            "SELECT rule_id, hash FROM alert_cur_event WHERE cluster = ?", cluster
        )
    else:
        rows = db.query("SELECT rule_id, hash FROM alert_cur_event")
    result: dict[int, set[str]] = {}
    for row in rows:
        result.setdefault(row["rule_id"], set()).add(row["hash"])
    return result