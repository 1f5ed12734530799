"""Alert rules: what to evaluate, how often, and whom to notify."""

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass, field
from typing import Any, Iterable

from n9e.db import Database, ModelError, Statistics
from n9e.textutil import dangerous
from n9e.user_group import UserGroup, user_group_get_by_id

DEFAULT_EVAL_INTERVAL = 15

_COLUMNS = (
    "group_id",
    "cluster",
    "name",
    "note",
    "prod",
    "algorithm",
    "algo_params",
    "delay",
    "severity",
    "disabled",
    "prom_for_duration",
    "prom_ql",
    "prom_eval_interval",
    "enable_stime",
    "enable_etime",
    "enable_days_of_week",
    "enable_in_bg",
    "notify_recovered",
    "notify_channels",
    "notify_groups",
    "notify_repeat_step",
    "notify_max_number",
    "recover_duration",
    "callbacks",
    "runbook_url",
    "append_tags",
    "create_at",
    "create_by",
    "update_at",
    "update_by",
)

_INT_RE = re.compile(r"[+-]?\d+")


def _is_int(text: str) -> bool:
    return bool(_INT_RE.fullmatch(text)) and -(2**63) <= int(text) < 2**63


def _to_int(text: str) -> int:
    return int(text) if _is_int(text) else 0


@dataclass
class AlertRule:
    """A PromQL rule whose results raise alerts."""

    id: int = 0
    group_id: int = 0
    cluster: str = ""
    name: str = ""
    note: str = ""
    prod: str = ""
    algorithm: str = ""
    algo_params: str = ""
    algo_params_json: Any = None
    delay: int = 0
    severity: int = 0
    disabled: int = 0
    prom_for_duration: int = 0
    prom_ql: str = ""
    prom_eval_interval: int = 0
    enable_stime: str = ""
    enable_etime: str = ""
    enable_days_of_week: str = ""
    enable_days_of_week_json: list[str] = field(default_factory=list)
    enable_in_bg: int = 0
    notify_recovered: int = 0
    notify_channels: str = ""
    notify_channels_json: list[str] = field(default_factory=list)
    notify_groups: str = ""
    notify_groups_obj: list[UserGroup] = field(default_factory=list, compare=False)
    notify_groups_json: list[str] = field(default_factory=list)
    notify_repeat_step: int = 0
    notify_max_number: int = 0
    recover_duration: int = 0
    callbacks: str = ""
    callbacks_json: list[str] = field(default_factory=list)
    runbook_url: str = ""
    append_tags: str = ""
    append_tags_json: list[str] = field(default_factory=list)
    create_at: int = 0
    create_by: str = ""
    update_at: int = 0
    update_by: str = ""

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "AlertRule":
        return cls(id=row["id"], **{column: row[column] for column in _COLUMNS})

    def _values(self) -> dict[str, Any]:
        return {column: getattr(self, column) for column in _COLUMNS}

    def verify(self, notify_channels: Iterable[str] = ()) -> None:
        """Check the rule; keep only notify channels found in ``notify_channels``."""
        if self.group_id < 0:
            raise ModelError(f"GroupId({self.group_id}) invalid")
        if not self.cluster:
            raise ModelError("cluster is blank")
        if dangerous(self.name):
            raise ModelError("Name has invalid characters")
        if not self.name:
            raise ModelError("name is blank")
        if not self.prom_ql:
            raise ModelError("prom_ql is blank")
        if self.prom_eval_interval <= 0:
            self.prom_eval_interval = DEFAULT_EVAL_INTERVAL

        self.append_tags = self.append_tags.strip()
        for tag in self.append_tags.split():
            if tag.count("=") != 1:
                raise ModelError(f"AppendTags({tag}) invalid")

        for gid in self.notify_groups.split():
            if not _is_int(gid):
                raise ModelError(f"NotifyGroups({self.notify_groups}) invalid")

        allowed = set(notify_channels)
        self.notify_channels = " ".join(
            channel for channel in self.notify_channels.split() if channel in allowed
        )

    def add(self, db: Database, notify_channels: Iterable[str] = ()) -> None:
        self.verify(notify_channels)
        if alert_rule_exists(
            db, "group_id = ? and cluster = ? and name = ?", self.group_id, self.cluster, self.name
        ):
            raise ModelError("AlertRule already exists")
        now = int(time.time())
        self.create_at = now
        self.update_at = now
        self.id = db.insert("alert_rule", self._values())

    def update(self, db: Database, arf: "AlertRule", notify_channels: Iterable[str] = ()) -> None:
        """Replace this rule's stored columns with those of ``arf``."""
        if self.name != arf.name and alert_rule_exists(
            db,
            "group_id = ? and cluster = ? and name = ? and id <> ?",
            self.group_id,
            self.cluster,
            arf.name,
            self.id,
        ):
            raise ModelError("AlertRule already exists")

        arf.fe2db()
        arf.id = self.id
        arf.group_id = self.group_id
        arf.create_at = self.create_at
        arf.create_by = self.create_by
        arf.update_at = int(time.time())
        arf.verify(notify_channels)
        db.update("alert_rule", arf._values(), "id = ?", self.id)

    def update_fields_map(self, db: Database, fields: dict[str, Any]) -> None:
        db.update("alert_rule", dict(fields), "id = ?", self.id)
        for column, value in fields.items():
            if column in _COLUMNS:
                setattr(self, column, value)

    def fill_notify_groups(self, db: Database, cache: dict[int, UserGroup]) -> None:
        """Resolve notify groups; drop ids of groups that no longer exist."""
        if not self.notify_groups_json:
            self.notify_groups_obj = []
            return

        kept: list[str] = []
        removed = False
        for gid_text in self.notify_groups_json:
            gid = _to_int(gid_text)
            if gid in cache:
                kept.append(gid_text)
                self.notify_groups_obj.append(cache[gid])
                continue
            group = user_group_get_by_id(db, gid)
            if group is None:
                removed = True
            else:
                kept.append(gid_text)
                self.notify_groups_obj.append(group)
                cache[gid] = group

        if removed:
            self.notify_groups_json = kept
            self.notify_groups = " ".join(kept)
            db.update("alert_rule", {"notify_groups": self.notify_groups}, "id = ?", self.id)

    def fe2db(self) -> None:
        """Pack the list fields into their stored text form."""
        self.enable_days_of_week = " ".join(self.enable_days_of_week_json)
        self.notify_channels = " ".join(self.notify_channels_json)
        self.notify_groups = " ".join(self.notify_groups_json)
        self.callbacks = " ".join(self.callbacks_json)
        self.append_tags = " ".join(self.append_tags_json)
        try:
            self.algo_params = json.dumps(
                self.algo_params_json, separators=(",", ":"), ensure_ascii=False
            )
        except (TypeError, ValueError) as err:
            raise ModelError(f"marshal algo_params err:{err}") from err

    def db2fe(self) -> None:
        """Unpack the stored text fields into lists."""
        self.enable_days_of_week_json = self.enable_days_of_week.split()
        self.notify_channels_json = self.notify_channels.split()
        self.notify_groups_json = self.notify_groups.split()
        self.callbacks_json = self.callbacks.split()
        self.append_tags_json = self.append_tags.split()
        try:
            self.algo_params_json = json.loads(self.algo_params)
        except ValueError:
            pass


def _rules(rows: list[dict[str, Any]]) -> list[AlertRule]:
    rules = [AlertRule.from_row(row) for row in rows]
    for rule in rules:
        rule.db2fe()
    return rules


def alert_rule_dels(db: Database, ids: list[int], bgid: int | None = None) -> None:
    """Delete rules, and the active alerts of every rule actually removed."""
    for rule_id in ids:
        if bgid is None:
            removed = db.delete("alert_rule", "id = ?", rule_id)
        else:
            removed = db.delete("alert_rule", "id = ? and group_id = ?", rule_id, bgid)
        if removed > 0:
            db.delete("alert_cur_event", "rule_id = ?", rule_id)


def alert_rule_exists(db: Database, where: str, *args: Any) -> bool:
    return db.exists(f"SELECT 1 FROM alert_rule WHERE {where}", *args)


def alert_rule_gets(db: Database, group_id: int) -> list[AlertRule]:
    return _rules(db.query("SELECT * FROM alert_rule WHERE group_id = ? ORDER BY name", group_id))


def alert_rule_gets_by_cluster(db: Database, cluster: str = "") -> list[AlertRule]:
    sql = "SELECT * FROM alert_rule WHERE disabled = ? and prod = ?"
    args: list[Any] = [0, ""]
    if cluster:
        sql += " AND cluster = ?"
        args.append(cluster)
    return _rules(db.query(sql, *args))


def alert_rules_gets_by(db: Database, prods: list[str], query: str = "") -> list[AlertRule]:
    sql = "SELECT * FROM alert_rule WHERE disabled = ? and prod in ?"
    args: list[Any] = [0, list(prods)]
    for word in query.split():
        sql += " AND append_tags like ?"
        args.append(f"%{word}%")
    return _rules(db.query(sql, *args))


def alert_rule_get(db: Database, where: str, *args: Any) -> AlertRule | None:
    rules = _rules(db.query(f"SELECT * FROM alert_rule WHERE {where}", *args))
    return rules[0] if rules else None


def alert_rule_get_by_id(db: Database, rule_id: int) -> AlertRule | None:
    return alert_rule_get(db, "id = ?", rule_id)


def alert_rule_get_name(db: Database, rule_id: int) -> str:
    rows = db.query("SELECT name FROM alert_rule WHERE id = ?", rule_id)
    return rows[0]["name"] if rows else ""


def alert_rule_statistics(db: Database, cluster: str = "") -> Statistics:
    where = "disabled = ? and prod = ?"
    args: list[Any] = [0, ""]
    if cluster:
        where += " and cluster = ?"
        args.append(cluster)
    return db.statistics("alert_rule", "update_at", where, *args)