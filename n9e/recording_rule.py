"""Recording rules: PromQL expressions recorded into new time series."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import Any

from n9e.db import Database, ModelError, Statistics

DEFAULT_EVAL_INTERVAL = 60

METRIC_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")
LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

_COLUMNS = (
    "group_id",
    "cluster",
    "name",
    "note",
    "disabled",
    "prom_ql",
    "prom_eval_interval",
    "append_tags",
    "create_at",
    "create_by",
    "update_at",
    "update_by",
)


@dataclass
class RecordingRule:
    """A rule whose query result is stored under a new metric name."""

    id: int = 0
    group_id: int = 0
    cluster: str = ""
    name: str = ""
    note: str = ""
    disabled: int = 0
    prom_ql: str = ""
    prom_eval_interval: int = 0
    append_tags: str = ""
    append_tags_json: list[str] = field(default_factory=list)
    create_at: int = 0
    create_by: str = ""
    update_at: int = 0
    update_by: str = ""

    @classmethod
    def from_row(cls, row: Any) -> "RecordingRule":
        return cls(id=row["id"], **{column: row[column] for column in _COLUMNS})

    def _values(self) -> dict[str, Any]:
        return {column: getattr(self, column) for column in _COLUMNS}

    def fe2db(self) -> None:
        self.append_tags = " ".join(self.append_tags_json)

    def db2fe(self) -> None:
        self.append_tags_json = self.append_tags.split()

    def verify(self) -> None:
        if self.group_id < 0:
            raise ModelError(f"GroupId({self.group_id}) invalid")
        if not self.cluster:
            raise ModelError("cluster is blank")
        if not METRIC_NAME_RE.match(self.name):
            raise ModelError("Name has invalid chreacters")
        if not self.name:
            raise ModelError("name is blank")
        if self.prom_eval_interval <= 0:
            self.prom_eval_interval = DEFAULT_EVAL_INTERVAL

        self.append_tags = self.append_tags.strip()
        for tag in self.append_tags.split():
            pair = tag.split("=")
            if len(pair) != 2 or not LABEL_NAME_RE.match(pair[0]):
                raise ModelError(f"AppendTags({tag}) invalid")

    def add(self, db: Database) -> None:
        self.verify()
        if recording_rule_exists(
            db, "group_id = ? and cluster = ? and name = ?", self.group_id, self.cluster, self.name
        ):
            raise ModelError("RecordingRule already exists")
        now = int(time.time())
        self.create_at = now
        self.update_at = now
        self.id = db.insert("recording_rule", self._values())

    def update(self, db: Database, ref: "RecordingRule") -> None:
        """Replace this rule's stored columns with those of ``ref``."""
        if self.name != ref.name and recording_rule_exists(
            db,
            "group_id = ? and cluster = ? and name = ? and id <> ?",
            self.group_id,
            self.cluster,
            ref.name,
            self.id,
        ):
            raise ModelError("RecordingRule already exists")

        ref.fe2db()
        ref.id = self.id
        ref.group_id = self.group_id
        ref.create_at = self.create_at
        ref.create_by = self.create_by
        ref.update_at = int(time.time())
        ref.verify()
        db.update("recording_rule", ref._values(), "id = ?", self.id)

    def update_fields_map(self, db: Database, fields: dict[str, Any]) -> None:
        db.update("recording_rule", dict(fields), "id = ?", self.id)
        for column, value in fields.items():
            if column in _COLUMNS:
                setattr(self, column, value)


def _rules(rows: list[Any]) -> list[RecordingRule]:
    rules = [RecordingRule.from_row(row) for row in rows]
    for rule in rules:
        rule.db2fe()
    return rules


def recording_rule_dels(db: Database, ids: list[int], group_id: int) -> None:
    for rule_id in ids:
        db.delete("recording_rule", "id = ? and group_id = ?", rule_id, group_id)


def recording_rule_exists(db: Database, where: str, *args: Any) -> bool:
    return db.exists(f"SELECT 1 FROM recording_rule WHERE {where}", *args)


def recording_rule_gets(db: Database, group_id: int) -> list[RecordingRule]:
    return _rules(
        db.query("SELECT * FROM recording_rule WHERE group_id = ? ORDER BY name", group_id)
    )


def recording_rule_get(db: Database, where: str, *args: Any) -> RecordingRule | None:
    rules = _rules(db.query(f"SELECT * FROM recording_rule WHERE {where}", *args))
    return rules[0] if rules else None


def recording_rule_get_by_id(db: Database, rule_id: int) -> RecordingRule | None:
    return recording_rule_get(db, "id = ?", rule_id)


def recording_rule_gets_by_cluster(db: Database, cluster: str = "") -> list[RecordingRule]:
    if cluster:
        return _rules(db.query("SELECT * FROM recording_rule WHERE cluster = ?", cluster))
    return _rules(db.query("SELECT * FROM recording_rule"))


def recording_rule_statistics(db: Database, cluster: str = "") -> Statistics:
    if cluster:
        return db.statistics("recording_rule", "update_at", "cluster = ?", cluster)
    return db.statistics("recording_rule", "update_at")