import pytest

from n9e.db import Database, ModelError
from n9e.recording_rule import (
    DEFAULT_EVAL_INTERVAL,
    RecordingRule,
    recording_rule_dels,
    recording_rule_exists,
    recording_rule_get,
    recording_rule_get_by_id,
    recording_rule_gets,
    recording_rule_gets_by_cluster,
    recording_rule_statistics,
)

_TABLE = """
CREATE TABLE IF NOT EXISTS recording_rule (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    group_id INTEGER NOT NULL DEFAULT 0,
    cluster TEXT NOT NULL DEFAULT '',
    name TEXT NOT NULL DEFAULT '',
    note TEXT NOT NULL DEFAULT '',
    disabled INTEGER NOT NULL DEFAULT 0,
    prom_ql TEXT NOT NULL DEFAULT '',
    prom_eval_interval INTEGER NOT NULL DEFAULT 0,
    append_tags TEXT NOT NULL DEFAULT '',
    create_at INTEGER NOT NULL DEFAULT 0,
    create_by TEXT NOT NULL DEFAULT '',
    update_at INTEGER NOT NULL DEFAULT 0,
    update_by TEXT NOT NULL DEFAULT ''
)
"""


@pytest.fixture
def db(tmp_path):
    database = Database(str(tmp_path / "rules.db"))
    database.execute(_TABLE)
    yield database
    database.close()


def _rule(**kwargs):
    values = dict(group_id=1, cluster="c1", name="job:up:sum", prom_ql="sum(up)")
    values.update(kwargs)
    return RecordingRule(**values)


def test_verify_sets_default_interval():
    rule = _rule(append_tags="  service=n9e  ")
    rule.verify()
    assert rule.prom_eval_interval == DEFAULT_EVAL_INTERVAL
    assert rule.append_tags == "service=n9e"


@pytest.mark.parametrize("name", ["1abc", "bad-name", ""])
def test_verify_rejects_bad_names(name):
    with pytest.raises(ModelError, match="Name has invalid chreacters"):
        _rule(name=name).verify()


@pytest.mark.parametrize("tags", ["noequals", "a=b=c", "1bad=x"])
def test_verify_rejects_bad_append_tags(tags):
    with pytest.raises(ModelError, match="AppendTags"):
        _rule(append_tags=tags).verify()


def test_verify_rejects_blank_cluster_and_negative_group():
    with pytest.raises(ModelError, match="cluster is blank"):
        _rule(cluster="").verify()
    with pytest.raises(ModelError, match="invalid"):
        _rule(group_id=-1).verify()


def test_fe2db_db2fe_round_trip():
    rule = _rule(append_tags_json=["a=1", "b=2"])
    rule.fe2db()
    assert rule.append_tags == "a=1 b=2"
    rule.append_tags_json = []
    rule.db2fe()
    assert rule.append_tags_json == ["a=1", "b=2"]


def test_add_get_and_duplicate(db):
    rule = _rule(append_tags="mod=api")
    rule.add(db)
    loaded = recording_rule_get_by_id(db, rule.id)
    assert loaded is not None
    assert loaded.name == rule.name
    assert loaded.append_tags_json == ["mod=api"]
    assert loaded.create_at == rule.create_at
    assert recording_rule_exists(db, "name = ?", rule.name)
    with pytest.raises(ModelError, match="already exists"):
        _rule().add(db)
    assert recording_rule_get(db, "name = ?", "other") is None


def test_update_replaces_columns(db):
    rule = _rule()
    rule.add(db)
    other = _rule(name="job:other")
    other.add(db)

    with pytest.raises(ModelError, match="already exists"):
        rule.update(db, _rule(name="job:other"))

    change = RecordingRule(
        cluster="c1", name="job:renamed", prom_ql="sum(rate(x[1m]))", append_tags_json=["k=v"]
    )
    rule.update(db, change)
    loaded = recording_rule_get_by_id(db, rule.id)
    assert loaded.name == "job:renamed"
    assert loaded.group_id == rule.group_id
    assert loaded.append_tags_json == ["k=v"]
    assert loaded.create_at == rule.create_at


def test_update_fields_map(db):
    rule = _rule()
    rule.add(db)
    rule.update_fields_map(db, {"disabled": 1})
    assert rule.disabled == 1
    assert recording_rule_get_by_id(db, rule.id).disabled == 1


def test_gets_dels_and_statistics(db):
    first = _rule(name="b_rule")
    first.add(db)
    second = _rule(name="a_rule", cluster="c2")
    second.add(db)

    assert [r.name for r in recording_rule_gets(db, 1)] == ["a_rule", "b_rule"]
    assert [r.name for r in recording_rule_gets_by_cluster(db, "c2")] == ["a_rule"]
    assert len(recording_rule_gets_by_cluster(db)) == 2
    assert recording_rule_statistics(db).total == 2
    assert recording_rule_statistics(db, "c1").total == 1

    recording_rule_dels(db, [first.id], 99)
    assert recording_rule_get_by_id(db, first.id) is not None
    recording_rule_dels(db, [first.id, second.id], 1)
    assert recording_rule_gets(db, 1) == []