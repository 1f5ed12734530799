import pytest

from n9e.busi_group import (
    busi_group_add,
    busi_group_exists,
    busi_group_get,
    busi_group_get_by_id,
    busi_group_get_map,
    busi_group_statistics,
)
from n9e.busi_group_member import (
    BusiGroupMember,
    busi_group_member_count,
    user_group_ids_of_busi_group,
)
from n9e.db import Database, ModelError
from n9e.user_group import UserGroup


@pytest.fixture
def db():
    with Database() as database:
        yield database


def _team(db, name):
    ug = UserGroup(name=name)
    ug.add(db)
    return ug


def _bg(db, name, teams, label_enable=0, label_value=""):
    members = [BusiGroupMember(user_group_id=t.id, perm_flag="rw") for t in teams]
    gid = busi_group_add(db, name, label_enable, label_value, members, "root")
    return busi_group_get_by_id(db, gid)


def test_add_and_fill_user_groups(db):
    team = _team(db, "ops")
    bg = _bg(db, "payments", [team])
    assert bg.name == "payments"
    assert bg.create_by == "root"
    bg.fill_user_groups(db)
    assert [(g.user_group.id, g.perm_flag) for g in bg.user_groups] == [(team.id, "rw")]


def test_add_duplicate_name(db):
    team = _team(db, "ops")
    _bg(db, "payments", [team])
    with pytest.raises(ModelError, match="BusiGroup already exists"):
        _bg(db, "payments", [team])


def test_add_unknown_user_group(db):
    with pytest.raises(ModelError, match="Some UserGroup id not exists"):
        busi_group_add(db, "x", 0, "", [BusiGroupMember(user_group_id=77)], "root")
    assert not busi_group_exists(db, "name = ?", "x")


def test_label_value_cleared_when_disabled(db):
    team = _team(db, "ops")
    bg = _bg(db, "a", [team], label_enable=0, label_value="ignored")
    assert bg.label_value == ""


def test_label_value_conflict(db):
    team = _team(db, "ops")
    _bg(db, "a", [team], label_enable=1, label_value="pay")
    with pytest.raises(ModelError):
        _bg(db, "b", [team], label_enable=1, label_value="pay")


def test_update_and_conflict(db):
    team = _team(db, "ops")
    a = _bg(db, "a", [team])
    _bg(db, "b", [team])
    with pytest.raises(ModelError, match="BusiGroup already exists"):
        a.update(db, "b", 0, "", "root")
    a.update(db, "renamed", 1, "lbl", "alice")
    got = busi_group_get(db, "name = ?", "renamed")
    assert got.id == a.id
    assert got.label_value == "lbl"
    assert got.update_by == "alice"


def test_members_add_and_last_team_protected(db):
    t1 = _team(db, "ops")
    t2 = _team(db, "dev")
    bg = _bg(db, "a", [t1])
    bg.add_members(db, [BusiGroupMember(bg.id, t2.id, "ro")], "alice")
    assert sorted(user_group_ids_of_busi_group(db, bg.id)) == sorted([t1.id, t2.id])
    bg.del_members(db, [BusiGroupMember(bg.id, t2.id, "ro")], "alice")
    assert user_group_ids_of_busi_group(db, bg.id) == [t1.id]
    with pytest.raises(ModelError, match="retain at least one team"):
        bg.del_members(db, [BusiGroupMember(bg.id, t1.id, "rw")], "alice")
    assert busi_group_get_by_id(db, bg.id).update_by == "alice"


def test_delete_blocked_by_target(db):
    bg = _bg(db, "a", [_team(db, "ops")])
    db.insert("target", {"ident": "host-a", "group_id": bg.id})
    with pytest.raises(ModelError, match="Some targets still in the BusiGroup"):
        bg.delete(db)
    assert busi_group_get_by_id(db, bg.id) is not None


def test_delete_removes_members_and_events(db):
    bg = _bg(db, "a", [_team(db, "ops")])
    db.insert("alert_cur_event", {"group_id": bg.id})
    bg.delete(db)
    assert busi_group_get_by_id(db, bg.id) is None
    assert busi_group_member_count(db, "busi_group_id = ?", bg.id) == 0
    assert not db.exists("SELECT 1 FROM alert_cur_event WHERE group_id = ?", bg.id)


def test_map_and_statistics(db):
    team = _team(db, "ops")
    groups = [_bg(db, "a", [team]), _bg(db, "b", [team])]
    mapping = busi_group_get_map(db)
    assert sorted(mapping) == sorted(g.id for g in groups)
    assert mapping[groups[0].id].name == "a"
    assert busi_group_statistics(db).total == len(groups)