import pytest

from n9e.busi_group_member import (
    BusiGroupMember,
    busi_group_ids,
    busi_group_member_add,
    busi_group_member_count,
    busi_group_member_del,
    busi_group_member_get,
    busi_group_member_gets,
    busi_group_member_gets_by_busi_group_id,
    user_group_ids_of_busi_group,
)
from n9e.db import Database


@pytest.fixture
def db():
    with Database() as database:
        yield database


def test_add_and_get(db):
    member = BusiGroupMember(busi_group_id=1, user_group_id=2, perm_flag="rw")
    busi_group_member_add(db, member)
    assert busi_group_member_get(db, "busi_group_id = ?", 1) == member


def test_add_updates_perm_flag(db):
    busi_group_member_add(db, BusiGroupMember(1, 2, "ro"))
    busi_group_member_add(db, BusiGroupMember(1, 2, "rw"))
    assert busi_group_member_count(db, "busi_group_id = ?", 1) == 1
    assert busi_group_member_get(db, "user_group_id = ?", 2).perm_flag == "rw"


def test_busi_group_ids_with_flag(db):
    busi_group_member_add(db, BusiGroupMember(10, 1, "rw"))
    busi_group_member_add(db, BusiGroupMember(11, 1, "ro"))
    busi_group_member_add(db, BusiGroupMember(12, 2, "rw"))
    assert sorted(busi_group_ids(db, [1, 2])) == [10, 11, 12]
    assert sorted(busi_group_ids(db, [1, 2], "rw")) == [10, 12]
    assert busi_group_ids(db, []) == []


def test_user_group_ids_of_busi_group(db):
    busi_group_member_add(db, BusiGroupMember(10, 1, "rw"))
    busi_group_member_add(db, BusiGroupMember(10, 2, "ro"))
    assert sorted(user_group_ids_of_busi_group(db, 10)) == [1, 2]
    assert user_group_ids_of_busi_group(db, 10, "ro") == [2]


def test_gets_ordered_by_perm_flag(db):
    busi_group_member_add(db, BusiGroupMember(5, 1, "rw"))
    busi_group_member_add(db, BusiGroupMember(5, 2, "ro"))
    flags = [m.perm_flag for m in busi_group_member_gets_by_busi_group_id(db, 5)]
    assert flags == sorted(flags)
    assert busi_group_member_gets(db, "busi_group_id = ?", 6) == []


def test_delete(db):
    busi_group_member_add(db, BusiGroupMember(5, 1, "rw"))
    busi_group_member_del(db, "busi_group_id = ? and user_group_id = ?", 5, 1)
    assert busi_group_member_get(db, "busi_group_id = ?", 5) is None