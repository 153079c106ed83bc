import random

import pytest

from queueup.errors import AlreadyQueued, NotQueued, QueueFull, RoleFull, UnknownRole
from queueup.queue import admission
from queueup.queue.roles import ROLE_ORDER, Role, normalize_role


def fill(queue, buckets):
    for role, ids in buckets.items():
        for pid in ids:
            admission.join(queue, pid, role)


def test_join_and_leave():
    queue = admission.new_queue("guild-1", 1)

    snapshot = admission.join(queue, "alice", "Mid")
    assert snapshot.buckets["Mid"] == ["alice"]
    assert admission.role_of(queue, "alice") is Role.MID

    snapshot = admission.leave(queue, "alice")
    assert snapshot.buckets["Mid"] == []
    assert admission.role_of(queue, "alice") is None


def test_join_accepts_aliases():
    queue = admission.new_queue("guild-1", 1)
    admission.join(queue, "a", "jg")
    admission.join(queue, "b", "Supp")
    admission.join(queue, "c", "adc")

    assert queue.buckets[Role.JUNGLE] == ["a"]
    assert queue.buckets[Role.SUPPORT] == ["b"]
    assert queue.buckets[Role.ADC] == ["c"]


def test_unknown_role():
    queue = admission.new_queue("guild-1", 1)
    with pytest.raises(UnknownRole):
        admission.join(queue, "a", "Roamer")
    with pytest.raises(UnknownRole):
        normalize_role("")


def test_already_queued_in_other_role():
    queue = admission.new_queue("guild-1", 1)
    admission.join(queue, "alice", "Top")

    with pytest.raises(AlreadyQueued):
        admission.join(queue, "alice", "Mid")
    assert admission.member_ids(queue) == ["alice"]


def test_role_full():
    queue = admission.new_queue("guild-1", 1)
    admission.join(queue, "a", "Top")
    admission.join(queue, "b", "Top")

    with pytest.raises(RoleFull) as exc_info:
        admission.join(queue, "c", "Top")
    assert exc_info.value.role == "Top"
    assert Role.TOP not in admission.open_roles(queue)


def test_leave_when_not_queued():
    queue = admission.new_queue("guild-1", 1)
    with pytest.raises(NotQueued):
        admission.leave(queue, "nobody")


def test_full_queue_rejects_next_join(full_buckets):
    queue = admission.new_queue("guild-1", 1)
    fill(queue, full_buckets)

    assert admission.is_full(queue)
    assert queue.snapshot().is_full
    assert admission.open_roles(queue) == []
    with pytest.raises(QueueFull):
        admission.join(queue, "latecomer", "Mid")


def test_not_full_until_every_bucket_is_full(full_buckets):
    queue = admission.new_queue("guild-1", 1)
    fill(queue, full_buckets)
    admission.leave(queue, full_buckets[Role.SUPPORT][0])

    assert not admission.is_full(queue)
    assert admission.open_roles(queue) == [Role.SUPPORT]


def test_reset():
    queue = admission.new_queue("guild-1", 1)
    admission.join(queue, "a", "Top")
    snapshot = admission.reset(queue)

    assert all(ids == [] for ids in snapshot.buckets.values())


def test_random_joins_and_leaves_keep_invariants():
    rng = random.Random(7)
    queue = admission.new_queue("guild-1", 1)
    players = [f"p{i}" for i in range(14)]

    for _ in range(500):
        pid = rng.choice(players)
        try:
            if rng.random() < 0.6:
                admission.join(queue, pid, rng.choice(ROLE_ORDER))
            else:
                admission.leave(queue, pid)
        except (AlreadyQueued, QueueFull, RoleFull, NotQueued):
            pass

        ids = admission.member_ids(queue)
        assert len(ids) == len(set(ids))
        assert all(len(queue.buckets[role]) <= queue.capacity for role in ROLE_ORDER)
        assert admission.is_full(queue) == (len(ids) == queue.capacity * len(ROLE_ORDER))
