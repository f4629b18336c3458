from collections import Counter

import pytest

from realmrelay.round_robin import RoundRobin


def test_same_weight_exact_rotation():
    rr = RoundRobin([1] * 255)
    picks = Counter(rr.next() for _ in range(255 * 40))
    assert set(picks) == set(range(255))
    assert all(count == 40 for count in picks.values())


def test_same_weight_tolerance():
    rr = RoundRobin([1] * 255)
    rounds = 20_000
    picks = Counter(rr.next() for _ in range(rounds))
    for token in range(255):
        assert abs(picks[token] / rounds - 1 / 255) < 1e-3


def test_all_weights_proportional():
    weights = list(range(1, 17))
    total_weight = sum(weights)
    rr = RoundRobin(weights)
    picks = Counter(rr.next() for _ in range(total_weight * 10))
    for token, weight in enumerate(weights):
        assert picks[token] == weight * 10


def test_all_weights_tolerance():
    weights = list(range(1, 256))
    total_weight = sum(weights)
    rr = RoundRobin(weights)
    rounds = 5_000
    picks = Counter(rr.next() for _ in range(rounds))
    for token, weight in enumerate(weights):
        assert abs(picks[token] / rounds - weight / total_weight) < 1e-3 * 5


def test_smooth_sequence():
    rr = RoundRobin([5, 1, 1])
    assert [rr.next() for _ in range(7)] == [0, 0, 1, 0, 2, 0, 0]


@pytest.mark.parametrize("weights", [[], [9]])
def test_single_or_no_peer_returns_zero(weights):
    rr = RoundRobin(weights)
    assert rr.total() == len(weights)
    assert [rr.next() for _ in range(3)] == [0, 0, 0]


def test_total():
    assert RoundRobin([1, 2, 3]).total() == 3


def test_too_many_peers():
    with pytest.raises(ValueError):
        RoundRobin([1] * 256)


def test_weight_out_of_range():
    with pytest.raises(ValueError):
        RoundRobin([-1, 2])