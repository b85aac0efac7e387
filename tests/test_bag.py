# tests/test_bag.py
"""
Tests for PrimeBag: encoding arithmetic, multiset semantics, and the
interaction with a shared PrimeTable.

Run: pytest -v
"""

from __future__ import annotations

import random
from collections import Counter

import pytest

from primebag.bag import PrimeBag
from primebag.table import PrimeTable
from primebag.utility import factor_encoding

# ---------- helpers -----------------------------------------------------------


def _assert_consistent(bag: PrimeBag, expected: Counter) -> None:
    """Every public view of the bag agrees with a plain Counter."""
    for v in expected:
        assert bag.count(v) == expected[v]
        assert bag.contains(v) == (expected[v] > 0)
    assert bag.size() == len(bag) == sum(expected.values())
    assert Counter(bag.as_list()) == +expected
    assert bag.counts() == dict(+expected)
    assert list(bag) == bag.as_list()
    assert bag.verify()
    table = bag.table
    assert factor_encoding(bag.encoding) == {table.get_prime(v): k for v, k in expected.items() if k}


@pytest.fixture
def table():
    return PrimeTable()


@pytest.fixture
def abc_bag(table):
    """Table with a=2, b=3, c=5 and a bag holding a, a, b (encoding 12)."""
    for v in "abc":
        table.add(v)
    bag = PrimeBag(table)
    bag.add("a")
    bag.add("a")
    bag.add("b")
    return bag


# ---------- basic scenario ----------------------------------------------------


def test_empty_bag(table):
    bag = PrimeBag(table)
    assert bag.encoding == 1
    assert bag.size() == 0
    assert not bag
    assert bag.as_list() == []
    assert bag.count("a") == 0
    assert not bag.contains("a")


def test_scenario_encoding_twelve(abc_bag):
    assert abc_bag.encoding == 12
    assert abc_bag.size() == 3
    assert abc_bag.count("a") == 2
    assert abc_bag.count("b") == 1
    assert abc_bag.count("c") == 0
    assert abc_bag.as_list() == ["a", "a", "b"]


def test_table_removal_leaves_bag_encoding(abc_bag):
    table = abc_bag.table
    assert table.remove("a") == 2
    assert abc_bag.encoding == 12
    assert abc_bag.count("a") == 2
    assert abc_bag.contains("a")
    assert table.add("d") == 2


def test_reassigned_prime_reads_as_new_value(abc_bag):
    table = abc_bag.table
    table.remove("a")
    table.add("d")
    # the table's current owner of 2 wins for reconstruction
    assert abc_bag.as_list() == ["d", "d", "b"]
    assert abc_bag.count("d") == 2


def test_value_whose_prime_was_reassigned_is_absent(abc_bag):
    table = abc_bag.table
    table.remove("a")
    table.add("d")
    assert abc_bag.count("a") == 0
    assert not abc_bag.contains("a")
    assert abc_bag.remove("a") is False
    assert abc_bag.encoding == 12
    _assert_consistent(abc_bag, Counter({"d": 2, "b": 1}))
    assert Counter(abc_bag.as_list())["a"] == abc_bag.count("a")


def test_values_argument_and_insertion_order(table):
    table.add("z")
    bag = PrimeBag(table, ["a", "z", "a"])
    # ordered by the table's assignment, not by insertion
    assert bag.as_list() == ["z", "a", "a"]


def test_values_of_any_hashable_type(table):
    bag = PrimeBag(table, [1, (2, 3), frozenset({4}), None, 1])
    assert bag.count(1) == 2
    assert bag.count((2, 3)) == 1
    assert None in bag
    assert [1] not in bag


# ---------- single-value removal ---------------------------------------------


def test_remove_value(abc_bag):
    assert abc_bag.remove("a")
    assert abc_bag.encoding == 6
    assert abc_bag.count("a") == 1
    assert abc_bag.size() == 2


def test_remove_absent_value_is_noop(abc_bag):
    assert not abc_bag.remove("c")            # assigned, not in bag
    assert not abc_bag.remove("never-seen")   # not assigned at all
    assert abc_bag.encoding == 12
    assert abc_bag.size() == 3


def test_remove_until_empty(abc_bag):
    for v in ("a", "b", "a"):
        assert abc_bag.remove(v)
    assert abc_bag.encoding == 1
    assert abc_bag.size() == 0
    assert not abc_bag.remove("a")


def test_bag_removal_does_not_touch_table(abc_bag):
    abc_bag.remove("b")
    assert abc_bag.table.get_prime("b") == 3
    assert abc_bag.table.recycled_primes() == []


def test_clear(abc_bag):
    table = abc_bag.table
    abc_bag.clear()
    assert abc_bag.encoding == 1
    assert abc_bag.size() == 0
    assert table.get_prime("a") == 2
    assert table.recycled_primes() == []


# ---------- bag / bag operations ---------------------------------------------


def test_sub_multiset_scenario(table):
    bag1 = PrimeBag(table, ["x", "y", "y"])
    bag2 = PrimeBag(table, ["y"])
    before = bag2.encoding

    assert bag1.remove_bag(bag2)
    assert bag1.count("x") == 1
    assert bag1.count("y") == 1
    assert bag1.size() == 2

    assert not bag2.remove_bag(bag1)
    assert bag2.encoding == before
    assert bag2.size() == 1


def test_add_bag_is_union_with_multiplicity(table):
    a = PrimeBag(table, "aab")
    b = PrimeBag(table, "bc")
    assert a.add_bag(b)
    _assert_consistent(a, Counter("aabbc"))
    _assert_consistent(b, Counter("bc"))


def test_add_then_remove_restores(table):
    a = PrimeBag(table, "hello")
    b = PrimeBag(table, "world")
    snapshot = a.copy()
    a.add_bag(b)
    assert a.remove_bag(b)
    assert a == snapshot
    assert a.encoding == snapshot.encoding


def test_add_bag_to_itself(table):
    a = PrimeBag(table, "ab")
    assert a.add_bag(a)
    _assert_consistent(a, Counter("aabb"))


def test_remove_bag_from_itself(table):
    a = PrimeBag(table, "abca")
    assert a.remove_bag(a)
    assert a.encoding == 1
    assert a.size() == 0


def test_remove_bag_not_contained(table):
    a = PrimeBag(table, "aab")
    b = PrimeBag(table, "abb")
    assert not a.remove_bag(b)
    _assert_consistent(a, Counter("aab"))


def test_cross_table_operations_are_noops():
    t1, t2 = PrimeTable(), PrimeTable()
    a = PrimeBag(t1, "ab")
    b = PrimeBag(t2, "a")  # same encoding value (2) but different table
    assert not a.add_bag(b)
    assert not a.remove_bag(b)
    assert not a.includes(b)
    assert a.size() == 2 and a.encoding == 6
    assert b.size() == 1 and b.encoding == 2


def test_includes(table):
    big = PrimeBag(table, "aabbc")
    assert big.includes(PrimeBag(table, "abc"))
    assert big.includes(PrimeBag(table))
    assert not big.includes(PrimeBag(table, "aaa"))


@pytest.mark.parametrize(
    "left,right",
    [
        ("xyy", "y"),
        ("xyy", "yy"),
        ("xyy", "yyy"),
        ("abc", "cba"),
        ("abc", "abcd"),
        ("", ""),
        ("aaaa", ""),
        ("", "a"),
    ],
)
def test_remove_bag_iff_sub_multiset(table, left, right):
    for v in "abcdxy":
        table.add(v)
    a, b = PrimeBag(table, left), PrimeBag(table, right)
    ca, cb = Counter(left), Counter(right)
    expected = all(cb[v] <= ca[v] for v in cb)
    assert a.remove_bag(b) is expected
    _assert_consistent(a, ca - cb if expected else ca)


# ---------- equality / copy / repr -------------------------------------------


def test_equality_and_copy(table):
    a = PrimeBag(table, "abba")
    b = PrimeBag(table, "baab")
    assert a == b
    c = a.copy()
    c.add("z")
    assert a != c
    assert a.size() == 4
    assert a != PrimeBag(PrimeTable(), "abba")


def test_repr_shows_factorisation(abc_bag):
    text = repr(abc_bag)
    assert "2^2 × 3" in text
    assert "'a'×2" in text
    assert "size 3" in text


def test_bags_are_unhashable(table):
    with pytest.raises(TypeError):
        hash(PrimeBag(table))


# ---------- randomised consistency -------------------------------------------


@pytest.mark.parametrize("seed", [1, 7, 42])
def test_random_churn_matches_counter(table, seed, prefetch_mode):
    rng = random.Random(seed)
    pool = [f"v{i}" for i in range(25)]
    bag = PrimeBag(table)
    expected: Counter = Counter()
    for _ in range(400):
        v = rng.choice(pool)
        if rng.random() < 0.6:
            bag.add(v)
            expected[v] += 1
        else:
            ok = bag.remove(v)
            assert ok == (expected[v] > 0)
            if ok:
                expected[v] -= 1
    _assert_consistent(bag, expected)
