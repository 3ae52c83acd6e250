from __future__ import annotations

import pytest

from mfrec import IdMap


def test_add_assigns_indices_in_first_seen_order() -> None:
    m = IdMap()
    assert m.add("b") == 0
    assert m.add("a") == 1
    assert m.add("b") == 0
    assert m.add(3) == 2
    assert m.size() == 3
    assert len(m) == 3
    assert m.ids() == ("b", "a", 3)


def test_lookup_inverts_add() -> None:
    m = IdMap()
    ids = ["x", ("tuple", 1), 42, None, "x", 42]
    for id_ in ids:
        assert m.lookup(m.add(id_)) == id_
    assert m.ids() == ("x", ("tuple", 1), 42, None)


def test_get_does_not_insert() -> None:
    m = IdMap()
    m.add("a")
    assert m.get("a") == 0
    assert m.get("missing") is None
    assert "missing" not in m
    assert "a" in m
    assert m.size() == 1


def test_lookup_out_of_range() -> None:
    m = IdMap()
    m.add("a")
    with pytest.raises(IndexError):
        m.lookup(1)
    with pytest.raises(IndexError):
        m.lookup(-1)
