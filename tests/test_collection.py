import pytest

from nanodesign.collection import SharedMap


def test_shared_map_is_sorted_and_read_only():
    shared = SharedMap({3: "c", 1: "a", 2: "b"})
    assert list(shared) == [1, 2, 3]
    assert shared.next_id == 4
    with pytest.raises(TypeError):
        shared[4] = "d"


def test_next_id_never_goes_back():
    shared = SharedMap({0: "a"}, next_id=10)
    assert shared.next_id == 10
    commits = []
    with shared.mutate(commits.append) as items:
        assert items.push("b") == 10
        del items[10]
    assert commits[0].next_id == 11
    assert 10 not in commits[0]


def test_mutator_commits_a_new_map():
    shared = SharedMap({0: "a"})
    commits = []
    with shared.mutate(commits.append) as items:
        items[5] = "f"
        assert items.push("g") == 6
    (result,) = commits
    assert result is not shared
    assert dict(result) == {0: "a", 5: "f", 6: "g"}
    assert dict(shared) == {0: "a"}


def test_mutator_drops_changes_on_error():
    shared = SharedMap({0: "a"})
    commits = []
    with pytest.raises(RuntimeError):
        with shared.mutate(commits.append) as items:
            items[1] = "b"
            raise RuntimeError("boom")
    assert commits == []
    assert dict(shared) == {0: "a"}


def test_equality():
    assert SharedMap({1: "a"}) == SharedMap({1: "a"})
    assert SharedMap({1: "a"}) == {1: "a"}
    assert SharedMap({1: "a"}) != SharedMap({1: "b"})


def test_custom_sort_key():
    shared = SharedMap({"b": 1, "a": 2}, sort_key=lambda key: -ord(key))
    assert list(shared) == ["b", "a"]
    assert shared.next_id == 0
