from GuildPackBot.pack.graph import DependencyGraph


def test_satisfy_unblocks_once_all_names_are_available() -> None:
    graph = DependencyGraph()
    graph.add_wait("c", ["a", "b"])

    assert graph.satisfy("a") == []
    assert graph.waiting_on("c") == ["b"]
    assert graph.satisfy("b") == ["c"]
    assert "c" not in graph
    assert graph.dependencies == {}


def test_indexes_stay_symmetric() -> None:
    graph = DependencyGraph()
    graph.add_wait("c", ["a", "a", "b"])
    graph.add_wait("d", ["a"])

    assert graph.waiting_on("c") == ["a", "b"]
    assert graph.dependencies["a"] == ["c", "d"]

    graph.discard("c")
    assert graph.dependencies["a"] == ["d"]
    assert "b" not in graph.dependencies
    assert len(graph) == 1


def test_find_cycle() -> None:
    graph = DependencyGraph()
    graph.add_wait("a", ["b"])
    graph.add_wait("b", ["c"])
    assert graph.find_cycle("a") is None

    graph.add_wait("c", ["a"])
    assert graph.find_cycle("a") == ["a", "b", "c", "a"]


def test_waiting_on_unknown_name_is_no_cycle() -> None:
    graph = DependencyGraph()
    graph.add_wait("a", ["missing"])
    assert graph.find_cycle("a") is None
