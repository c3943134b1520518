"""
Test GraphExpander
==================

Cap, termination, determinism and partial results.
"""

import asyncio
import itertools

import pytest

from codekg.retrieval.expander import GraphExpander
from codekg.storage.graph.memory import InMemoryGraphStore
from codekg.storage.graph.models import GraphEdge, GraphNode


def _graph(node_count, edges):
    store = InMemoryGraphStore()
    for i in range(node_count):
        store.add_node(GraphNode(f"n{i:02d}", "Method", {"Method"}, {"name": f"fn{i}"}))
    for a, b in edges:
        store.add_edge(GraphEdge(f"n{a:02d}", f"n{b:02d}", "CALLS"))
    return store


def complete_graph(n):
    return _graph(n, list(itertools.combinations(range(n), 2)))


def cycle_graph(n):
    return _graph(n, [(i, (i + 1) % n) for i in range(n)])


class FailingEdgesStore(InMemoryGraphStore):
    """Fails on the n-th get_edges call."""

    def __init__(self, fail_on_call: int, exc: Exception):
        super().__init__()
        self.fail_on_call = fail_on_call
        self.exc = exc
        self.edge_calls = 0

    async def get_edges(self, node_ids, relationship_types=None):
        self.edge_calls += 1
        if self.edge_calls >= self.fail_on_call:
            raise self.exc
        return await super().get_edges(node_ids, relationship_types)


class SlowEdgesStore(InMemoryGraphStore):
    """get_edges never answers in time."""

    async def get_edges(self, node_ids, relationship_types=None):
        await asyncio.sleep(5)
        return []


class TestCap:
    """The node cap holds for any topology and depth."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("builder", [complete_graph, cycle_graph])
    @pytest.mark.parametrize("max_hops", [0, 1, 2, 5])
    @pytest.mark.parametrize("cap", [1, 3, 7])
    async def test_cap_never_exceeded(self, builder, max_hops, cap):
        """Node count stays within cap on dense and cyclic graphs."""
        store = builder(12)
        expander = GraphExpander(store)

        subgraph = await expander.expand(["n00", "n05"], max_hops=max_hops, cap=cap)

        assert len(subgraph.nodes) <= cap
        assert subgraph.is_consistent()
        assert expander.last_error is None

    @pytest.mark.asyncio
    async def test_cap_zero_returns_empty(self):
        """A zero cap yields an empty subgraph."""
        subgraph = await GraphExpander(complete_graph(4)).expand(["n00"], max_hops=2, cap=0)
        assert subgraph.nodes == {}

    @pytest.mark.asyncio
    async def test_seeds_beyond_cap_dropped_in_rank_order(self):
        """Lower-ranked seeds are the ones dropped when seeds exceed the cap."""
        store = _graph(5, [])
        subgraph = await GraphExpander(store).expand(["n03", "n01", "n04"], max_hops=1, cap=2)
        assert set(subgraph.nodes) == {"n03", "n01"}


class TestTraversal:
    """Which nodes and edges a traversal collects."""

    @pytest.mark.asyncio
    async def test_zero_hops_returns_seeds_only(self, code_graph_store):
        """max_hops=0 collects the seed and no neighbours."""
        subgraph = await GraphExpander(code_graph_store).expand(["m-login"], max_hops=0, cap=10)

        assert set(subgraph.nodes) == {"m-login"}
        assert subgraph.edges == []

    @pytest.mark.asyncio
    async def test_one_hop_is_undirected(self, code_graph_store):
        """Edges are followed in both directions."""
        subgraph = await GraphExpander(code_graph_store).expand(["m-validate"], max_hops=1, cap=10)

        assert set(subgraph.nodes) == {"m-validate", "c-auth", "m-login", "m-find"}

    @pytest.mark.asyncio
    async def test_edges_between_collected_nodes_included(self, code_graph_store):
        """Edges among expansion nodes are kept, not only edges to the seed."""
        subgraph = await GraphExpander(code_graph_store).expand(["m-login"], max_hops=1, cap=10)

        keys = {e.key for e in subgraph.edges}
        assert ("c-auth", "CONTAINS", "m-validate") in keys
        assert ("m-login", "CALLS", "m-validate") in keys
        assert subgraph.is_consistent()

    @pytest.mark.asyncio
    async def test_zero_hops_keeps_edges_between_seeds(self, code_graph_store):
        """Seeds linked to each other keep that edge without any traversal."""
        subgraph = await GraphExpander(code_graph_store).expand(
            ["c-auth", "m-login"], max_hops=0, cap=10
        )

        assert set(subgraph.nodes) == {"c-auth", "m-login"}
        assert [e.key for e in subgraph.edges] == [("c-auth", "CONTAINS", "m-login")]

    @pytest.mark.asyncio
    async def test_last_hop_nodes_keep_edges_among_themselves(self):
        """Every edge of a clique is returned when the clique is reached on the final hop."""
        subgraph = await GraphExpander(complete_graph(5)).expand(["n00"], max_hops=1, cap=10)

        assert len(subgraph.nodes) == 5
        assert len(subgraph.edges) == 10
        assert subgraph.is_consistent()

    @pytest.mark.asyncio
    async def test_cap_hit_keeps_edges_among_admitted_nodes(self):
        """Stopping at the cap still returns edges between the admitted nodes."""
        subgraph = await GraphExpander(complete_graph(6)).expand(["n00"], max_hops=3, cap=3)

        assert set(subgraph.nodes) == {"n00", "n01", "n02"}
        assert {e.key for e in subgraph.edges} == {
            ("n00", "CALLS", "n01"),
            ("n00", "CALLS", "n02"),
            ("n01", "CALLS", "n02"),
        }

    @pytest.mark.asyncio
    async def test_terminates_on_cycles_with_large_depth(self):
        """A cycle is walked once even when max_hops exceeds its length."""
        subgraph = await GraphExpander(cycle_graph(6)).expand(["n00"], max_hops=50, cap=100)
        assert len(subgraph.nodes) == 6
        assert len(subgraph.edges) == 6

    @pytest.mark.asyncio
    async def test_relationship_filter(self, code_graph_store):
        """Only the requested relationship types are traversed."""
        subgraph = await GraphExpander(code_graph_store).expand(
            ["m-login"], max_hops=2, cap=10, relationship_types=["CALLS"]
        )

        assert set(subgraph.nodes) == {"m-login", "m-validate", "m-find"}
        assert {e.type for e in subgraph.edges} == {"CALLS"}

    @pytest.mark.asyncio
    async def test_unknown_seed_skipped(self, code_graph_store):
        """Seeds missing from the store are skipped."""
        subgraph = await GraphExpander(code_graph_store).expand(["missing", "c-cache"], max_hops=1, cap=5)
        assert set(subgraph.nodes) == {"c-cache"}


class TestDeterminism:
    """Admission order depends only on seed rank and node id."""

    @pytest.mark.asyncio
    async def test_higher_ranked_seed_neighbours_admitted_first(self):
        """Neighbours of the better seed win the remaining cap slots."""
        # n00 - n01, n02 ; n05 - n06, n07
        store = _graph(8, [(0, 1), (0, 2), (5, 6), (5, 7)])

        first = await GraphExpander(store).expand(["n05", "n00"], max_hops=1, cap=4)
        second = await GraphExpander(store).expand(["n00", "n05"], max_hops=1, cap=4)

        assert set(first.nodes) == {"n05", "n00", "n06", "n07"}
        assert set(second.nodes) == {"n00", "n05", "n01", "n02"}

    @pytest.mark.asyncio
    async def test_repeated_runs_identical(self):
        """Same input, same subgraph."""
        store = complete_graph(9)
        expander = GraphExpander(store)

        runs = [await expander.expand(["n04", "n02"], max_hops=2, cap=6) for _ in range(3)]

        assert all(r.to_dict() == runs[0].to_dict() for r in runs)


class TestPartialResults:
    """Failures keep what was collected so far."""

    @pytest.mark.asyncio
    async def test_store_failure_returns_partial_subgraph(self):
        """A store error on hop two keeps the hop-one subgraph."""
        store = FailingEdgesStore(fail_on_call=2, exc=ConnectionError("graph down"))
        for i in range(4):
            store.add_node(GraphNode(f"n{i}", "Method", {"Method"}, {"name": f"fn{i}"}))
        store.add_edge(GraphEdge("n0", "n1", "CALLS"))
        store.add_edge(GraphEdge("n1", "n2", "CALLS"))
        store.add_edge(GraphEdge("n2", "n3", "CALLS"))
        expander = GraphExpander(store)

        subgraph = await expander.expand(["n0"], max_hops=3, cap=10)

        assert set(subgraph.nodes) == {"n0", "n1"}
        assert subgraph.is_consistent()
        assert expander.last_error is not None
        assert "graph down" in expander.last_error.reason
        assert expander.last_error.collected == 2

    @pytest.mark.asyncio
    async def test_timeout_returns_seeds(self):
        """A slow store times out and the seeds survive."""
        store = SlowEdgesStore()
        store.add_node(GraphNode("a", "Class", {"Class"}, {"name": "A"}))
        expander = GraphExpander(store, timeout_seconds=0.05)

        subgraph = await expander.expand(["a"], max_hops=2, cap=10)

        assert set(subgraph.nodes) == {"a"}
        assert "timeout" in expander.last_error.reason

    @pytest.mark.asyncio
    async def test_last_error_reset_between_calls(self):
        """A clean expand clears the previous failure."""
        store = FailingEdgesStore(fail_on_call=1, exc=RuntimeError("boom"))
        store.add_node(GraphNode("a", "Class", {"Class"}, {"name": "A"}))
        expander = GraphExpander(store)

        await expander.expand(["a"], max_hops=1, cap=5)
        assert expander.last_error is not None

        store.fail_on_call = 100
        await expander.expand(["a"], max_hops=0, cap=5)
        assert expander.last_error is None


class TestStoreExpand:
    """GraphStore.expand uses the expander."""

    @pytest.mark.asyncio
    async def test_graph_store_expand_delegates(self, code_graph_store):
        """The store-level helper returns the same bounded subgraph."""
        subgraph = await code_graph_store.expand(["c-report"], max_hops=1, cap=10)
        assert set(subgraph.nodes) == {"c-report", "m-render"}
