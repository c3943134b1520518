"""
FalkorDB GraphStore
===================

GraphStore backed by FalkorDB full-text and vector indexes.

Expected schema (built by the ingestion side):
- every node has a unique ``id`` property (configurable) plus ``name``
- full-text index on name/signature/summary for each searchable label
- vector index on ``embedding`` (cosine) for each vector label

Example:
    client = FalkorDBClient(FalkorDBConfig())
    await client.connect()
    store = FalkorGraphStore(client)
    hits = await store.lexical_search(["login", "validate"], limit=20)
"""

import re
from typing import Any, Dict, Iterable, List, Optional, Sequence

import structlog

from codekg.errors import SearchFailure
from codekg.storage.graph.client import FalkorDBClient
from codekg.storage.graph.models import GraphEdge, GraphNode, SearchHit, SearchSignal
from codekg.storage.graph.store import GraphStore

log = structlog.get_logger()

# RediSearch query syntax characters; '*' is kept for prefix/wildcard terms
_FULLTEXT_SPECIAL = re.compile(r"[,.<>{}\[\]\"':;!@#$%^&()\-+=~|/\\]")
_MIN_FUZZY_LENGTH = 4


def build_fulltext_query(terms: Sequence[str]) -> str:
    """
    Build a RediSearch query matching each term exactly, by prefix and fuzzily.

    Terms containing ``*`` or ``?`` are treated as wildcards and passed through.

    Example:
        >>> build_fulltext_query(["login", "valid*"])
        'login | login* | %login% | valid*'
    """
    clauses: List[str] = []
    for raw in terms:
        if "*" in raw or "?" in raw:
            wildcard = _FULLTEXT_SPECIAL.sub(" ", raw.replace("?", "*")).strip()
            if wildcard:
                clauses.append(wildcard)
            continue

        term = _FULLTEXT_SPECIAL.sub(" ", raw).strip()
        if not term:
            continue
        for word in term.split():
            clauses.append(word)
            clauses.append(f"{word}*")
            if len(word) >= _MIN_FUZZY_LENGTH:
                clauses.append(f"%{word}%")

    # dedupe, keep order
    return " | ".join(dict.fromkeys(clauses))


class FalkorGraphStore(GraphStore):
    """
    GraphStore over a connected FalkorDBClient.

    Read-only: issues MATCH/CALL queries only.
    """

    def __init__(self, client: FalkorDBClient):
        self.client = client
        self.config = client.config
        self._id = self.config.node_id_property

    async def lexical_search(self, terms: Sequence[str], limit: int) -> List[SearchHit]:
        query = build_fulltext_query(terms)
        if not query:
            return []

        cypher = f"""
            CALL db.idx.fulltext.queryNodes($label, $query) YIELD node, score
            RETURN node.{self._id} AS node_id, score
            ORDER BY score DESC
            LIMIT $limit
        """

        best: Dict[str, float] = {}
        errors: List[str] = []
        for label in self.config.searchable_labels:
            try:
                records = await self.client.query(
                    cypher, {"label": label, "query": query, "limit": limit}
                )
            except Exception as e:
                log.warning(f"Full-text search failed for label {label}: {e}")
                errors.append(f"{label}: {e}")
                continue
            for record in records:
                node_id = record.get("node_id")
                if node_id is None:
                    continue
                score = float(record.get("score") or 0.0)
                best[str(node_id)] = max(score, best.get(str(node_id), 0.0))

        if errors and len(errors) == len(self.config.searchable_labels):
            raise SearchFailure(SearchSignal.LEXICAL.value, "; ".join(errors))

        return _top_hits(best, SearchSignal.LEXICAL, limit)

    async def vector_search(self, embedding: Sequence[float], limit: int) -> List[SearchHit]:
        cypher = f"""
            CALL db.idx.vector.queryNodes($label, 'embedding', $k, vecf32($vector)) YIELD node, score
            RETURN node.{self._id} AS node_id, score
        """
        vector = [float(x) for x in embedding]

        best: Dict[str, float] = {}
        errors: List[str] = []
        for label in self.config.vector_labels:
            try:
                records = await self.client.query(
                    cypher, {"label": label, "k": limit, "vector": vector}
                )
            except Exception as e:
                log.warning(f"Vector search failed for label {label}: {e}")
                errors.append(f"{label}: {e}")
                continue
            for record in records:
                node_id = record.get("node_id")
                if node_id is None:
                    continue
                # FalkorDB yields cosine distance
                similarity = 1.0 - float(record.get("score") or 0.0)
                best[str(node_id)] = max(similarity, best.get(str(node_id), -1.0))

        if errors and len(errors) == len(self.config.vector_labels):
            raise SearchFailure(SearchSignal.VECTOR.value, "; ".join(errors))

        return _top_hits(best, SearchSignal.VECTOR, limit)

    async def get_nodes(self, node_ids: Iterable[str]) -> Dict[str, GraphNode]:
        ids = list(dict.fromkeys(node_ids))
        if not ids:
            return {}

        records = await self.client.query(
            f"MATCH (n) WHERE n.{self._id} IN $ids RETURN n",
            {"ids": ids},
        )
        nodes: Dict[str, GraphNode] = {}
        for record in records:
            node = self._to_graph_node(record.get("n") or {})
            if node is not None:
                nodes[node.id] = node
        return nodes

    async def get_edges(
        self,
        node_ids: Iterable[str],
        relationship_types: Optional[Sequence[str]] = None,
    ) -> List[GraphEdge]:
        ids = list(dict.fromkeys(node_ids))
        if not ids:
            return []

        type_filter = " AND type(r) IN $types" if relationship_types else ""
        cypher = f"""
            MATCH (a)-[r]->(b)
            WHERE (a.{self._id} IN $ids OR b.{self._id} IN $ids){type_filter}
            RETURN a.{self._id} AS from_id, type(r) AS rel_type,
                   b.{self._id} AS to_id, properties(r) AS props
        """
        params: Dict[str, Any] = {"ids": ids}
        if relationship_types:
            params["types"] = list(relationship_types)

        records = await self.client.query(cypher, params)
        return [
            GraphEdge(
                from_id=str(r["from_id"]),
                to_id=str(r["to_id"]),
                type=str(r["rel_type"]),
                properties=dict(r.get("props") or {}),
            )
            for r in records
            if r.get("from_id") is not None and r.get("to_id") is not None
        ]

    async def get_embeddings(self, node_ids: Iterable[str]) -> Dict[str, List[float]]:
        ids = list(dict.fromkeys(node_ids))
        if not ids:
            return {}

        records = await self.client.query(
            f"""
            MATCH (n) WHERE n.{self._id} IN $ids AND n.embedding IS NOT NULL
            RETURN n.{self._id} AS node_id, n.embedding AS embedding
            """,
            {"ids": ids},
        )
        return {
            str(r["node_id"]): [float(x) for x in r["embedding"]]
            for r in records
            if r.get("embedding")
        }

    async def edge_exists(self, from_name: str, to_name: str, rel_type: str) -> bool:
        cypher = f"""
            MATCH (a)-[r]->(b)
            WHERE (a.name = $from_name OR a.{self._id} = $from_name)
              AND (b.name = $to_name OR b.{self._id} = $to_name)
              AND type(r) = $rel_type
            RETURN count(r) > 0 AS exists
        """
        records = await self.client.query(
            cypher,
            {"from_name": from_name, "to_name": to_name, "rel_type": rel_type},
        )
        return bool(records and records[0].get("exists"))

    async def close(self) -> None:
        await self.client.close()

    def _to_graph_node(self, raw: Dict[str, Any]) -> Optional[GraphNode]:
        properties = dict(raw.get("properties") or {})
        node_id = properties.get(self._id)
        if node_id is None:
            return None
        properties.pop("embedding", None)
        labels = set(raw.get("labels") or [])
        node_type = properties.get("type") or (sorted(labels)[0] if labels else "Unknown")
        return GraphNode(id=str(node_id), type=str(node_type), labels=labels, properties=properties)


def _top_hits(scores: Dict[str, float], signal: SearchSignal, limit: int) -> List[SearchHit]:
    ordered = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
    return [SearchHit(node_id=nid, score=score, signal=signal) for nid, score in ordered[:limit]]
