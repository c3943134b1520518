"""
FalkorDB Client
===============

Async client for the FalkorDB code graph.

FalkorDB runs on the Redis protocol and speaks Cypher. falkordb-py is
synchronous, so every call runs on a bounded worker pool owned by the client
(``max_connections`` workers); concurrent pipeline runs share it.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

import structlog
from falkordb import FalkorDB, Graph

from codekg.storage.graph.config import FalkorDBConfig

log = structlog.get_logger()


class FalkorDBClient:
    """
    Async client for FalkorDB.

    Example:
        client = FalkorDBClient(config)
        await client.connect()

        results = await client.query('''
            MATCH (c:Class)-[:CONTAINS]->(m:Method {name: $name})
            RETURN c.name AS class_name
        ''', {"name": "login"})

        await client.close()
    """

    def __init__(self, config: Optional[FalkorDBConfig] = None):
        self.config = config or FalkorDBConfig()
        self._db: Optional[FalkorDB] = None
        self._graph: Optional[Graph] = None
        self._connected = False
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_connections,
            thread_name_prefix="falkordb",
        )

        log.info(
            f"FalkorDBClient initialized - "
            f"host={self.config.host}:{self.config.port}, "
            f"graph={self.config.graph_name}"
        )

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self):
        """Establish connection to FalkorDB."""
        if self._connected:
            log.debug("Already connected to FalkorDB")
            return

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(self._executor, self._connect_sync)

        log.info(f"Connected to FalkorDB at {self.config.host}:{self.config.port}")

    def _connect_sync(self):
        """Synchronous connection (called in executor)."""
        self._db = FalkorDB(
            host=self.config.host,
            port=self.config.port,
            password=self.config.password,
        )
        self._graph = self._db.select_graph(self.config.graph_name)
        self._connected = True

    async def close(self):
        """Close connection and shut the worker pool down."""
        if self._connected:
            # Connections live in the redis pool, dropping references is enough
            self._connected = False
            self._db = None
            self._graph = None
            log.info("Disconnected from FalkorDB")
        self._executor.shutdown(wait=False)

    async def query(
        self,
        cypher: str,
        params: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """
        Execute a Cypher query.

        Args:
            cypher: Cypher query string
            params: Query parameters

        Returns:
            List of result records as dicts

        Raises:
            RuntimeError: if connect() was not called
        """
        if not self._connected:
            raise RuntimeError("Not connected to FalkorDB. Call connect() first.")

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor,
            self._query_sync,
            cypher,
            params or {}
        )

    def _query_sync(self, cypher: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Execute query synchronously (called in executor)."""
        try:
            result = self._graph.query(cypher, params, timeout=self.config.timeout_ms)

            records = []
            if result.result_set:
                headers = result.header

                for row in result.result_set:
                    record = {}
                    for i, header in enumerate(headers):
                        # Header format is [type, alias]
                        col_name = header[1] if len(header) > 1 else f"col_{i}"
                        value = row[i]

                        if hasattr(value, 'properties'):
                            record[col_name] = {
                                "properties": value.properties,
                                "labels": getattr(value, 'labels', []),
                                "id": getattr(value, 'id', None),
                            }
                        else:
                            record[col_name] = value

                    records.append(record)

            log.debug(
                f"Query executed: {cypher[:100]}... "
                f"(params={list(params.keys())}) -> {len(records)} records"
            )
            return records

        except Exception as e:
            log.error(f"Query failed: {cypher[:100]}... Error: {e}")
            raise

    async def health_check(self) -> bool:
        """
        Check if FalkorDB is healthy and reachable.

        Returns:
            True if healthy, False otherwise
        """
        try:
            if not self._connected:
                await self.connect()

            await self.query("RETURN 1")
            return True

        except Exception as e:
            log.error(f"Health check failed: {e}")
            return False
