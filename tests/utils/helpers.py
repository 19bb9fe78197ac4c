"""Test helper functions."""

import json
from datetime import datetime
from typing import Any, Dict
from unittest.mock import MagicMock


class WrappedTimestamp:
    """Stand-in for a document-store timestamp exposing a conversion method."""

    def __init__(self, value: datetime):
        self._value = value

    def to_datetime(self) -> datetime:
        return self._value


def make_supabase_mock(data=None):
    """
    Build a Supabase client mock whose query builder methods all return the
    same query object, so chained calls can be asserted on one mock.
    """
    query = MagicMock()
    for method in ("select", "insert", "update", "upsert", "delete", "eq", "is_", "order", "limit"):
        getattr(query, method).return_value = query
    query.execute.return_value = MagicMock(data=data if data is not None else [])

    client = MagicMock()
    client.table.return_value = query
    return client, query


def create_request(
    method: str = "POST",
    path: str = "/api/listings/search",
    body: Dict[str, Any] = None,
    query: Dict[str, str] = None,
) -> Dict[str, Any]:
    """Create a Vercel request object for testing."""
    return {
        "method": method,
        "path": path,
        "headers": {"content-type": "application/json"},
        "body": json.dumps(body) if isinstance(body, dict) else body,
        "query": query or {},
    }
