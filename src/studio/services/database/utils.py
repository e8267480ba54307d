"""Thin query helpers over the Supabase PostgREST client."""

import logging
from typing import Any

from supabase import Client

logger = logging.getLogger(__name__)

Row = dict[str, Any]


def _first(data: list[Row] | None) -> Row | None:
    return data[0] if data else None


class SupabaseQueryBuilder:
    """
    Row-level helpers used by SupabaseRepository.

    Every method returns plain dictionaries exactly as PostgREST sends them;
    model validation happens in the repository. PostgREST failures surface
    as ``postgrest.exceptions.APIError`` and are not caught here.
    """

    def __init__(self, client: Client) -> None:
        self.client = client

    def get_by_field(self, table: str, field: str, value: Any, columns: str = "*") -> Row | None:
        """
        Return the first row where ``field`` equals ``value``.

        Example:
            >>> user = builder.get_by_field("users", "access_sub", subject)
        """
        response = self.client.table(table).select(columns).eq(field, value).limit(1).execute()
        return _first(response.data)

    def get_by_id(self, table: str, record_id: str, columns: str = "*") -> Row | None:
        """Return the row with primary key ``record_id``, or None."""
        return self.get_by_field(table, "id", str(record_id), columns)

    def list_records(
        self,
        table: str,
        columns: str = "*",
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        order_desc: bool = True,
        limit: int | None = None,
    ) -> list[Row]:
        """
        Select rows matching all equality ``filters``.

        Args:
            table: Table name
            columns: PostgREST select expression
            filters: Column/value pairs combined with AND
            order_by: Sort column (newest or highest first unless order_desc
                is False)
            limit: Maximum number of rows

        Example:
            >>> latest = builder.list_records(
            ...     "project_versions",
            ...     filters={"project_id": project_id},
            ...     order_by="version",
            ...     limit=1,
            ... )
        """
        query = self.client.table(table).select(columns)

        for field, value in (filters or {}).items():
            query = query.eq(field, value)
        if order_by:
            query = query.order(order_by, desc=order_desc)
        if limit is not None:
            query = query.limit(limit)

        return query.execute().data or []

    def insert_record(self, table: str, data: Row) -> Row | None:
        """Insert one row and return it as stored (defaults filled in)."""
        return _first(self.client.table(table).insert(data).execute().data)

    def update_record(self, table: str, record_id: str, data: Row) -> Row | None:
        """Patch the row with primary key ``record_id``; None if it does not exist."""
        response = self.client.table(table).update(data).eq("id", str(record_id)).execute()
        return _first(response.data)


def get_query_builder(client: Client) -> SupabaseQueryBuilder:
    """Wrap a Supabase client in a SupabaseQueryBuilder."""
    return SupabaseQueryBuilder(client)
