"""
Read-only operations over the helping_societies listing table.

Columns are aliased to upper-case keys so the JSON records keep the field
names the frontend reads (SOCIETY_NAME, SERVICE, ...).
"""

import logging
from typing import Any, Dict, List, Optional

from varadhi.common.errors import StoreError, ValidationError
from varadhi.database.gateway import QueryError, QueryGateway

LISTING_COLUMNS = """
    society_name      AS "SOCIETY_NAME",
    organisation_need AS "ORGANISATION_NEED",
    service           AS "SERVICE",
    state             AS "STATE",
    district          AS "DISTRICT",
    pincode           AS "PINCODE"
"""

DISTINCT_SQL = """
    SELECT DISTINCT service COLLATE "C" AS "SERVICE"
    FROM helping_societies
    WHERE service IS NOT NULL
    ORDER BY "SERVICE";
"""

ALL_SQL = f"SELECT {LISTING_COLUMNS} FROM helping_societies;"

BY_CATEGORY_SQL = f"SELECT {LISTING_COLUMNS} FROM helping_societies WHERE service = %(category)s;"

SEARCH_SQL = f"""
    SELECT {LISTING_COLUMNS}
    FROM helping_societies
    WHERE
        UPPER(society_name)      LIKE UPPER(%(term)s) OR
        UPPER(organisation_need) LIKE UPPER(%(term)s) OR
        UPPER(service)           LIKE UPPER(%(term)s) OR
        UPPER(state)             LIKE UPPER(%(term)s) OR
        UPPER(district)          LIKE UPPER(%(term)s) OR
        UPPER(pincode)           LIKE UPPER(%(term)s);
"""


def like_pattern(term: str) -> str:
    """
    Build a "contains" LIKE pattern that matches `term` literally.

    Backslash is Postgres' default LIKE escape character.
    """
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class ServiceCatalog:
    """Listing queries. Every method maps store failures to StoreError."""

    def __init__(self, gateway: QueryGateway) -> None:
        self.gateway = gateway

    def _rows(self, sql: str, params: Optional[Dict[str, Any]], failure: str) -> List[Dict[str, Any]]:
        try:
            return self.gateway.execute(sql, params)
        except QueryError as e:
            logging.error(f"[Catalog] {failure}. SQL: {' '.join(e.statement.split())} Params: {e.parameters}")
            raise StoreError(failure, details=str(e.cause)) from e

    def list_distinct_categories(self) -> List[str]:
        rows = self._rows(DISTINCT_SQL, None, "Failed to fetch distinct services")
        return [row["SERVICE"] for row in rows]

    def list_all(self) -> List[Dict[str, Any]]:
        return self._rows(ALL_SQL, None, "Failed to fetch all services")

    def list_by_category(self, category: str) -> List[Dict[str, Any]]:
        """Exact, case-sensitive match on the service column."""
        return self._rows(BY_CATEGORY_SQL, {"category": category}, "Failed to fetch services by category")

    def search(self, term: Optional[str]) -> List[Dict[str, Any]]:
        """
        Case-insensitive substring search across all six listing fields.

        Args:
            term (str): Text to look for. Required.

        Returns:
            list[dict]: Matching listings, possibly empty.

        Raises:
            ValidationError: If `term` is missing or empty.
            StoreError: If the query fails.
        """
        if not term:
            raise ValidationError("Search query parameter is missing.")
        return self._rows(SEARCH_SQL, {"term": like_pattern(term)}, "Failed to perform search")
