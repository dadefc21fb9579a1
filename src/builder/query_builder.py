"""Cosmos DB SQL query builder for list endpoints.

Turns a flat mapping of request query parameters into a parameterised
Cosmos SQL query. Steps are applied fluently, in the order they are called:

    builder = (
        QueryBuilder(params, field_types=PRODUCT_FIELD_TYPES)
        .search(PRODUCT_SEARCHABLE_FIELDS)
        .filter()
        .sort()
        .paginate()
        .fields()
    )
    query, parameters = builder.build()
    count_query, count_parameters = builder.count_query()

Reserved parameters: searchTerm, sort, page, limit, fields. Every other
parameter is a filter: `price=10` for equality, `price[gte]=10` (gt, gte,
lt, lte, ne) for ranges, repeated values for membership. Values are cast
only for fields listed in `field_types`; everything else is matched as a
string.
"""

import logging
import math
import re
from typing import Any, Iterable, Mapping, Optional

from src.errors import BadRequestError
from src.models.pagination import PaginationMeta
from src.models.product import strip_system_properties

logger = logging.getLogger(__name__)

RESERVED_QUERY_KEYS = ("searchTerm", "sort", "page", "limit", "fields")
DEFAULT_SORT = "-createdAt"
DEFAULT_PAGE = 1

RANGE_OPERATORS = {"gt": ">", "gte": ">=", "lt": "<", "lte": "<=", "ne": "!="}

_FIELD_PATH = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")
_RANGE_KEY = re.compile(r"^(?P<field>[^\[\]]+)\[(?P<op>[a-z]+)\]$")


def _field_ref(path: str) -> str:
    """Bracket notation reference for a validated dotted path, e.g. c["name"]["first"]."""
    if not _FIELD_PATH.match(path):
        raise BadRequestError(f"Invalid field name: {path}")
    return "c" + "".join(f'["{part}"]' for part in path.split("."))


def _coerce_value(field: str, value: Any, field_type: Optional[type]) -> Any:
    """Cast a query string value to the declared type of the field.

    Values for string and undeclared fields are left untouched, so "00042"
    still matches a stored "00042".
    """
    if not isinstance(value, str) or field_type is None or field_type is str:
        return value
    if value.lower() == "null":
        return None
    if field_type is bool:
        lowered = value.lower()
        if lowered not in ("true", "false"):
            raise BadRequestError(f"'{field}' must be true or false, got {value!r}")
        return lowered == "true"
    try:
        return field_type(value)
    except ValueError:
        raise BadRequestError(f"'{field}' must be a {field_type.__name__}, got {value!r}") from None


def _positive_int(raw: Any, default: int, name: str) -> int:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise BadRequestError(f"'{name}' must be an integer, got {raw!r}") from None
    if value < 1:
        raise BadRequestError(f"'{name}' must be at least 1, got {value}")
    return value


class QueryBuilder:
    """Fluent builder for filtered, sorted, paginated Cosmos SQL queries."""

    def __init__(
        self,
        query: Mapping[str, Any],
        default_limit: int = 10,
        max_limit: int = 100,
        field_types: Optional[Mapping[str, type]] = None,
    ):
        self._query = dict(query)
        self._default_limit = default_limit
        self._max_limit = max_limit
        self._field_types = dict(field_types or {})

        self._conditions: list[str] = []
        self._parameters: list[dict[str, Any]] = []
        self._order_by: list[str] = []
        self._select = "*"
        self._excluded_fields: set[str] = set()
        self._paginated = False

        self.page = DEFAULT_PAGE
        self.limit = default_limit

    def _add_parameter(self, value: Any, name: Optional[str] = None) -> str:
        name = name or f"@p{len(self._parameters)}"
        self._parameters.append({"name": name, "value": value})
        return name

    def _coerce(self, field: str, value: Any) -> Any:
        return _coerce_value(field, value, self._field_types.get(field))

    def search(self, searchable_fields: Iterable[str]) -> "QueryBuilder":
        """Case-insensitive substring match of searchTerm against any of the fields."""
        term = self._query.get("searchTerm")
        if isinstance(term, str) and term.strip():
            param = self._add_parameter(term.strip(), "@searchTerm")
            clauses = [f"CONTAINS({_field_ref(field)}, {param}, true)" for field in searchable_fields]
            if clauses:
                self._conditions.append("(" + " OR ".join(clauses) + ")")
        return self

    def filter(self) -> "QueryBuilder":
        """Equality, range and membership filters from non-reserved parameters."""
        for key, value in self._query.items():
            if key in RESERVED_QUERY_KEYS:
                continue

            range_match = _RANGE_KEY.match(key)
            if range_match:
                self._add_range(range_match.group("field"), {range_match.group("op"): value})
            elif isinstance(value, dict):
                self._add_range(key, value)
            elif isinstance(value, (list, tuple)):
                ref = _field_ref(key)
                param = self._add_parameter([self._coerce(key, v) for v in value])
                self._conditions.append(f"ARRAY_CONTAINS({param}, {ref})")
            else:
                ref = _field_ref(key)
                param = self._add_parameter(self._coerce(key, value))
                self._conditions.append(f"{ref} = {param}")
        return self

    def _add_range(self, field: str, operations: Mapping[str, Any]) -> None:
        ref = _field_ref(field)
        for op, value in operations.items():
            if op not in RANGE_OPERATORS:
                raise BadRequestError(f"Unsupported filter operator '{op}' on {field}")
            param = self._add_parameter(self._coerce(field, value))
            self._conditions.append(f"{ref} {RANGE_OPERATORS[op]} {param}")

    def sort(self) -> "QueryBuilder":
        """Comma separated sort fields; a leading '-' sorts descending."""
        raw = self._query.get("sort") or DEFAULT_SORT
        for field in str(raw).split(","):
            field = field.strip()
            if not field:
                continue
            direction = "DESC" if field.startswith("-") else "ASC"
            self._order_by.append(f"{_field_ref(field.lstrip('-'))} {direction}")
        return self

    def paginate(self) -> "QueryBuilder":
        """Page/limit to OFFSET/LIMIT. Limit is capped at max_limit."""
        self.page = _positive_int(self._query.get("page"), DEFAULT_PAGE, "page")
        self.limit = min(_positive_int(self._query.get("limit"), self._default_limit, "limit"), self._max_limit)
        self._paginated = True
        return self

    def fields(self) -> "QueryBuilder":
        """Projection: included fields go into SELECT, '-field' exclusions are stripped later."""
        raw = self._query.get("fields")
        if not raw:
            return self

        included: list[str] = []
        for field in str(raw).split(","):
            field = field.strip()
            if not field:
                continue
            if field.startswith("-"):
                name = field[1:]
                _field_ref(name)
                self._excluded_fields.add(name)
            elif field not in included:
                _field_ref(field)
                if "." in field:
                    raise BadRequestError(f"Only top-level fields can be selected: {field}")
                included.append(field)

        if included:
            if "id" not in included:
                included.insert(0, "id")
            self._select = ", ".join(_field_ref(field) for field in included)
        return self

    def _where(self) -> str:
        if not self._conditions:
            return ""
        return " WHERE " + " AND ".join(self._conditions)

    def build(self) -> tuple[str, list[dict[str, Any]]]:
        """Return the page query and its parameters."""
        query = f"SELECT {self._select} FROM c{self._where()}"
        parameters = list(self._parameters)
        if self._order_by:
            query += " ORDER BY " + ", ".join(self._order_by)
        if self._paginated:
            query += " OFFSET @offset LIMIT @limit"
            parameters.append({"name": "@offset", "value": (self.page - 1) * self.limit})
            parameters.append({"name": "@limit", "value": self.limit})
        logger.debug(f"Built query: {query}")
        return query, parameters

    def count_query(self) -> tuple[str, list[dict[str, Any]]]:
        """Return a query counting every match, ignoring pagination and projection."""
        return f"SELECT VALUE COUNT(1) FROM c{self._where()}", list(self._parameters)

    def meta(self, total: int) -> PaginationMeta:
        """Page metadata for the given total."""
        return PaginationMeta(
            page=self.page,
            limit=self.limit,
            total=total,
            total_page=math.ceil(total / self.limit) if self.limit else 0,
        )

    def project(self, items: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
        """Strip system properties and excluded fields from query results."""
        projected = []
        for item in items:
            document = strip_system_properties(item)
            for field in self._excluded_fields:
                _remove_path(document, field.split("."))
            projected.append(document)
        return projected


def _remove_path(document: dict[str, Any], parts: list[str]) -> None:
    head, rest = parts[0], parts[1:]
    if not rest:
        document.pop(head, None)
    elif isinstance(document.get(head), dict):
        nested = dict(document[head])
        _remove_path(nested, rest)
        document[head] = nested
