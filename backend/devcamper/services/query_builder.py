"""
DevCamper Backend — List Query Builder & Paginator
====================================================

What:  Turns the query string of a collection endpoint into a filtered,
       projected, sorted and paginated list of records, plus next/prev page
       descriptors, optionally embedding related records ("population").
Who:   Used by BootcampService and CourseService for every listing endpoint.
How:   Raw parameters are parsed into a typed ListQuery (a tuple of filter
       expressions, a projection, sort keys, page and limit), which is then
       compiled to SQLAlchemy Core statements and run on the injected session.

Query string grammar:
    ?careers=...               reserved names: select, sort, page, limit
    ?housing=true              equality
    ?tuition[lte]=10000        comparison: gt, gte, lt, lte
    ?minimum_skill[in]=a,b     membership (comma separated or repeated)
    ?select=name,description   projection (id always included)
    ?sort=-average_cost,name   sort keys, leading '-' = descending
    ?page=2&limit=10           pagination (defaults: 1 and 25)

Store round trips (sequential, same session):
    1. SELECT count(*) ... WHERE <filters>           → total
    2. SELECT <fields> ... WHERE <filters> ORDER BY ... OFFSET ... LIMIT ...
    3. (population only) SELECT ... FROM <related> WHERE <key> IN (...)

The count uses exactly the same predicate as the fetch, so `total` is the
post-filter, pre-pagination cardinality.
"""

import logging
import operator
import re
import uuid
from collections import defaultdict
from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Type,
    Union,
)

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.config import settings
from devcamper.database import Base
from devcamper.exceptions import DatabaseError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

RESERVED_PARAMS = frozenset({"select", "sort", "page", "limit"})
IDENTITY_FIELD = "id"
DEFAULT_SORT = "-created_at"

# Largest row offset a page may start at (signed 32-bit, accepted by every
# supported driver).
MAX_START_INDEX = 2**31 - 1

# "tuition[lte]" → field="tuition", op="lte"
_BRACKET_KEY = re.compile(r"^(?P<field>[A-Za-z_][A-Za-z0-9_]*)\[(?P<op>[A-Za-z]+)\]$")
_FIELD_SEPARATOR = re.compile(r"[,\s]+")

_TRUE_VALUES = {"true", "1", "yes"}
_FALSE_VALUES = {"false", "0", "no"}

# Column types that can be compared and ordered; JSON documents and lists cannot.
_SCALAR_TYPES = (str, int, float, bool, Decimal, datetime, uuid.UUID)


# ══════════════════════════════════════════════════════════════════════════
# Filter Expressions
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Eq:
    field: str
    value: Any


@dataclass(frozen=True)
class Gt:
    field: str
    value: Any


@dataclass(frozen=True)
class Gte:
    field: str
    value: Any


@dataclass(frozen=True)
class Lt:
    field: str
    value: Any


@dataclass(frozen=True)
class Lte:
    field: str
    value: Any


@dataclass(frozen=True)
class In:
    field: str
    values: Tuple[Any, ...]


FilterExpr = Union[Eq, Gt, Gte, Lt, Lte, In]

# Query-string operator token → expression type
COMPARISON_OPERATORS: Dict[str, type] = {"gt": Gt, "gte": Gte, "lt": Lt, "lte": Lte}

_CLAUSE_BUILDERS: Dict[type, Callable[[Any, Any], Any]] = {
    Eq: operator.eq,
    Gt: operator.gt,
    Gte: operator.ge,
    Lt: operator.lt,
    Lte: operator.le,
}


def to_clause(expr: FilterExpr, columns) -> Any:
    """Compile one filter expression against a table's column collection."""
    column = columns[expr.field]
    if isinstance(expr, In):
        return column.in_(expr.values)
    return _CLAUSE_BUILDERS[type(expr)](column, expr.value)


# ══════════════════════════════════════════════════════════════════════════
# Parsed Query, Pagination and Population Types
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SortKey:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class ListQuery:
    """
    Everything one list request asks for, validated against a model.

    Invariant: page >= 1 and 1 <= limit <= settings.max_page_limit, and
    start_index never exceeds MAX_START_INDEX.
    """
    filters: Tuple[FilterExpr, ...] = ()
    fields: Tuple[str, ...] = ()
    sort: Tuple[SortKey, ...] = ()
    page: int = 1
    limit: int = 25

    @property
    def start_index(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def end_index(self) -> int:
        return self.page * self.limit


@dataclass(frozen=True)
class PageRef:
    page: int
    limit: int


@dataclass(frozen=True)
class Pagination:
    next: Optional[PageRef] = None
    prev: Optional[PageRef] = None

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        """Wire form: absent descriptors are omitted, not null."""
        result = {}
        if self.next is not None:
            result["next"] = asdict(self.next)
        if self.prev is not None:
            result["prev"] = asdict(self.prev)
        return result


def paginate(page: int, limit: int, total: int) -> Pagination:
    """
    Build next/prev descriptors for a page.

    next is present iff page * limit < total;
    prev is present iff (page - 1) * limit > 0.
    """
    start_index = (page - 1) * limit
    end_index = page * limit
    return Pagination(
        next=PageRef(page=page + 1, limit=limit) if end_index < total else None,
        prev=PageRef(page=page - 1, limit=limit) if start_index > 0 else None,
    )


@dataclass(frozen=True)
class PopulateSpec:
    """
    How to embed related records into each listed record.

    Records are matched where `record[local_field] == related[foreign_field]`.
    Only `fields` (plus the related id) are embedded, under `as_field`:
    a single object (or None) when `many` is false, a list otherwise.

    Use the constructors:
        PopulateSpec.reference(Bootcamp, "bootcamp_id", ["name"], "bootcamp")
        PopulateSpec.reverse(Course, "bootcamp_id", ["title"], "courses")
    """
    model: Type[Base]
    local_field: str
    foreign_field: str
    fields: Tuple[str, ...]
    as_field: str
    many: bool = False

    def __post_init__(self) -> None:
        columns = self.model.__table__.c
        unknown = [name for name in (self.foreign_field, *self.fields) if name not in columns]
        if unknown:
            raise ValueError(
                f"PopulateSpec for {self.model.__name__} names unknown columns: {unknown}"
            )

    @classmethod
    def reference(
        cls,
        model: Type[Base],
        local_field: str,
        fields: Sequence[str],
        as_field: str,
    ) -> "PopulateSpec":
        """Forward reference: the listed record holds the related record's id."""
        return cls(
            model=model,
            local_field=local_field,
            foreign_field=IDENTITY_FIELD,
            fields=tuple(fields),
            as_field=as_field,
            many=False,
        )

    @classmethod
    def reverse(
        cls,
        model: Type[Base],
        foreign_field: str,
        fields: Sequence[str],
        as_field: str,
    ) -> "PopulateSpec":
        """Reverse reference: related records hold the listed record's id."""
        return cls(
            model=model,
            local_field=IDENTITY_FIELD,
            foreign_field=foreign_field,
            fields=tuple(fields),
            as_field=as_field,
            many=True,
        )


@dataclass
class ListResult:
    records: List[Dict[str, Any]]
    pagination: Pagination
    total: int

    @property
    def count(self) -> int:
        return len(self.records)


# ══════════════════════════════════════════════════════════════════════════
# Parameter Parsing
# ══════════════════════════════════════════════════════════════════════════

def parse_query_string(items: Iterable[Tuple[str, str]]) -> Dict[str, Any]:
    """
    Nest raw query-string pairs into the mapping list_records() consumes.

    [("tuition[lte]", "9000"), ("housing", "true"), ("a", "1"), ("a", "2")]
    → {"tuition": {"lte": "9000"}, "housing": "true", "a": ["1", "2"]}

    Raises:
        ValidationError: a field is given both a plain value and operators.
    """
    params: Dict[str, Any] = {}
    for key, value in items:
        match = _BRACKET_KEY.match(key)
        if match:
            name = match.group("field")
            operators = params.setdefault(name, {})
            if not isinstance(operators, dict):
                raise ValidationError(
                    message=f"Field '{name}' mixes a plain value with comparison operators",
                    field=name,
                )
            _append_value(operators, match.group("op").lower(), value)
        else:
            if isinstance(params.get(key), dict):
                raise ValidationError(
                    message=f"Field '{key}' mixes a plain value with comparison operators",
                    field=key,
                )
            _append_value(params, key, value)
    return params


def _append_value(target: Dict[str, Any], key: str, value: Any) -> None:
    if key not in target:
        target[key] = value
    elif isinstance(target[key], list):
        target[key].append(value)
    else:
        target[key] = [target[key], value]


def parse_identity(resource: str, raw: Any) -> uuid.UUID:
    """
    Parse a record id taken from the URL path.

    Raises:
        NotFoundError: the id is not a UUID, so no record can have it.
    """
    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        raise NotFoundError(resource=resource, resource_id=str(raw))


def parse_positive_int(raw: Any, default: int, maximum: Optional[int] = None) -> int:
    """
    Parse a page/limit parameter.

    Missing, malformed, zero and negative values all fall back to `default`,
    as do values above `maximum`. For repeated parameters the last value wins.
    """
    if isinstance(raw, (list, tuple)):
        raw = raw[-1] if raw else None
    if raw is None or isinstance(raw, bool):
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        return default
    if value <= 0 or (maximum is not None and value > maximum):
        return default
    return value


def scalar_type(column) -> Optional[type]:
    """The column's Python type, or None when it cannot be compared or ordered."""
    try:
        target = column.type.python_type
    except NotImplementedError:
        return None
    return target if target in _SCALAR_TYPES else None


def coerce_value(column, raw: Any) -> Any:
    """
    Convert a query-string value to the column's Python type.

    Raises:
        ValidationError: the value does not parse, or the column type
            (JSON documents and lists) cannot be compared.
    """
    name = column.key
    target = scalar_type(column)
    if target is None:
        raise ValidationError(
            message=f"Field '{name}' cannot be used as a filter",
            field=name,
        )

    if not isinstance(raw, str):
        if isinstance(raw, target) and not (target is int and isinstance(raw, bool)):
            return raw
        raw = str(raw)

    text = raw.strip()
    try:
        if target is str:
            return raw
        if target is bool:
            lowered = text.lower()
            if lowered in _TRUE_VALUES:
                return True
            if lowered in _FALSE_VALUES:
                return False
            raise ValueError(raw)
        if target is datetime:
            return datetime.fromisoformat(text)
        if target is uuid.UUID:
            return uuid.UUID(text)
        return target(text)
    except (ValueError, ArithmeticError):
        raise ValidationError(
            message=f"Invalid value '{raw}' for field '{name}'",
            field=name,
            context={"value": raw},
        )


def _split_values(operand: Any) -> List[Any]:
    items = operand if isinstance(operand, (list, tuple)) else [operand]
    values: List[Any] = []
    for item in items:
        if isinstance(item, str):
            values.extend(part.strip() for part in item.split(",") if part.strip())
        else:
            values.append(item)
    return values


def translate_filter(name: str, value: Any, columns) -> List[FilterExpr]:
    """
    Translate one non-reserved parameter into filter expressions.

    "true"                    → [Eq]
    ["a", "b"]                → [In]
    {"gte": "5", "lt": "10"}  → [Gte, Lt]
    {"in": "a,b"}             → [In]
    """
    if name not in columns:
        raise ValidationError(message=f"Unknown filter field '{name}'", field=name)
    column = columns[name]

    if isinstance(value, Mapping):
        expressions: List[FilterExpr] = []
        for op, operand in value.items():
            if op == "in":
                expressions.append(
                    In(name, tuple(coerce_value(column, v) for v in _split_values(operand)))
                )
            elif op in COMPARISON_OPERATORS:
                expr_type = COMPARISON_OPERATORS[op]
                operands = operand if isinstance(operand, (list, tuple)) else [operand]
                expressions.extend(expr_type(name, coerce_value(column, v)) for v in operands)
            else:
                raise ValidationError(
                    message=(
                        f"Unsupported operator '{op}' for field '{name}'. "
                        f"Use one of: gt, gte, lt, lte, in"
                    ),
                    field=name,
                )
        return expressions

    if isinstance(value, (list, tuple)):
        return [In(name, tuple(coerce_value(column, v) for v in value))]
    return [Eq(name, coerce_value(column, value))]


def _field_tokens(raw: Any) -> List[str]:
    if isinstance(raw, (list, tuple)):
        raw = ",".join(str(item) for item in raw)
    return [token for token in _FIELD_SEPARATOR.split(str(raw)) if token]


def parse_projection(raw: Any, columns) -> Tuple[str, ...]:
    """Requested field names, deduplicated, with the identity field first."""
    fields = [IDENTITY_FIELD]
    for token in _field_tokens(raw):
        if token not in columns:
            raise ValidationError(message=f"Unknown select field '{token}'", field=token)
        if token not in fields:
            fields.append(token)
    return tuple(fields)


def parse_sort(raw: Any, columns) -> Tuple[SortKey, ...]:
    """Sort keys in request order, with an ascending id tie-breaker appended."""
    keys: List[SortKey] = []
    seen = set()
    for token in _field_tokens(raw):
        descending = token.startswith("-")
        name = token.lstrip("-+")
        if name not in columns:
            raise ValidationError(message=f"Unknown sort field '{name}'", field=name)
        if scalar_type(columns[name]) is None:
            raise ValidationError(message=f"Field '{name}' cannot be used for sorting", field=name)
        if name in seen:
            continue
        seen.add(name)
        keys.append(SortKey(field=name, descending=descending))
    if IDENTITY_FIELD not in seen:
        keys.append(SortKey(field=IDENTITY_FIELD))
    return tuple(keys)


def build_list_query(
    model: Type[Base],
    raw_params: Mapping[str, Any],
    base_filters: Sequence[FilterExpr] = (),
) -> ListQuery:
    """
    Validate raw parameters against `model` and build a ListQuery.

    `base_filters` are applied in addition to the client's filters (used by
    nested routes such as /bootcamps/{id}/courses).
    """
    columns = model.__table__.c

    filters: List[FilterExpr] = list(base_filters)
    for name, value in raw_params.items():
        if name in RESERVED_PARAMS:
            continue
        filters.extend(translate_filter(name, value, columns))

    select_param = raw_params.get("select")
    fields = parse_projection(select_param, columns) if select_param else ()

    sort_param = raw_params.get("sort")
    sort = parse_sort(sort_param if sort_param else DEFAULT_SORT, columns)

    limit = min(
        parse_positive_int(raw_params.get("limit"), settings.default_page_limit),
        settings.max_page_limit,
    )
    # Pages starting past MAX_START_INDEX fall back to the default page.
    max_page = MAX_START_INDEX // limit + 1

    return ListQuery(
        filters=tuple(filters),
        fields=fields,
        sort=sort,
        page=parse_positive_int(raw_params.get("page"), settings.default_page, max_page),
        limit=limit,
    )


# ══════════════════════════════════════════════════════════════════════════
# Execution
# ══════════════════════════════════════════════════════════════════════════

async def list_records(
    db: AsyncSession,
    model: Type[Base],
    raw_params: Mapping[str, Any],
    populate: Optional[PopulateSpec] = None,
    base_filters: Sequence[FilterExpr] = (),
) -> ListResult:
    """
    Run the list pipeline for one request.

    Args:
        db: Session to run the queries on (the store handle)
        model: ORM model whose table is listed
        raw_params: Output of parse_query_string() (or an equivalent mapping)
        populate: Optional related-record embedding
        base_filters: Filters imposed by the caller, AND-ed with the client's

    Returns:
        ListResult with at most `limit` records, pagination descriptors and
        the filtered total.

    Raises:
        ValidationError: Bad filter/select/sort input (→ 400)
        DatabaseError: The store failed (→ 500); no partial result is returned
    """
    query = build_list_query(model, raw_params, base_filters)
    table = model.__table__
    columns = table.c

    clauses = [to_clause(expr, columns) for expr in query.filters]
    selected = query.fields or tuple(columns.keys())
    fetched = selected
    if populate is not None and populate.local_field not in fetched:
        fetched = fetched + (populate.local_field,)

    order_by = [
        columns[key.field].desc() if key.descending else columns[key.field].asc()
        for key in query.sort
    ]

    count_stmt = select(func.count()).select_from(table).where(*clauses)
    page_stmt = (
        select(*(columns[name] for name in fetched))
        .where(*clauses)
        .order_by(*order_by)
        .offset(query.start_index)
        .limit(query.limit)
    )

    logger.debug(
        "Listing %s: filters=%s fields=%s sort=%s page=%d limit=%d",
        table.name,
        query.filters,
        selected,
        query.sort,
        query.page,
        query.limit,
    )

    try:
        total = (await db.execute(count_stmt)).scalar_one()
        rows = (await db.execute(page_stmt)).mappings().all()
        records = [dict(row) for row in rows]

        if populate is not None and records:
            await _populate(db, records, populate)
            if populate.local_field not in selected:
                for record in records:
                    record.pop(populate.local_field, None)

    except SQLAlchemyError as e:
        logger.error("Database error listing %s: %s", table.name, str(e), exc_info=True)
        raise DatabaseError(
            message=f"Could not retrieve {table.name}. Please try again.",
            context={"table": table.name, "error_type": type(e).__name__},
        )

    return ListResult(
        records=records,
        pagination=paginate(query.page, query.limit, total),
        total=total,
    )


async def _populate(
    db: AsyncSession,
    records: List[Dict[str, Any]],
    spec: PopulateSpec,
) -> None:
    """Embed related records in place with one batched IN query."""
    keys = {record[spec.local_field] for record in records if record.get(spec.local_field) is not None}

    grouped: Dict[Any, List[Dict[str, Any]]] = defaultdict(list)
    if keys:
        related = spec.model.__table__.c
        embedded = [IDENTITY_FIELD] + [name for name in spec.fields if name != IDENTITY_FIELD]
        fetched = embedded + ([spec.foreign_field] if spec.foreign_field not in embedded else [])

        stmt = (
            select(*(related[name] for name in fetched))
            .where(related[spec.foreign_field].in_(list(keys)))
            .order_by(related[IDENTITY_FIELD])
        )
        for row in (await db.execute(stmt)).mappings():
            grouped[row[spec.foreign_field]].append({name: row[name] for name in embedded})

    for record in records:
        matches = grouped.get(record.get(spec.local_field), [])
        if spec.many:
            record[spec.as_field] = matches
        else:
            record[spec.as_field] = matches[0] if matches else None
