"""
List query shaping for collection endpoints.

    ?select=title,tags&sort=-createdAt&page=2&limit=10&isPublished=true&createdAt[gte]=2026-01-01

Only fields named in the collection's field map may be filtered, sorted or
selected; values are converted to the field's type.
"""
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from starlette.datastructures import QueryParams

from database import serialize
from errors import ValidationError

RESERVED = {"select", "sort", "page", "limit"}
OPERATOR_KEY = re.compile(r"^(\w+)\[(gt|gte|lt|lte|in)\]$")
DEFAULT_LIMIT = 25
MAX_LIMIT = 100
DEFAULT_SORT = [("createdAt", DESCENDING)]

FieldTypes = Mapping[str, type]


def _check_field(name: str, fields: FieldTypes) -> str:
    if name not in fields:
        raise ValidationError(f"Unknown field: {name or '(empty)'}")
    return name


def _convert(field: str, value: str, fields: FieldTypes) -> Any:
    kind = fields[field]
    if kind is bool:
        if value not in ("true", "false"):
            raise ValidationError(f"{field} must be true or false")
        return value == "true"
    if kind in (int, float):
        try:
            number = kind(value)
        except ValueError:
            raise ValidationError(f"{field} must be a number")
        if not math.isfinite(number):
            raise ValidationError(f"{field} must be a finite number")
        return number
    if kind is datetime:
        try:
            moment = datetime.fromisoformat(value)
        except ValueError:
            raise ValidationError(f"{field} must be an ISO date")
        # Stored datetimes are naive UTC
        if moment.tzinfo is not None:
            moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
        return moment
    return value


def build_filter(params: QueryParams, fields: FieldTypes) -> dict:
    query: Dict[str, Any] = {}
    for key, value in params.multi_items():
        if key in RESERVED:
            continue
        match = OPERATOR_KEY.match(key)
        if match:
            field, op = match.groups()
            _check_field(field, fields)
            if op == "in":
                operand = [_convert(field, v, fields) for v in value.split(",") if v]
            else:
                operand = _convert(field, value, fields)
            query.setdefault(field, {})[f"${op}"] = operand
        else:
            query[_check_field(key, fields)] = _convert(key, value, fields)
    return query


def parse_sort(raw: Optional[str], fields: FieldTypes) -> List[Tuple[str, int]]:
    order = []
    for name in (raw or "").split(","):
        name = name.strip()
        if not name:
            continue
        if name.startswith("-"):
            order.append((_check_field(name[1:], fields), DESCENDING))
        else:
            order.append((_check_field(name, fields), ASCENDING))
    return order or DEFAULT_SORT


def parse_projection(raw: Optional[str], fields: FieldTypes) -> Optional[dict]:
    names = [name.strip() for name in (raw or "").split(",") if name.strip()]
    if not names:
        return None
    return {_check_field(name, fields): 1 for name in names}


def _positive_int(params: QueryParams, name: str, default: int) -> int:
    raw = params.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
    if value < 1:
        raise ValidationError(f"{name} must be at least 1")
    return value


def advanced_results(db: Database, collection_name: str, params: QueryParams, fields: FieldTypes) -> dict:
    page = _positive_int(params, "page", 1)
    limit = min(_positive_int(params, "limit", DEFAULT_LIMIT), MAX_LIMIT)
    query = build_filter(params, fields)
    projection = parse_projection(params.get("select"), fields)
    order = parse_sort(params.get("sort"), fields)
    start = (page - 1) * limit

    collection = db[collection_name]
    total = collection.count_documents(query)
    cursor = collection.find(query, projection).sort(order).skip(start).limit(limit)
    data = [serialize(doc) for doc in cursor]

    pagination = {}
    if start + limit < total:
        pagination["next"] = {"page": page + 1, "limit": limit}
    if start > 0:
        pagination["prev"] = {"page": page - 1, "limit": limit}

    return {"success": True, "count": len(data), "pagination": pagination, "data": data}
