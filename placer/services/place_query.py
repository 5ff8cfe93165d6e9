"""Place listing: filter parsing, query composition and pagination.

Filters combine with AND semantics. When a geo point is given the result is
restricted to ``radius`` km around it and ordered nearest-first; the requested
sort field is ignored while the geo filter is active.
"""

from __future__ import annotations

from dataclasses import dataclass
from math import asin, cos, degrees, pi, radians, sin, sqrt
from typing import Any, Optional

from sqlalchemy import Select, and_, exists, func, or_, select
from sqlalchemy.orm import Session, selectinload

from placer.core.config import settings
from placer.models.comment import Comment
from placer.models.place import CATEGORIES, STATUS_PUBLISHED, Place, PlaceTag
from placer.models.user import User

EARTH_RADIUS_KM = 6371.0

SORT_FIELDS = {
    "createdAt": Place.created_at,
    "name": Place.name,
}


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """하버사인 공식으로 두 지점 사이 거리(km) 계산"""
    lat1, lon1 = radians(lat1), radians(lon1)
    lat2, lon2 = radians(lat2), radians(lon2)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * asin(min(1.0, sqrt(a)))
    return EARTH_RADIUS_KM * c


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _to_float(value: Any) -> Optional[float]:
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    # NaN/inf are not usable coordinates
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


def parse_paging(page: Any = None, limit: Any = None) -> tuple[int, int]:
    """Clamp page to >= 1 and limit to 1..MAX_PAGE_LIMIT; garbage falls back to defaults."""
    page_num = _to_int(page)
    page_num = max(1, page_num) if page_num is not None else 1

    limit_num = _to_int(limit)
    if limit_num is None:
        limit_num = settings.default_page_limit
    return page_num, min(max(1, limit_num), settings.max_page_limit)


def contains_pattern(text: str) -> str:
    """ILIKE pattern matching ``text`` literally anywhere; use with escape="\\"."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass
class GeoFilter:
    lat: float
    lng: float
    radius_km: float


@dataclass
class PlaceFilter:
    """Normalized listing parameters. Build with ``from_params``."""

    page: int = 1
    limit: int = 20
    search: Optional[str] = None
    category: Optional[str] = None
    author: Optional[str] = None
    tag: Optional[str] = None
    geo: Optional[GeoFilter] = None
    sort_by: str = "createdAt"
    sort_order: str = "desc"
    # False for "my places" views where the viewer is the author
    visible_only: bool = True

    @classmethod
    def from_params(
        cls,
        page: Any = None,
        limit: Any = None,
        search: Any = None,
        category: Any = None,
        author: Any = None,
        tag: Any = None,
        lat: Any = None,
        lng: Any = None,
        radius: Any = None,
        sort_by: Any = None,
        sort_order: Any = None,
    ) -> "PlaceFilter":
        """Parse raw query values leniently.

        Out-of-range page/limit are clamped, unknown enums fall back to their
        defaults, and unusable coordinates disable the geo filter.
        """
        page_num, limit_num = parse_paging(page, limit)

        category = _clean(category)
        if category is not None:
            category = category.lower()
            if category not in CATEGORIES:
                category = None

        sort_by = _clean(sort_by)
        if sort_by not in SORT_FIELDS:
            sort_by = "createdAt"
        sort_order = (_clean(sort_order) or "").lower()
        if sort_order not in ("asc", "desc"):
            sort_order = "desc"

        geo = None
        lat_num, lng_num = _to_float(lat), _to_float(lng)
        if lat_num is not None and lng_num is not None and -90 <= lat_num <= 90 and -180 <= lng_num <= 180:
            radius_num = _to_float(radius)
            if radius_num is None or radius_num <= 0:
                radius_num = settings.default_radius_km
            geo = GeoFilter(lat=lat_num, lng=lng_num, radius_km=radius_num)

        return cls(
            page=page_num,
            limit=limit_num,
            search=_clean(search),
            category=category,
            author=_clean(author),
            tag=_clean(tag),
            geo=geo,
            sort_by=sort_by,
            sort_order=sort_order,
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class PlacePage:
    items: list[tuple[Place, Optional[float]]]
    page: int
    limit: int
    total: int


def _conditions(flt: PlaceFilter) -> list:
    conds = []
    if flt.visible_only:
        conds.append(Place.is_public.is_(True))
        conds.append(Place.status == STATUS_PUBLISHED)
    if flt.search:
        pattern = contains_pattern(flt.search)
        conds.append(
            or_(
                Place.name.ilike(pattern, escape="\\"),
                Place.description.ilike(pattern, escape="\\"),
                Place.address.ilike(pattern, escape="\\"),
            )
        )
    if flt.category:
        conds.append(Place.category == flt.category)
    if flt.author:
        conds.append(Place.author_id == flt.author)
    if flt.tag:
        conds.append(exists().where(and_(PlaceTag.place_id == Place.id, PlaceTag.name == flt.tag)))
    if flt.geo:
        conds.extend(_bounding_box(flt.geo))
    return conds


def _bounding_box(geo: GeoFilter) -> list:
    """Coarse lat/lng box that contains the search circle (SQL prefilter)."""
    margin = 1.05
    angular = geo.radius_km / EARTH_RADIUS_KM
    lat_delta = degrees(angular) * margin
    conds = [Place.latitude.between(geo.lat - lat_delta, geo.lat + lat_delta)]

    # 극점을 포함하거나 반경이 너무 크면 경도 제한 없음
    cos_lat = cos(radians(geo.lat))
    if abs(geo.lat) + lat_delta >= 90 or angular >= pi / 2 or cos_lat <= 0:
        return conds
    ratio = sin(angular) / cos_lat
    if ratio >= 1:
        return conds
    lng_delta = degrees(asin(ratio)) * margin
    west, east = geo.lng - lng_delta, geo.lng + lng_delta
    if west < -180:
        conds.append(or_(Place.longitude >= west + 360, Place.longitude <= east))
    elif east > 180:
        conds.append(or_(Place.longitude >= west, Place.longitude <= east - 360))
    else:
        conds.append(Place.longitude.between(west, east))
    return conds


def _with_relations(stmt: Select) -> Select:
    return stmt.options(
        selectinload(Place.author),
        selectinload(Place.tags),
        selectinload(Place.photos),
        selectinload(Place.likes),
        selectinload(Place.comments).selectinload(Comment.author),
    )


def list_places(db: Session, flt: PlaceFilter) -> PlacePage:
    """Run the listing query; the count uses the same predicate as the page."""
    conds = _conditions(flt)
    if flt.geo:
        return _list_nearby(db, flt, conds)

    total = db.execute(select(func.count()).select_from(Place).where(*conds)).scalar_one()

    column = SORT_FIELDS[flt.sort_by]
    order = column.asc() if flt.sort_order == "asc" else column.desc()
    stmt = (
        _with_relations(select(Place))
        .where(*conds)
        .order_by(order, Place.id)
        .offset(flt.offset)
        .limit(flt.limit)
    )
    places = db.execute(stmt).scalars().all()
    return PlacePage(items=[(p, None) for p in places], page=flt.page, limit=flt.limit, total=total)


def _list_nearby(db: Session, flt: PlaceFilter, conds: list) -> PlacePage:
    geo = flt.geo
    rows = db.execute(select(Place.id, Place.latitude, Place.longitude).where(*conds)).all()

    matches: list[tuple[float, str]] = []
    for place_id, latitude, longitude in rows:
        distance_km = haversine_km(geo.lat, geo.lng, latitude, longitude)
        # maxDistance is an upper bound: the boundary is included
        if distance_km <= geo.radius_km:
            matches.append((distance_km, place_id))
    matches.sort()

    window = matches[flt.offset:flt.offset + flt.limit]
    if not window:
        return PlacePage(items=[], page=flt.page, limit=flt.limit, total=len(matches))

    ids = [place_id for _distance, place_id in window]
    loaded = {p.id: p for p in db.execute(_with_relations(select(Place)).where(Place.id.in_(ids))).scalars()}
    items = [(loaded[place_id], distance) for distance, place_id in window if place_id in loaded]
    return PlacePage(items=items, page=flt.page, limit=flt.limit, total=len(matches))


def recent_places_by(db: Session, user: User, limit: int = 6) -> list[Place]:
    """Latest public, published, non-anonymous places of a user."""
    stmt = (
        _with_relations(select(Place))
        .where(
            Place.author_id == user.id,
            Place.is_public.is_(True),
            Place.status == STATUS_PUBLISHED,
            Place.is_anonymous.is_(False),
        )
        .order_by(Place.created_at.desc(), Place.id)
        .limit(limit)
    )
    return list(db.execute(stmt).scalars())
