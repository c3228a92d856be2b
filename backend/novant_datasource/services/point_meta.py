from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError

from ..errors import DecodeError, MissingPointError
from ..schemas.upstream import PointRecord, PointsResponseFlat, PointsResponseGrouped


def resolve_points(response: Dict[str, Any]) -> Dict[str, PointRecord]:
    """Flatten a ``/points`` response into a lookup keyed by point id.

    Both the flat ``{"points": [...]}`` and the grouped
    ``{"sources": [{"points": [...]}]}`` shapes are accepted. Every point in
    the response is kept; callers pick the ids they asked for.
    """
    try:
        if "sources" in response:
            grouped = PointsResponseGrouped.model_validate(response)
            points = [p for source in grouped.sources for p in source.points]
        elif "points" in response:
            points = PointsResponseFlat.model_validate(response).points
        else:
            raise DecodeError("Novant /points response has neither 'points' nor 'sources'")
    except PydanticValidationError as exc:
        raise DecodeError(f"Unexpected /points response shape: {exc.errors()[0]['msg']}") from exc

    return {p.id: p for p in points}


def point_names(lookup: Dict[str, PointRecord], point_ids: List[str]) -> List[str]:
    """Display names for ``point_ids`` in request order."""
    names: List[str] = []
    for pid in point_ids:
        record = lookup.get(pid)
        if record is None:
            raise MissingPointError(pid)
        names.append((record.name or "").strip() or pid)
    return names
