"""Response shapes of the Novant API endpoints used by the backend.

``/points`` and ``/trends`` each exist in two variants; the variant is
picked from the top-level key present in the body.
"""
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict


class PointRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""


class PointsResponseFlat(BaseModel):
    points: List[PointRecord]


class SourceGroup(BaseModel):
    model_config = ConfigDict(extra="allow")

    points: List[PointRecord] = []


class PointsResponseGrouped(BaseModel):
    sources: List[SourceGroup]


class TrendsResponseV1(BaseModel):
    trends: List[Dict[str, Any]]


class TrendsResponseV2(BaseModel):
    data: List[Dict[str, Any]]
