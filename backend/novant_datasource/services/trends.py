"""Day-by-day trend fetching and column merging."""
import logging
import math
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, Dict, Iterable, Iterator, List, NamedTuple, Optional, Tuple

from dateutil import parser
from pydantic import ValidationError as PydanticValidationError

from .. import settings
from ..context import CancelToken
from ..errors import DecodeError, ParseError
from ..schemas.upstream import TrendsResponseV1, TrendsResponseV2
from .novant_client import Logger, NovantClient

LOGGER = logging.getLogger(__name__)

MISSING = math.nan

Columns = Tuple[List[datetime], List[List[float]]]


class DayBucket(NamedTuple):
    start: datetime
    end: datetime

    @property
    def date(self) -> str:
        return self.start.date().isoformat()


class DayBuckets:
    """Local-midnight day buckets covering ``[start, end]``.

    The day holding ``end`` is always included. Iterating twice yields the
    same buckets.
    """

    def __init__(self, start: datetime, end: datetime, tz: Optional[tzinfo] = None):
        self.tz = tz or start.tzinfo
        self.start = self._local(start)
        self.end = self._local(end)

    def _local(self, dt: datetime) -> datetime:
        if self.tz is None or dt.tzinfo is None:
            return dt
        return dt.astimezone(self.tz)

    def _midnight(self, day: date) -> datetime:
        return datetime.combine(day, time(0), tzinfo=self.tz)

    def __iter__(self) -> Iterator[DayBucket]:
        day = self.start.date()
        last = self.end.date()
        while day <= last:
            nxt = day + timedelta(days=1)
            yield DayBucket(self._midnight(day), self._midnight(nxt))
            day = nxt

    def __len__(self) -> int:
        return max(0, (self.end.date() - self.start.date()).days + 1)


def parse_ts(raw: Any) -> datetime:
    if not isinstance(raw, str) or not raw:
        raise ParseError(f"Trend row has no ts value: {raw!r}")
    try:
        ts = parser.isoparse(raw)
    except ValueError as exc:
        raise ParseError(f"Invalid RFC3339 timestamp {raw!r}: {exc}") from exc
    if ts.tzinfo is None:
        raise ParseError(f"Invalid RFC3339 timestamp {raw!r}: missing UTC offset")
    return ts


def _value(raw: Any) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return MISSING
    return float(raw)


def trend_rows(response: Dict[str, Any]) -> List[Dict[str, Any]]:
    try:
        if "trends" in response:
            return TrendsResponseV1.model_validate(response).trends
        if "data" in response:
            return TrendsResponseV2.model_validate(response).data
    except PydanticValidationError as exc:
        raise DecodeError(f"Unexpected /trends response shape: {exc.errors()[0]['msg']}") from exc
    raise DecodeError("Novant /trends response has neither 'trends' nor 'data'")


def merge_rows(rows: Iterable[Dict[str, Any]], point_ids: List[str]) -> Columns:
    """Split trend rows into a time column and one value column per point.

    Every column receives exactly one entry per row; absent or null values
    become ``MISSING``.
    """
    times: List[datetime] = []
    columns: List[List[float]] = [[] for _ in point_ids]
    for row in rows:
        times.append(parse_ts(row.get("ts")))
        for col, pid in zip(columns, point_ids):
            col.append(_value(row.get(pid)))
    return times, columns


def fetch_bucket(
    client: NovantClient,
    source_id: str,
    point_ids: List[str],
    bucket: DayBucket,
    interval: str = settings.NOVANT_TREND_INTERVAL,
    token: Optional[CancelToken] = None,
    logger: Optional[Logger] = None,
) -> Columns:
    log = logger or LOGGER
    payload = client.call(
        "trends",
        {
            "source_id": source_id,
            "point_ids": ",".join(point_ids),
            "date": bucket.date,
            "interval": interval,
        },
        token=token,
        logger=log,
    )
    times, columns = merge_rows(trend_rows(payload), point_ids)
    log.debug("trends %s: %d rows", bucket.date, len(times))
    return times, columns


def fetch_range(
    client: NovantClient,
    source_id: str,
    point_ids: List[str],
    buckets: Iterable[DayBucket],
    interval: str = settings.NOVANT_TREND_INTERVAL,
    token: Optional[CancelToken] = None,
    logger: Optional[Logger] = None,
) -> Columns:
    """Fetch every bucket in order and concatenate the columns."""
    times: List[datetime] = []
    columns: List[List[float]] = [[] for _ in point_ids]
    for bucket in buckets:
        day_times, day_columns = fetch_bucket(
            client, source_id, point_ids, bucket, interval=interval, token=token, logger=logger
        )
        times.extend(day_times)
        for col, day_col in zip(columns, day_columns):
            col.extend(day_col)
    return times, columns
