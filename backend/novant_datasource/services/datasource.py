import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import tzinfo
from typing import Any, Dict, List, NamedTuple, Optional

from .. import settings
from ..context import CancelToken, query_logger
from ..errors import DatasourceError, ValidationError
from ..schemas.models import (
    CheckHealthResult,
    DataQuery,
    DataResponse,
    Frame,
    QueryDataResponse,
)
from .frames import assemble_frame
from .novant_client import NovantClient
from .point_meta import point_names, resolve_points
from .trends import DayBuckets, fetch_range

LOGGER = logging.getLogger(__name__)


class QueryParams(NamedTuple):
    source_id: str
    point_ids: List[str]


def _ensure(value: Any, name: str) -> str:
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"Invalid {name} value: expected a string")
    v = (value or "").strip()
    if not v:
        raise ValidationError(f"Missing {name} value")
    return v


def parse_params(params: Dict[str, Any]) -> QueryParams:
    # deviceId is what older query editors saved instead of sourceId.
    source_id = _ensure(params.get("sourceId", params.get("deviceId")), "sourceId")
    raw_ids = _ensure(params.get("pointIds"), "pointIds")
    point_ids = [p.strip() for p in raw_ids.split(",") if p.strip()]
    if not point_ids:
        raise ValidationError("Missing pointIds value")
    return QueryParams(source_id, point_ids)


class NovantDatasource:
    """Answers host queries and health checks for one datasource instance."""

    def __init__(
        self,
        client: NovantClient,
        uid: Optional[str] = None,
        tz: Optional[tzinfo] = None,
        workers: int = settings.NOVANT_QUERY_WORKERS,
    ):
        self.client = client
        self.uid = uid
        self.tz = tz if tz is not None else settings.resolve_timezone()
        self.workers = max(1, workers)

    def query_data(self, queries: List[DataQuery], token: Optional[CancelToken] = None) -> QueryDataResponse:
        """Run every query of a batch; one failing query never fails the batch."""
        LOGGER.info("QueryData called with %d queries (datasource=%s)", len(queries), self.uid)
        token = token or CancelToken()
        if self.workers > 1 and len(queries) > 1:
            with ThreadPoolExecutor(max_workers=min(self.workers, len(queries))) as pool:
                responses = list(pool.map(lambda q: self._query_forked(q, token), queries))
        else:
            responses = [self.query(q, token) for q in queries]

        out = QueryDataResponse()
        for q, res in zip(queries, responses):
            out.results[q.refId] = res
        return out

    def _query_forked(self, query: DataQuery, token: CancelToken) -> DataResponse:
        # requests sessions are not safe to share across pool threads.
        with self.client.fork() as client:
            token.on_cancel(client.close)
            return self.query(query, token, client=client)

    def query(
        self,
        query: DataQuery,
        token: Optional[CancelToken] = None,
        client: Optional[NovantClient] = None,
    ) -> DataResponse:
        log = query_logger(LOGGER, query.refId, self.uid)
        try:
            frame = self._run(query, token or CancelToken(), log, client or self.client)
        except DatasourceError as exc:
            log.error("query failed: %s: %s", type(exc).__name__, exc)
            return DataResponse(error=str(exc), errorType=type(exc).__name__)
        return DataResponse(frames=[frame])

    def _run(
        self,
        query: DataQuery,
        token: CancelToken,
        log: logging.LoggerAdapter,
        client: NovantClient,
    ) -> Frame:
        params = parse_params(query.params)
        time_range = query.timeRange
        if time_range.from_time.tzinfo is None or time_range.to_time.tzinfo is None:
            raise ValidationError("timeRange must carry a UTC offset")
        if time_range.to_time < time_range.from_time:
            raise ValidationError("timeRange.to must not be before timeRange.from")

        meta = client.call("points", {"source_id": params.source_id}, token=token, logger=log)
        names = point_names(resolve_points(meta), params.point_ids)

        buckets = DayBuckets(time_range.from_time, time_range.to_time, tz=self.tz)
        log.info("fetching %d points over %d days from %s", len(params.point_ids), len(buckets), params.source_id)
        times, columns = fetch_range(
            client,
            params.source_id,
            params.point_ids,
            buckets,
            token=token,
            logger=log,
        )
        return assemble_frame(times, columns, names)

    def check_health(self) -> CheckHealthResult:
        LOGGER.info("CheckHealth called (datasource=%s)", self.uid)
        try:
            self.client.call("ping", {})
        except DatasourceError as exc:
            return CheckHealthResult(status="ERROR", message=str(exc))
        return CheckHealthResult(status="OK", message="Data source is working")
