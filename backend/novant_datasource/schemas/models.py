import math
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

HealthStatus = Literal["OK", "ERROR"]
StreamStatus = Literal["OK", "NOT_FOUND", "PERMISSION_DENIED"]
FieldType = Literal["time", "number"]


class PluginContext(BaseModel):
    datasourceUid: Optional[str] = None
    decryptedSecureJsonData: Dict[str, str] = Field(default_factory=dict)

    @property
    def api_key(self) -> str:
        return (self.decryptedSecureJsonData.get("apiKey") or "").strip()


class TimeRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_time: datetime = Field(alias="from")
    to_time: datetime = Field(alias="to")


class DataQuery(BaseModel):
    """One host query; keys other than refId/timeRange are the query's params."""

    model_config = ConfigDict(extra="allow")

    refId: str = "A"
    timeRange: TimeRange

    @property
    def params(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


class QueryDataRequest(BaseModel):
    pluginContext: PluginContext = Field(default_factory=PluginContext)
    queries: List[DataQuery] = Field(default_factory=list)
    timeoutSeconds: Optional[float] = Field(default=None, gt=0)


class FrameField(BaseModel):
    name: str
    type: FieldType
    values: List[Any] = Field(default_factory=list)

    @field_serializer("values", when_used="json")
    def _nan_to_null(self, values: List[Any]) -> List[Any]:
        return [None if isinstance(v, float) and math.isnan(v) else v for v in values]


class Frame(BaseModel):
    name: str = "response"
    fields: List[FrameField] = Field(default_factory=list)

    def field(self, name: str) -> FrameField:
        for f in self.fields:
            if f.name == name:
                return f
        raise KeyError(name)


class DataResponse(BaseModel):
    frames: List[Frame] = Field(default_factory=list)
    error: Optional[str] = None
    errorType: Optional[str] = None


class QueryDataResponse(BaseModel):
    results: Dict[str, DataResponse] = Field(default_factory=dict)


class CheckHealthRequest(BaseModel):
    pluginContext: PluginContext = Field(default_factory=PluginContext)


class CheckHealthResult(BaseModel):
    status: HealthStatus
    message: str


class StreamRequest(BaseModel):
    pluginContext: PluginContext = Field(default_factory=PluginContext)
    path: str


class SubscribeStreamResponse(BaseModel):
    status: StreamStatus


class PublishStreamResponse(BaseModel):
    status: StreamStatus
