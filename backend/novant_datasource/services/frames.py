from datetime import datetime
from typing import List

from ..schemas.models import Frame, FrameField


def assemble_frame(
    times: List[datetime],
    columns: List[List[float]],
    names: List[str],
    name: str = "response",
) -> Frame:
    fields = [FrameField(name="time", type="time", values=list(times))]
    for label, values in zip(names, columns):
        fields.append(FrameField(name=label, type="number", values=list(values)))
    return Frame(name=name, fields=fields)
