"""Chart model rendered by the admin dashboard."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ChartType = Literal["bar", "line"]


class ChartSpec(BaseModel):
    """Bar or line chart over a list of rows keyed by ``x_key``/``y_key``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: Literal["chart"] = "chart"
    chart: ChartType
    title: str
    x_key: str
    y_key: str
    data: list[dict[str, str | int | float]] = Field(default_factory=list)
