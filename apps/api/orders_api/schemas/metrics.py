from pydantic import BaseModel, Field


class TimingStats(BaseModel):
    count: int = Field(ge=0)
    avg_s: float
    max_s: float


class MetricsResponse(BaseModel):
    """In-process counters: payment verifications, refunds, side-effect failures, HTTP timings."""

    counters: dict[str, int] = Field(default_factory=dict)
    timings: dict[str, TimingStats] = Field(default_factory=dict)
