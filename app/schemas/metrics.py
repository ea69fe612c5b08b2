"""
app/schemas/metrics.py

Response schemas for the metrics endpoint.

Metric fields serialize under the camelCase names dashboards consume
(``totalMRR``, ``grossRevenueRetention`` ...).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from app.domain.revenue import MetricsSummary, MonthlyMetrics


class MonthlyMetricsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    period: str
    total_mrr: float = Field(..., alias="totalMRR")
    arr: float
    customer_count: int = Field(..., alias="customerCount")
    new_mrr: float = Field(..., alias="newMRR")
    expansion_mrr: float = Field(..., alias="expansionMRR")
    contraction_mrr: float = Field(..., alias="contractionMRR")
    churned_mrr: float = Field(..., alias="churnedMRR")
    gross_revenue_retention: float = Field(..., alias="grossRevenueRetention")
    net_revenue_retention: float = Field(..., alias="netRevenueRetention")
    logo_churn_rate: float = Field(..., alias="logoChurnRate")
    magic_number: float | None = Field(default=None, alias="magicNumber")

    @classmethod
    def from_metrics(cls, metrics: MonthlyMetrics) -> MonthlyMetricsResponse:
        return cls.model_validate(metrics.to_wire())


class MetricsSummaryResponse(BaseModel):
    """
    API response model for a company's full metrics series.
    """

    model_config = ConfigDict(populate_by_name=True)

    has_data: bool = Field(..., alias="hasData")
    latest: MonthlyMetricsResponse | None = None
    series: list[MonthlyMetricsResponse] = Field(default_factory=list)
    start: str | None = None
    end: str | None = None
    months: int = Field(default=0, ge=0)
    mom_growth: float = Field(default=0.0, alias="momGrowth")

    @classmethod
    def from_summary(cls, summary: MetricsSummary) -> MetricsSummaryResponse:
        return cls(
            has_data=summary.has_data,
            latest=None if summary.latest is None else MonthlyMetricsResponse.from_metrics(summary.latest),
            series=[MonthlyMetricsResponse.from_metrics(metrics) for metrics in summary.series],
            start=summary.start,
            end=summary.end,
            months=summary.months,
            mom_growth=summary.mom_growth,
        )
