from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from skillgap.schemas.analysis import UserWarning


SortKey = Literal["relevance", "rating", "price_asc", "price_desc", "duration_asc", "duration_desc"]
MetricStatus = Literal["exceeds", "meets", "below", "critical"]


class CourseCandidate(BaseModel):
    title: str
    provider: str
    url: str
    # 0.0 means free.
    price: float = Field(default=0.0, ge=0)
    rating: float = Field(default=0.0, ge=0, le=5)
    review_count: int = Field(default=0, ge=0)
    estimated_hours: float = Field(default=0.0, ge=0)
    level: str = "Beginner"
    topics: list[str] = Field(default_factory=list)


class Course(CourseCandidate):
    affiliate_url: str
    tracking_id: str
    is_quick_win: bool = False
    score: int = 0


class CourseRecommendation(BaseModel):
    skill_name: str
    skill_priority: float = 0.0
    courses: list[Course] = Field(default_factory=list)


class GapReference(BaseModel):
    skill_name: str = Field(min_length=1)
    priority_score: float = Field(ge=0, le=100)


class UserPreferences(BaseModel):
    providers: list[str] = Field(default_factory=lambda: ["Coursera", "Udemy"])
    max_price: float | None = Field(default=None, ge=0)
    sort_by: SortKey = "relevance"
    top_n: int = Field(default=3, ge=1, le=10)


class CourseRecommendationRequest(BaseModel):
    analysis_id: int
    user_id: str = Field(min_length=1)
    # Defaults to every gap stored on the analysis.
    skill_gaps: list[GapReference] | None = Field(default=None, max_length=50)
    preferences: UserPreferences = Field(default_factory=UserPreferences)


class CourseRecommendationResponse(BaseModel):
    analysis_id: int
    recommendations: list[CourseRecommendation]
    disclosure: str
    warnings: list[UserWarning] = Field(default_factory=list)


class ClickEventRequest(BaseModel):
    analysis_id: int
    skill_name: str = Field(min_length=1)
    course_provider: str = Field(min_length=1)
    course_url: str = Field(min_length=1)
    course_title: str | None = None
    tracking_id: str | None = None


class ClickEventResponse(BaseModel):
    analysis_id: int
    skill_name: str
    course_provider: str
    click_count: int
    tracked_at: datetime


class ConversionEventRequest(ClickEventRequest):
    conversion_type: Literal["enrollment", "purchase", "completion"]
    revenue: float = Field(default=0.0, ge=0)


class AffiliateMetrics(BaseModel):
    analyses_shown: int
    total_clicks: int
    total_conversions: int
    total_revenue: float
    conversion_rate: float
    click_through_rate: float
    revenue_per_analysis: float


class ConversionEventResponse(BaseModel):
    analysis_id: int
    conversion_type: str
    revenue: float
    conversion_count: int
    total_revenue: float
    tracked_at: datetime
    metrics: AffiliateMetrics


class MetricTarget(BaseModel):
    min: float
    ideal: float


class MetricValidation(BaseModel):
    metric: str
    current: float
    target: MetricTarget
    status: MetricStatus
    # Share of the minimum target achieved, in percent.
    percent_of_target: float
    recommendations: list[str] = Field(default_factory=list)


class RevenueValidationResult(BaseModel):
    overall_status: MetricStatus
    meets_all_targets: bool
    validated_at: datetime
    metrics: dict[str, MetricValidation]
    summary: str
    action_items: list[str] = Field(default_factory=list)


class RevenueReport(BaseModel):
    metrics: AffiliateMetrics
    validation: RevenueValidationResult
