# revenue_validation.py
from __future__ import annotations

import logging
from datetime import datetime, timezone

from skillgap.schemas.affiliate import MetricTarget, MetricValidation, RevenueValidationResult


logger = logging.getLogger(__name__)


REVENUE_TARGETS = {
    # Share of analyses shown that lead to an affiliate click.
    "click_through_rate": MetricTarget(min=0.45, ideal=0.60),
    # Share of clicks that end in an enrollment or purchase.
    "conversion_rate": MetricTarget(min=0.08, ideal=0.12),
    # Average revenue per analysis shown, in dollars.
    "revenue_per_analysis": MetricTarget(min=3.0, ideal=5.0),
}

STATUS_ORDER = ("exceeds", "meets", "below", "critical")

BELOW_TARGET_ADVICE = {
    "click_through_rate": [
        "CTR below target: improve recommendation relevance by tuning the transferable skills matcher.",
        "CTR below target: surface quick wins (high-priority, short courses) more prominently.",
        "CTR below target: add ratings and review counts to course cards as social proof.",
    ],
    "conversion_rate": [
        "Conversion below target: favour partners offering discounts or free trials.",
        "Conversion below target: strengthen trust signals such as partner badges and the disclosure.",
        "Conversion below target: test showing fewer courses per skill to reduce choice paralysis.",
    ],
    "revenue_per_analysis": [
        "Revenue/analysis below target: prioritise higher-commission partners.",
        "Revenue/analysis below target: raise CTR and conversion to compound revenue.",
    ],
}


def metric_status(current: float, target: MetricTarget) -> str:
    if current >= target.ideal:
        return "exceeds"
    if current >= target.min:
        return "meets"
    if current >= target.min * 0.8:
        return "below"
    return "critical"


def _display(metric: str, value: float) -> str:
    if metric == "revenue_per_analysis":
        return f"${value:.2f}"
    return f"{value * 100:.1f}%"


def _recommendations(metric: str, status: str, current: float, target: MetricTarget) -> list[str]:
    if status == "exceeds":
        return [f"{metric}: exceeding target ({_display(metric, current)} vs {_display(metric, target.ideal)} ideal). Continue current strategy."]
    if status == "meets":
        return [f"{metric}: meets minimum ({_display(metric, current)}); optimise towards the ideal {_display(metric, target.ideal)}."]
    return list(BELOW_TARGET_ADVICE[metric])


class RevenueValidator:
    """Classifies affiliate metrics against fixed revenue targets.

    Reporting only: nothing here feeds back into ranking.
    """

    def validate_metric(self, metric: str, current: float) -> MetricValidation:
        target = REVENUE_TARGETS[metric]
        status = metric_status(current, target)
        return MetricValidation(
            metric=metric,
            current=current,
            target=target,
            status=status,
            percent_of_target=current / target.min * 100 if target.min else 0.0,
            recommendations=_recommendations(metric, status, current, target),
        )

    def validate(self, click_through_rate: float, conversion_rate: float, revenue_per_analysis: float) -> RevenueValidationResult:
        metrics = {
            "click_through_rate": self.validate_metric("click_through_rate", click_through_rate),
            "conversion_rate": self.validate_metric("conversion_rate", conversion_rate),
            "revenue_per_analysis": self.validate_metric("revenue_per_analysis", revenue_per_analysis),
        }
        overall = max((item.status for item in metrics.values()), key=STATUS_ORDER.index)
        meets_all = all(item.status in {"exceeds", "meets"} for item in metrics.values())
        return RevenueValidationResult(
            overall_status=overall,
            meets_all_targets=meets_all,
            validated_at=datetime.now(timezone.utc),
            metrics=metrics,
            summary=self._summary(overall, meets_all, metrics),
            action_items=[item for validation in metrics.values() for item in validation.recommendations],
        )

    def _summary(self, overall: str, meets_all: bool, metrics: dict[str, MetricValidation]) -> str:
        if meets_all:
            parts = [f"{name}: {_display(name, item.current)}" for name, item in metrics.items()]
            return "Revenue targets are being met. " + ", ".join(parts) + "."
        failing = [
            f"{name} at {_display(name, item.current)} ({item.percent_of_target:.0f}% of target)"
            for name, item in metrics.items()
            if item.status in {"below", "critical"}
        ]
        return f"Revenue targets not fully met (status: {overall}). Below target: {', '.join(failing)}."

    def log_result(self, result: RevenueValidationResult) -> None:
        log = logger.info if result.meets_all_targets else logger.warning
        log("Revenue validation status=%s: %s", result.overall_status, result.summary)
