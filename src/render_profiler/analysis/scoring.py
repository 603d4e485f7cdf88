"""Scoring engine shared by every detector.

A finding is scored from three 0-100 sub-scores:

    duration   log10(frame budgets consumed + 1) × 30
               + min(% of trace time × 5, 40)
    frequency  log10(occurrences + 1) × 25
               + min(occurrences per expected frame × 100, 50)
    impact     50 + a type-specific term (nodes, frame drops, layers, stall type)

The composite is the weighted sum times a per-type modifier, clamped to 100.
Severity is the more severe of the composite-score tier and the
frame-budget-impact tier. The engine holds no state besides its configuration,
so one instance can be shared across threads.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Optional

from ..config import DEFAULT_SCORING, ScoringConfig
from .models import (
    Confidence,
    DetectionType,
    RiskAssessment,
    Severity,
    StallType,
)

# Fraction of the measured cost a fix of each kind typically removes.
EFFICIENCY_FACTORS: dict[str, float] = {
    # CSS
    "contain_property": 0.8,
    "will_change": 0.7,
    "transform_instead_of_position": 0.75,
    "width_percentage": 0.6,
    "css_containment": 0.75,
    "layer_promotion": 0.65,
    # JS
    "batch_dom_writes": 0.7,
    "debounce": 0.5,
    "move_to_worker": 0.6,
    "use_raf": 0.65,
    "use_css_animation": 0.8,
    "virtualization": 0.7,
    "lazy_loading": 0.55,
    # GPU
    "reduce_layer_count": 0.6,
    "optimize_textures": 0.5,
    "reduce_overdraw": 0.55,
    "default": 0.5,
}

TYPE_MODIFIERS: dict[DetectionType, float] = {
    DetectionType.LAYOUT_THRASHING: 1.2,
    DetectionType.GPU_STALL: 1.1,
    DetectionType.LONG_TASK: 1.0,
    DetectionType.HEAVY_PAINT: 0.9,
    DetectionType.FORCED_REFLOW: 1.15,
}

RECOMMENDED_FIX: dict[DetectionType, str] = {
    DetectionType.LAYOUT_THRASHING: "batch_dom_writes",
    DetectionType.GPU_STALL: "reduce_layer_count",
    DetectionType.LONG_TASK: "use_raf",
    DetectionType.HEAVY_PAINT: "css_containment",
    DetectionType.FORCED_REFLOW: "batch_dom_writes",
}

FIX_DESCRIPTIONS: dict[DetectionType, str] = {
    DetectionType.LAYOUT_THRASHING: "batching DOM reads/writes",
    DetectionType.GPU_STALL: "optimizing GPU operations",
    DetectionType.LONG_TASK: "breaking up long tasks",
    DetectionType.HEAVY_PAINT: "applying CSS containment",
    DetectionType.FORCED_REFLOW: "eliminating forced synchronous layouts",
}

STALL_TYPE_BONUS: dict[StallType, float] = {
    StallType.SYNC: 25,
    StallType.TEXTURE_UPLOAD: 15,
    StallType.RASTER: 10,
}

# (frame-budget-impact % strictly above, severity)
_BUDGET_SEVERITY = (
    (100.0, Severity.CRITICAL),
    (50.0, Severity.HIGH),
    (25.0, Severity.WARNING),
)


@dataclass(frozen=True)
class ScoringInput:
    detection_type: DetectionType
    duration_ms: float  # total across occurrences
    occurrences: int
    frame_budget_ms: float
    trace_duration_ms: float
    affected_nodes: Optional[int] = None
    correlated_frame_drops: Optional[int] = None
    layer_count: Optional[int] = None
    stall_type: Optional[StallType] = None


@dataclass(frozen=True)
class ScoreBreakdown:
    duration_score: int
    frequency_score: int
    impact_score: int
    type_modifier: float
    weights: tuple[float, float, float]


@dataclass(frozen=True)
class ScoringResult:
    impact_score: int
    severity: Severity
    confidence: Confidence
    estimated_speedup_pct: int
    speedup_explanation: str
    frame_budget_impact_pct: float
    score_breakdown: ScoreBreakdown
    risk_assessment: RiskAssessment
    rank: Optional[int] = None


class ScoringEngine:
    """Turns raw detection measurements into comparable scores."""

    def __init__(self, config: Optional[ScoringConfig] = None):
        self._config = config or DEFAULT_SCORING

    def configure(self, **changes) -> None:
        """Replace individual config fields; the result is validated."""
        self._config = replace(self._config, **changes)

    def get_config(self) -> ScoringConfig:
        return self._config

    def get_efficiency_factors(self) -> dict[str, float]:
        return dict(EFFICIENCY_FACTORS)

    def calculate_score(self, data: ScoringInput) -> ScoringResult:
        cfg = self._config
        duration_score = self._duration_score(data)
        frequency_score = self._frequency_score(data)
        impact_component = self._impact_component(data)
        modifier = TYPE_MODIFIERS[data.detection_type]

        raw = (
            duration_score * cfg.duration_weight
            + frequency_score * cfg.frequency_weight
            + impact_component * cfg.impact_weight
        )
        score = min(100, _round_half_up(raw * modifier))

        avg_duration = data.duration_ms / max(data.occurrences, 1)
        budget_impact = avg_duration / data.frame_budget_ms * 100

        speedup_pct, explanation = self._estimate_speedup(data, budget_impact)

        return ScoringResult(
            impact_score=score,
            severity=self._severity(score, budget_impact),
            confidence=self._confidence(data),
            estimated_speedup_pct=speedup_pct,
            speedup_explanation=explanation,
            frame_budget_impact_pct=round(budget_impact, 1),
            score_breakdown=ScoreBreakdown(
                duration_score=_round_half_up(duration_score),
                frequency_score=_round_half_up(frequency_score),
                impact_score=_round_half_up(impact_component),
                type_modifier=modifier,
                weights=(cfg.duration_weight, cfg.frequency_weight, cfg.impact_weight),
            ),
            risk_assessment=self._assess_risk(data, score, budget_impact),
        )

    def batch_score(self, inputs: list[ScoringInput]) -> list[ScoringResult]:
        """Score every input and return results ranked by impact (rank 1 = worst)."""
        results = [self.calculate_score(i) for i in inputs]
        ordered = sorted(results, key=lambda r: r.impact_score, reverse=True)
        return [replace(r, rank=i + 1) for i, r in enumerate(ordered)]

    # -- sub-scores ----------------------------------------------------------

    @staticmethod
    def _duration_score(data: ScoringInput) -> float:
        trace_pct = data.duration_ms / data.trace_duration_ms * 100
        budgets_consumed = data.duration_ms / data.frame_budget_ms
        log_score = math.log10(budgets_consumed + 1) * 30
        linear_score = min(trace_pct * 5, 40)
        return min(100.0, log_score + linear_score)

    @staticmethod
    def _frequency_score(data: ScoringInput) -> float:
        expected_frames = data.trace_duration_ms / data.frame_budget_ms
        rate = data.occurrences / max(expected_frames, 1)
        log_score = math.log10(data.occurrences + 1) * 25
        rate_score = min(rate * 100, 50)
        return min(100.0, log_score + rate_score)

    @staticmethod
    def _impact_component(data: ScoringInput) -> float:
        score = 50.0
        kind = data.detection_type
        if kind is DetectionType.LAYOUT_THRASHING:
            if data.affected_nodes is not None:
                score += min(math.log10(data.affected_nodes + 1) * 20, 30)
        elif kind is DetectionType.LONG_TASK:
            if data.correlated_frame_drops is not None:
                score += min(data.correlated_frame_drops * 5, 40)
        elif kind is DetectionType.HEAVY_PAINT:
            if data.layer_count is not None:
                score += min(math.log10(data.layer_count + 1) * 15, 25)
        elif kind is DetectionType.GPU_STALL:
            if data.stall_type is not None:
                score += STALL_TYPE_BONUS.get(StallType(data.stall_type), 0)
        elif kind is DetectionType.FORCED_REFLOW:
            score += 20
            if data.affected_nodes is not None:
                score += min(math.log10(data.affected_nodes + 1) * 15, 20)
        return min(100.0, score)

    # -- classification ------------------------------------------------------

    def _severity(self, score: int, budget_impact: float) -> Severity:
        cfg = self._config
        score_tiers = (
            (cfg.critical_threshold, Severity.CRITICAL),
            (cfg.high_threshold, Severity.HIGH),
            (cfg.warning_threshold, Severity.WARNING),
        )
        for (threshold, severity), (budget_limit, _) in zip(score_tiers, _BUDGET_SEVERITY):
            if score >= threshold or budget_impact > budget_limit:
                return severity
        return Severity.INFO

    def _confidence(self, data: ScoringInput) -> Confidence:
        cfg = self._config
        avg = data.duration_ms / max(data.occurrences, 1)
        if avg >= cfg.high_confidence_ms and data.occurrences >= 3:
            return "high"
        if avg >= cfg.medium_confidence_ms or data.occurrences >= 2:
            return "medium"
        return "low"

    def _estimate_speedup(self, data: ScoringInput, budget_impact: float) -> tuple[int, str]:
        cap = self._config.max_speedup_cap
        fix_type = RECOMMENDED_FIX.get(data.detection_type, "default")
        efficiency = EFFICIENCY_FACTORS.get(fix_type, EFFICIENCY_FACTORS["default"])

        speedup = min(budget_impact / 100 * efficiency, cap)
        pct = _round_half_up(speedup * 100)

        budgets = data.duration_ms / data.frame_budget_ms
        explanation = (
            f"This issue consumes {budgets:.1f} frame budgets ({data.duration_ms:.1f}ms). "
            f"By {FIX_DESCRIPTIONS[data.detection_type]}, we estimate a {pct}% improvement "
            f"(based on {_round_half_up(efficiency * 100)}% typical efficiency for this fix type, "
            f"capped at {_round_half_up(cap * 100)}% for conservative estimation)."
        )
        return pct, explanation

    @staticmethod
    def _assess_risk(data: ScoringInput, score: int, budget_impact: float) -> RiskAssessment:
        factors: list[str] = []

        if budget_impact > 100 or score >= 80:
            ux = "critical"
            factors.append("Causes visible frame drops and jank")
        elif budget_impact > 50 or score >= 60:
            ux = "significant"
            factors.append("May cause noticeable stuttering")
        elif budget_impact > 25 or score >= 35:
            ux = "moderate"
            factors.append("Could affect smooth scrolling")
        else:
            ux = "minimal"
            factors.append("Unlikely to be user-visible")

        if data.occurrences >= 10 or data.duration_ms > 500:
            regression = "high"
            factors.append("Frequent occurrence suggests systemic issue")
        elif data.occurrences >= 5 or data.duration_ms > 200:
            regression = "medium"
            factors.append("Multiple occurrences detected")
        else:
            regression = "low"
            factors.append("Isolated occurrence")

        priority = max(1, math.ceil(score / 10))
        if ux == "critical":
            priority = min(10, priority + 2)
            factors.append("Priority boosted due to critical UX impact")
        if regression == "high":
            priority = min(10, priority + 1)
            factors.append("Priority boosted due to regression risk")

        return RiskAssessment(
            user_experience_impact=ux,
            regression_risk=regression,
            fix_priority=priority,
            factors=factors,
        )


def _round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (``round`` uses banker's rounding)."""
    return int(math.floor(value + 0.5))
