"""
NephroTwin: Time Projection
===========================
Exponential-approach forecast of a metrics snapshot. Improvement follows
1 - e^(-months/6): ~0.63 of the achievable gain at 6 months, ~0.86 at a year.
"""

import math
from dataclasses import replace
from typing import Sequence, Tuple

from constants import GFR_CONSTANTS, PROJECTION_CONSTANTS
from core_metrics import KidneyMetricsEngine, clamp, round_half_up, round_to
from models import ForecastPoint, InvalidInputError, KidneyMetrics


class TimeProjection:

    @staticmethod
    def improvement_factor(days_ahead: float) -> float:
        months = days_ahead / PROJECTION_CONSTANTS.DAYS_PER_MONTH
        return 1 - math.exp(-months / PROJECTION_CONSTANTS.TIME_CONSTANT_MONTHS)

    @staticmethod
    def project(metrics: KidneyMetrics, days_ahead: float) -> KidneyMetrics:
        """
        Moves GFR, efficiency, the main risks, the overall score and three
        heatmap regions toward their improved values. Everything else is
        carried through from `metrics`. 0 days returns the snapshot unchanged.
        """
        if days_ahead < 0:
            raise InvalidInputError(f"days_ahead must be >= 0, got {days_ahead}")

        c = PROJECTION_CONSTANTS
        f = TimeProjection.improvement_factor(days_ahead)

        # Headroom above the efficiency floor; negative below it (decline)
        max_gfr_gain = (metrics.efficiency - c.EFFICIENCY_FLOOR) * c.GFR_GAIN_PER_EFFICIENCY
        stress_dampening = f * c.STRESS_DAMPENING
        risk_dampening = f * c.RISK_DAMPENING

        new_gfr = round_to(clamp(metrics.gfr + max_gfr_gain * f * 2,
                                 GFR_CONSTANTS.MIN_GFR, GFR_CONSTANTS.MAX_GFR), 1)
        category, stage = KidneyMetricsEngine.gfr_stage(new_gfr)
        heatmap = metrics.risk_heatmap

        return replace(
            metrics,
            gfr=new_gfr,
            gfr_category=category,
            ckd_stage=stage,
            efficiency=round_half_up(clamp(metrics.efficiency + max_gfr_gain * f,
                                           GFR_CONSTANTS.MIN_EFFICIENCY, 100)),
            stress_index=round_half_up(clamp(metrics.stress_index - stress_dampening)),
            stone_risk=round_half_up(clamp(metrics.stone_risk - risk_dampening)),
            ckd_progression_risk=round_half_up(clamp(metrics.ckd_progression_risk - risk_dampening * c.CKD_RISK_SHARE)),
            cardiovascular_risk=round_half_up(clamp(metrics.cardiovascular_risk - risk_dampening * c.CV_RISK_SHARE)),
            overall_health_score=round_half_up(clamp(metrics.overall_health_score + f * c.OVERALL_GAIN)),
            risk_heatmap=replace(
                heatmap,
                glomerular=clamp(heatmap.glomerular + f * 3),
                tubular=clamp(heatmap.tubular + f * 3),
                vascular=clamp(heatmap.vascular + f * 2),
            ),
        )

    @staticmethod
    def forecast(metrics: KidneyMetrics,
                 horizons: Sequence[Tuple[int, str]] = PROJECTION_CONSTANTS.HORIZONS) -> Tuple[ForecastPoint, ...]:
        """Each horizon is projected from the same starting snapshot, never chained."""
        return tuple(
            ForecastPoint(days=days, label=label, metrics=TimeProjection.project(metrics, days))
            for days, label in horizons
        )
