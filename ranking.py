"""
NephroTwin: Treatment Ranker
============================
Exhaustive search over small treatment regimens (1, 2 or 3 drugs from the
available pool). Each regimen is simulated with the patient's current habits,
checked for interactions, scored, and the top 10 are returned.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from itertools import combinations
from typing import List, Optional, Sequence, Tuple

from constants import ENGINE_LIMITS, RANKING_WEIGHTS, InteractionSeverity
from core_metrics import round_half_up, round_to
from interactions import DEFAULT_CLASSIFIER, DrugClassifier, detect_interactions
from models import (
    DrugInteraction,
    KidneyMetrics,
    LifestyleAdjustments,
    PatientData,
    Treatment,
    TreatmentPoolTooLargeError,
    TreatmentRanking,
)
from simulator import TreatmentSimulator

logger = logging.getLogger("nephrotwin-ranking")


def generate_reasoning(combo: Sequence[Treatment],
                       interactions: Sequence[DrugInteraction],
                       gfr_improvement: float,
                       risk_reduction: float) -> str:
    parts = []
    if gfr_improvement > RANKING_WEIGHTS.STRONG_GFR_GAIN:
        parts.append(f"Strong GFR improvement (+{round_to(gfr_improvement, 1)})")
    elif gfr_improvement > 0:
        parts.append(f"Moderate GFR benefit (+{round_to(gfr_improvement, 1)})")

    if risk_reduction > RANKING_WEIGHTS.SIGNIFICANT_RISK_REDUCTION:
        parts.append("significant risk reduction")

    if not interactions:
        parts.append("no drug interactions")
    else:
        severe = sum(1 for i in interactions if i.severity == InteractionSeverity.SEVERE)
        if severe > 0:
            parts.append(f"⚠️ {severe} severe interaction(s)")
        else:
            parts.append(f"{len(interactions)} mild/moderate interaction(s)")

    parts.append("monotherapy" if len(combo) == 1 else f"{len(combo)}-drug regimen")
    return " • ".join(parts)


class TreatmentRanker:
    """
    Stateless; `max_workers > 1` evaluates regimens on a thread pool. Results
    keep generation order either way, so ties resolve identically.
    """

    def __init__(self,
                 classifier: DrugClassifier = DEFAULT_CLASSIFIER,
                 max_pool_size: int = ENGINE_LIMITS.MAX_TREATMENT_POOL,
                 max_workers: Optional[int] = None):
        self.classifier = classifier
        self.max_pool_size = max_pool_size
        self.max_workers = max_workers

    @staticmethod
    def generate_combinations(pool: Sequence[Treatment]) -> List[Tuple[Treatment, ...]]:
        """Singles, then pairs, then triples, each in index order."""
        combos: List[Tuple[Treatment, ...]] = []
        for size in range(1, min(len(pool), ENGINE_LIMITS.MAX_COMBINATION_SIZE) + 1):
            combos.extend(combinations(pool, size))
        return combos

    def _evaluate(self,
                  baseline: KidneyMetrics,
                  patient: PatientData,
                  combo: Tuple[Treatment, ...]) -> TreatmentRanking:
        w = RANKING_WEIGHTS
        unchanged_habits = LifestyleAdjustments.from_patient(patient)
        result = TreatmentSimulator.simulate(baseline, patient, combo, unchanged_habits, self.classifier)
        interactions = detect_interactions(combo, self.classifier)

        severe = sum(1 for i in interactions if i.severity == InteractionSeverity.SEVERE)
        moderate = sum(1 for i in interactions if i.severity == InteractionSeverity.MODERATE)

        gfr_improvement = result.gfr - baseline.gfr
        risk_reduction = (
            (baseline.ckd_progression_risk - result.ckd_progression_risk) +
            (baseline.cardiovascular_risk - result.cardiovascular_risk) * w.CV_RISK_SHARE +
            (baseline.stone_risk - result.stone_risk) * w.STONE_RISK_SHARE
        )
        side_effect_risk = severe * w.SEVERE_PENALTY + moderate * w.MODERATE_PENALTY

        score = round_half_up(
            gfr_improvement * w.GFR_IMPROVEMENT +
            risk_reduction * w.RISK_REDUCTION +
            (result.overall_health_score - baseline.overall_health_score) * w.OVERALL_HEALTH -
            side_effect_risk * w.SIDE_EFFECT
        )

        return TreatmentRanking(
            combination=combo,
            score=score,
            gfr_improvement=round_to(gfr_improvement, 1),
            risk_reduction=round_half_up(risk_reduction),
            side_effect_risk=side_effect_risk,
            interaction_count=len(interactions),
            reasoning=generate_reasoning(combo, interactions, gfr_improvement, risk_reduction),
        )

    def rank(self,
             baseline: KidneyMetrics,
             patient: PatientData,
             available_treatments: Sequence[Treatment]) -> List[TreatmentRanking]:
        if not available_treatments:
            return []
        if len(available_treatments) > self.max_pool_size:
            raise TreatmentPoolTooLargeError(
                f"Treatment pool of {len(available_treatments)} exceeds the limit of {self.max_pool_size}"
            )

        combos = self.generate_combinations(available_treatments)
        logger.debug(f"Ranking {len(combos)} regimen(s) from a pool of {len(available_treatments)}")

        if self.max_workers and self.max_workers > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                rankings = list(executor.map(lambda c: self._evaluate(baseline, patient, c), combos))
        else:
            rankings = [self._evaluate(baseline, patient, c) for c in combos]

        # sorted() is stable with reverse=True: equal scores keep generation order
        rankings = sorted(rankings, key=lambda r: r.score, reverse=True)
        return rankings[:ENGINE_LIMITS.TOP_RANKINGS]
