"""
NephroTwin: Treatment Simulator
===============================
Applies drug and lifestyle interventions to a baseline assessment and returns
the post-intervention snapshot. Derived fields are recomputed from the new
primary values with the same builder the baseline uses.
"""

import logging
from dataclasses import dataclass, fields
from typing import Sequence

from constants import ENGINE_LIMITS, GFR_CONSTANTS, INTERACTION_PENALTIES, InteractionSeverity
from core_metrics import KidneyMetricsEngine, clamp, round_half_up, round_to
from drug_library import DRUG_LIBRARY, EffectBundle
from interactions import DEFAULT_CLASSIFIER, DrugClassifier, detect_interactions
from models import KidneyMetrics, LifestyleAdjustments, PatientData, Treatment

logger = logging.getLogger("nephrotwin-simulator")


@dataclass
class EffectTotals:
    """Running accumulators; same field names as EffectBundle."""
    gfr: float = 0.0
    creatinine: float = 0.0
    uric_acid: float = 0.0
    stress_reduction: float = 0.0
    stone_risk_reduction: float = 0.0
    ckd_progression_reduction: float = 0.0
    cv_risk_reduction: float = 0.0
    inflammation_reduction: float = 0.0
    anemia_improvement: float = 0.0
    mineral_bone_improvement: float = 0.0

    def absorb(self, bundle: EffectBundle, dose_multiplier: float = 1.0) -> None:
        for f in fields(self):
            delta = getattr(bundle, f.name)
            if f.name in bundle.dose_scaled:
                delta *= dose_multiplier
            setattr(self, f.name, getattr(self, f.name) + delta)


class TreatmentSimulator:

    @staticmethod
    def _apply_treatments(totals: EffectTotals,
                          treatments: Sequence[Treatment],
                          classifier: DrugClassifier) -> None:
        for t in treatments:
            # Diminishing returns after 3 tablets/day
            dose_multiplier = min(t.tablets, ENGINE_LIMITS.DOSE_SATURATION_TABLETS)
            bundle = DRUG_LIBRARY.effect_for(classifier.classify(t.medicine))
            if bundle is not None:
                totals.absorb(bundle, dose_multiplier)
                continue

            lowered = t.medicine.lower()
            for needle, fallback in DRUG_LIBRARY.UNCLASSIFIED_EFFECTS:
                if needle in lowered:
                    totals.absorb(fallback, dose_multiplier)

    @staticmethod
    def _apply_lifestyle(totals: EffectTotals,
                         patient: PatientData,
                         adjustments: LifestyleAdjustments) -> None:
        """Only improvements over the patient's current habits count."""
        hydration_gain = adjustments.hydration - patient.hydration_level
        if hydration_gain > 0:
            totals.stone_risk_reduction += hydration_gain * 5
            totals.gfr += hydration_gain * 0.5

        water_gain = adjustments.water_intake - patient.water_intake
        if water_gain > 0:
            totals.stone_risk_reduction += water_gain * 4

        salt_cut = patient.salt_intake - adjustments.salt_intake
        if salt_cut > 0:
            totals.stress_reduction += salt_cut * 3
            totals.gfr += salt_cut * 0.5
            totals.cv_risk_reduction += salt_cut * 1.5

        protein_cut = patient.protein_intake - adjustments.protein_intake
        if protein_cut > 0:
            totals.stress_reduction += protein_cut * 0.1
            totals.creatinine -= protein_cut * 0.002
            totals.ckd_progression_reduction += protein_cut * 0.15

        exercise_gain = adjustments.exercise_level - patient.exercise_level
        if exercise_gain > 0:
            totals.stress_reduction += exercise_gain * 1.5
            totals.cv_risk_reduction += exercise_gain * 2
            totals.inflammation_reduction += exercise_gain * 1

    @staticmethod
    def _apply_interaction_penalties(totals: EffectTotals,
                                     treatments: Sequence[Treatment],
                                     classifier: DrugClassifier) -> None:
        for interaction in detect_interactions(treatments, classifier):
            if interaction.severity == InteractionSeverity.SEVERE:
                gfr_penalty, stress_penalty = INTERACTION_PENALTIES.SEVERE
            elif interaction.severity == InteractionSeverity.MODERATE:
                gfr_penalty, stress_penalty = INTERACTION_PENALTIES.MODERATE
            else:
                continue
            totals.gfr -= gfr_penalty
            totals.stress_reduction -= stress_penalty

    @staticmethod
    def simulate(baseline: KidneyMetrics,
                 patient: PatientData,
                 treatments: Sequence[Treatment],
                 adjustments: LifestyleAdjustments,
                 classifier: DrugClassifier = DEFAULT_CLASSIFIER) -> KidneyMetrics:
        """
        PREDICTIVE ENGINE:
        What does the kidney look like once these drugs and habits take effect?
        With no treatments and unchanged habits the result equals `baseline`.
        """
        totals = EffectTotals()
        TreatmentSimulator._apply_treatments(totals, treatments, classifier)
        TreatmentSimulator._apply_lifestyle(totals, patient, adjustments)
        TreatmentSimulator._apply_interaction_penalties(totals, treatments, classifier)

        b = baseline
        stress_red = totals.stress_reduction

        new_gfr = round_to(clamp(b.gfr + totals.gfr, GFR_CONSTANTS.MIN_GFR, GFR_CONSTANTS.MAX_GFR), 1)

        # A treatment cannot push a lab value below its floor; a baseline already
        # under the floor is left where it is.
        new_creatinine = round_to(max(b.creatinine + totals.creatinine,
                                      min(b.creatinine, ENGINE_LIMITS.CREATININE_FLOOR)), 2)
        new_uric_acid = round_to(max(b.uric_acid + totals.uric_acid,
                                     min(b.uric_acid, ENGINE_LIMITS.URIC_ACID_FLOOR)), 1)
        # Urea tracks creatinine
        new_bun = round_to(b.bun * (new_creatinine / b.creatinine), 1)

        logger.debug(
            f"Simulate: {len(treatments)} treatment(s), GFR {b.gfr} -> {new_gfr}, "
            f"stress reduction {stress_red:.1f}"
        )

        return KidneyMetricsEngine.assemble_metrics(
            age=patient.age,
            gfr=new_gfr,
            creatinine=new_creatinine,
            uric_acid=new_uric_acid,
            bun=new_bun,
            stone_risk=round_half_up(clamp(b.stone_risk - totals.stone_risk_reduction)),
            stress_index=round_half_up(clamp(b.stress_index - stress_red)),
            ckd_progression_risk=round_half_up(clamp(b.ckd_progression_risk - totals.ckd_progression_reduction)),
            cardiovascular_risk=round_half_up(clamp(b.cardiovascular_risk - totals.cv_risk_reduction)),
            aki_risk=round_half_up(clamp(b.aki_risk - stress_red * 0.3)),
            infection_risk=round_half_up(clamp(b.infection_risk - stress_red * 0.1)),
            electrolyte_balance=round_half_up(clamp(b.electrolyte_balance + round_half_up(stress_red * 0.3))),
            acid_base_balance=round_half_up(clamp(b.acid_base_balance + round_half_up(stress_red * 0.2))),
            mineral_bone_score=round_half_up(clamp(b.mineral_bone_score + round_half_up(totals.mineral_bone_improvement))),
            anemia_score=round_half_up(clamp(b.anemia_score + round_half_up(totals.anemia_improvement))),
            inflammation_score=round_half_up(clamp(b.inflammation_score + round_half_up(totals.inflammation_reduction))),
            proteinuria_level=max(b.proteinuria_level * (1 - totals.ckd_progression_reduction * 0.01), 0.0),
            albuminuria_category=b.albuminuria_category,
            kidney_perfusion_index=round_half_up(clamp(b.kidney_perfusion_index + round_half_up(stress_red * 0.2))),
            interstitial_health=round_half_up(clamp(b.interstitial_health + round_half_up(stress_red * 0.2))),
            vascular_health=round_half_up(clamp(b.vascular_health + round_half_up(totals.cv_risk_reduction * 0.3))),
        )
