"""
NephroTwin: Metrics Calculator
==============================
Translates a PatientData snapshot into a KidneyMetrics assessment.

Every risk/health score follows the same recipe: start from a baseline
constant, add (or subtract) a penalty per risk factor beyond its clinical
threshold, proportional to the excess, then clamp to [0, 100].

The coefficients below are the scoring contract. Changing one changes every
downstream score, simulation and ranking.
"""

import logging
import math
from typing import Tuple

from constants import (
    ALBUMINURIA_A2_THRESHOLD,
    ALBUMINURIA_A3_THRESHOLD,
    GFR_CONSTANTS,
    GFR_STAGES,
    OVERALL_HEALTH_WEIGHTS,
    Condition,
    DrugClass,
    Gender,
    SmokingStatus,
)
from interactions import DEFAULT_CLASSIFIER, DrugClassifier
from models import KidneyMetrics, PatientData, RiskHeatmapData

logger = logging.getLogger("nephrotwin-metrics")


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return min(max(value, low), high)


def round_half_up(value: float) -> int:
    """Half-up rounding (2.5 -> 3), unlike Python's banker's round()."""
    return int(math.floor(value + 0.5))


def round_to(value: float, places: int) -> float:
    factor = 10 ** places
    return math.floor(value * factor + 0.5) / factor


class KidneyMetricsEngine:
    """
    The Mathematical Core.
    Translates Clinical Inputs -> Primary Scores -> Derived Composite Metrics.
    """

    # --- GFR & STAGING ---

    @staticmethod
    def calculate_gfr(age: float, gender: Gender, creatinine: float) -> float:
        """
        CKD-EPI 2021 (race-free) eGFR in mL/min/1.73m².
        Clamped to [3, 160] and rounded to 1 decimal.
        """
        if gender == Gender.FEMALE:
            kappa, alpha = GFR_CONSTANTS.KAPPA_FEMALE, GFR_CONSTANTS.ALPHA_FEMALE
        else:
            kappa, alpha = GFR_CONSTANTS.KAPPA_MALE, GFR_CONSTANTS.ALPHA_MALE

        ratio = creatinine / kappa
        min_r = min(ratio, 1.0)
        max_r = max(ratio, 1.0)

        gfr = (GFR_CONSTANTS.BASE
               * min_r ** alpha
               * max_r ** GFR_CONSTANTS.EXPONENT_ABOVE_KAPPA
               * GFR_CONSTANTS.AGE_DECAY ** age)
        if gender == Gender.FEMALE:
            gfr *= GFR_CONSTANTS.FEMALE_FACTOR

        return round_to(clamp(gfr, GFR_CONSTANTS.MIN_GFR, GFR_CONSTANTS.MAX_GFR), 1)

    @staticmethod
    def gfr_stage(gfr: float) -> Tuple[str, int]:
        """Returns (category code, CKD stage), e.g. ("G3a", 3)."""
        for lower_bound, code, stage in GFR_STAGES:
            if gfr >= lower_bound:
                return code, stage
        return GFR_STAGES[-1][1], GFR_STAGES[-1][2]

    @staticmethod
    def albuminuria_category(urine_albumin: float) -> str:
        if urine_albumin < ALBUMINURIA_A2_THRESHOLD:
            return "A1"
        if urine_albumin < ALBUMINURIA_A3_THRESHOLD:
            return "A2"
        return "A3"

    @staticmethod
    def efficiency(gfr: float) -> float:
        return clamp(gfr / GFR_CONSTANTS.REFERENCE_GFR * 100, GFR_CONSTANTS.MIN_EFFICIENCY, 100.0)

    # --- RISK SCORES ---

    @staticmethod
    def _calculate_stone_risk(p: PatientData) -> float:
        risk = 8.0
        if p.uric_acid > 6: risk += (p.uric_acid - 6) * 12
        if p.serum_calcium > 10: risk += (p.serum_calcium - 10) * 15
        if p.serum_phosphorus > 4.5: risk += (p.serum_phosphorus - 4.5) * 8
        if p.hydration_level < 5: risk += (5 - p.hydration_level) * 8
        if p.water_intake < 2: risk += (2 - p.water_intake) * 10
        if p.has_condition(Condition.KIDNEY_STONES.value): risk += 20
        if p.has_condition(Condition.GOUT.value): risk += 10
        if p.urine_protein > 150: risk += 5
        return clamp(risk)

    @staticmethod
    def _calculate_stress_index(p: PatientData) -> float:
        stress = 15.0
        if p.systolic_bp > 130: stress += (p.systolic_bp - 130) * 0.5
        if p.diastolic_bp > 85: stress += (p.diastolic_bp - 85) * 0.4
        if p.glucose > 100: stress += (p.glucose - 100) * 0.3
        if p.hba1c > 6.5: stress += (p.hba1c - 6.5) * 5
        if p.has_condition(Condition.DIABETES.value): stress += 15
        if p.has_condition(Condition.HYPERTENSION.value): stress += 12
        if p.salt_intake > 5: stress += (p.salt_intake - 5) * 4
        if p.c_reactive_protein > 3: stress += (p.c_reactive_protein - 3) * 2
        if p.smoking_status == SmokingStatus.CURRENT: stress += 10
        if p.smoking_status == SmokingStatus.FORMER: stress += 3
        if p.alcohol_units_per_week > 14: stress += (p.alcohol_units_per_week - 14) * 0.5
        if p.protein_intake > 80: stress += (p.protein_intake - 80) * 0.2
        if p.cholesterol > 200: stress += (p.cholesterol - 200) * 0.05
        return clamp(stress)

    @staticmethod
    def _calculate_ckd_progression(p: PatientData, gfr: float) -> float:
        risk = 10.0
        if gfr < 60: risk += (60 - gfr) * 0.8
        # Albuminuria enters on a log scale (doubling adds ~7 points)
        if p.urine_albumin > 30: risk += math.log(p.urine_albumin / 30) * 10
        if p.urine_protein > 500: risk += 15
        if p.has_condition(Condition.DIABETES.value): risk += 12
        if p.has_condition(Condition.HYPERTENSION.value): risk += 8
        if p.has_condition(Condition.CKD.value): risk += 15
        if p.hba1c > 7: risk += (p.hba1c - 7) * 4
        if p.systolic_bp > 140: risk += 8
        return clamp(risk)

    @staticmethod
    def _calculate_cardiovascular_risk(p: PatientData, gfr: float) -> float:
        risk = 8.0
        if p.systolic_bp > 140: risk += (p.systolic_bp - 140) * 0.6
        if p.cholesterol > 200: risk += (p.cholesterol - 200) * 0.1
        if p.triglycerides > 150: risk += (p.triglycerides - 150) * 0.05
        if gfr < 60: risk += (60 - gfr) * 0.5
        if p.has_condition(Condition.HEART_DISEASE.value): risk += 20
        if p.has_condition(Condition.DIABETES.value): risk += 10
        if p.smoking_status == SmokingStatus.CURRENT: risk += 12
        if p.age > 55: risk += (p.age - 55) * 0.5
        return clamp(risk)

    @staticmethod
    def _calculate_aki_risk(p: PatientData, gfr: float, classifier: DrugClassifier) -> float:
        risk = 5.0
        if gfr < 45: risk += 15
        if p.age > 65: risk += 8
        if p.has_condition(Condition.DIABETES.value): risk += 8
        if p.has_condition(Condition.HEART_DISEASE.value): risk += 10
        if p.hydration_level < 3: risk += 15
        if p.serum_creatinine > 1.5: risk += (p.serum_creatinine - 1.5) * 10
        if any(classifier.mentions(m, DrugClass.NSAID) for m in p.current_medicines):
            risk += 12
        return clamp(risk)

    @staticmethod
    def _calculate_infection_risk(p: PatientData, gfr: float) -> float:
        risk = 5.0
        if gfr < 30: risk += 15
        if p.has_condition(Condition.DIABETES.value): risk += 10
        if p.has_condition(Condition.UTI.value): risk += 15
        if p.age > 70: risk += 8
        if p.serum_albumin < 3.5: risk += (3.5 - p.serum_albumin) * 10
        return clamp(risk)

    # --- BALANCE & TISSUE SCORES ---

    @staticmethod
    def _calculate_electrolyte_balance(p: PatientData) -> float:
        # Graded: outside the reference range costs more than the edge of it
        score = 90.0
        if p.serum_potassium < 3.5 or p.serum_potassium > 5.1: score -= 25
        elif p.serum_potassium < 3.8 or p.serum_potassium > 4.8: score -= 8
        if p.serum_sodium < 136 or p.serum_sodium > 146: score -= 20
        elif p.serum_sodium < 138 or p.serum_sodium > 144: score -= 8
        if p.serum_calcium < 8.8 or p.serum_calcium > 10.6: score -= 15
        if p.serum_phosphorus < 2.5 or p.serum_phosphorus > 4.5: score -= 12
        return clamp(score)

    @staticmethod
    def _calculate_mineral_bone(p: PatientData) -> float:
        score = 85.0
        if p.parathyroid_hormone > 65: score -= min((p.parathyroid_hormone - 65) * 0.3, 30)
        if p.vitamin_d < 30: score -= (30 - p.vitamin_d) * 0.8
        if p.serum_calcium < 8.5 or p.serum_calcium > 10.5: score -= 15
        if p.serum_phosphorus > 4.5: score -= (p.serum_phosphorus - 4.5) * 8
        return clamp(score)

    @staticmethod
    def _calculate_anemia_score(p: PatientData, gfr: float) -> float:
        score = 90.0
        hb_low = 12.0 if p.gender == Gender.FEMALE else 13.0
        if p.hemoglobin < hb_low: score -= (hb_low - p.hemoglobin) * 15
        if gfr < 45: score -= 10
        if p.serum_albumin < 3.5: score -= 8
        return clamp(score)

    @staticmethod
    def _calculate_inflammation_score(p: PatientData) -> float:
        score = 90.0
        if p.c_reactive_protein > 1: score -= min(p.c_reactive_protein * 5, 40)
        if p.serum_albumin < 3.5: score -= 10
        return clamp(score)

    @staticmethod
    def _calculate_perfusion_index(p: PatientData, gfr: float) -> float:
        score = 85.0
        if p.systolic_bp > 140: score -= (p.systolic_bp - 140) * 0.3
        if p.systolic_bp < 90: score -= (90 - p.systolic_bp) * 0.5
        if p.has_condition(Condition.HEART_DISEASE.value): score -= 12
        if gfr < 60: score -= (60 - gfr) * 0.3
        return clamp(score)

    @staticmethod
    def _calculate_interstitial_health(p: PatientData) -> float:
        score = 85.0
        if p.urine_protein > 150: score -= min(p.urine_protein * 0.02, 25)
        if p.c_reactive_protein > 3: score -= 10
        if p.has_condition(Condition.UTI.value): score -= 10
        return clamp(score)

    @staticmethod
    def _calculate_vascular_health(p: PatientData) -> float:
        score = 85.0
        if p.systolic_bp > 130: score -= (p.systolic_bp - 130) * 0.4
        if p.cholesterol > 200: score -= (p.cholesterol - 200) * 0.08
        if p.has_condition(Condition.DIABETES.value): score -= 10
        if p.smoking_status == SmokingStatus.CURRENT: score -= 12
        return clamp(score)

    # --- DERIVED FIELDS ---

    @staticmethod
    def assemble_metrics(age: float,
                         gfr: float,
                         creatinine: float,
                         uric_acid: float,
                         bun: float,
                         stone_risk: int,
                         stress_index: int,
                         ckd_progression_risk: int,
                         cardiovascular_risk: int,
                         aki_risk: int,
                         infection_risk: int,
                         electrolyte_balance: int,
                         acid_base_balance: int,
                         mineral_bone_score: int,
                         anemia_score: int,
                         inflammation_score: int,
                         proteinuria_level: float,
                         albuminuria_category: str,
                         kidney_perfusion_index: int,
                         interstitial_health: int,
                         vascular_health: int) -> KidneyMetrics:
        """
        SHARED BUILDER: derives every composite field from the primary values.
        Used by both the baseline calculation and the treatment simulator so the
        two snapshots are always internally consistent.
        """
        category, stage = KidneyMetricsEngine.gfr_stage(gfr)
        efficiency = KidneyMetricsEngine.efficiency(gfr)

        nephron_health = round_half_up(clamp(efficiency * 0.7 + (100 - stress_index) * 0.3))

        w = OVERALL_HEALTH_WEIGHTS
        overall = round_half_up(
            efficiency * w.EFFICIENCY +
            (100 - stress_index) * w.INVERTED_STRESS +
            (100 - stone_risk) * w.INVERTED_STONE_RISK +
            (100 - ckd_progression_risk) * w.INVERTED_CKD_PROGRESSION +
            electrolyte_balance * w.ELECTROLYTE_BALANCE +
            nephron_health * w.NEPHRON_HEALTH +
            vascular_health * w.VASCULAR_HEALTH +
            mineral_bone_score * w.MINERAL_BONE +
            anemia_score * w.ANEMIA
        )

        heatmap = RiskHeatmapData(
            glomerular=clamp(100 - (100 - efficiency) * 1.2),
            tubular=clamp(100 - stress_index * 0.8),
            vascular=clamp(vascular_health),
            interstitial=clamp(interstitial_health),
            collecting=clamp(90 - stone_risk * 0.3),
            cortex=clamp(nephron_health * 0.9 + kidney_perfusion_index * 0.1),
            medulla=clamp(85 - stress_index * 0.3 - stone_risk * 0.2),
        )

        return KidneyMetrics(
            gfr=gfr,
            gfr_category=category,
            ckd_stage=stage,
            creatinine=creatinine,
            uric_acid=uric_acid,
            bun=bun,
            bun_creatinine_ratio=round_to(bun / creatinine, 1),
            stone_risk=stone_risk,
            stress_index=stress_index,
            ckd_progression_risk=ckd_progression_risk,
            cardiovascular_risk=cardiovascular_risk,
            aki_risk=aki_risk,
            infection_risk=infection_risk,
            efficiency=round_half_up(efficiency),
            kidney_age=round_half_up(age + (100 - efficiency) * 0.4 + stress_index * 0.1),
            filtration_rate=round_half_up(gfr * GFR_CONSTANTS.FILTRATION_FACTOR),
            tubular_reabsorption=round_half_up(99 - stress_index * 0.05),
            electrolyte_balance=electrolyte_balance,
            acid_base_balance=acid_base_balance,
            mineral_bone_score=mineral_bone_score,
            anemia_score=anemia_score,
            inflammation_score=inflammation_score,
            proteinuria_level=proteinuria_level,
            albuminuria_category=albuminuria_category,
            kidney_perfusion_index=kidney_perfusion_index,
            nephron_health=nephron_health,
            interstitial_health=interstitial_health,
            vascular_health=vascular_health,
            overall_health_score=round_half_up(clamp(overall)),
            risk_heatmap=heatmap,
        )

    # --- MAIN ENTRY POINT ---

    @staticmethod
    def calculate_baseline(patient: PatientData,
                           classifier: DrugClassifier = DEFAULT_CLASSIFIER) -> KidneyMetrics:
        """
        MASTER BUILDER: Creates the baseline KidneyMetrics for this patient.
        Pure: identical input always yields an identical snapshot.
        """
        gfr = KidneyMetricsEngine.calculate_gfr(patient.age, patient.gender, patient.serum_creatinine)
        stress = round_half_up(KidneyMetricsEngine._calculate_stress_index(patient))

        logger.debug(f"Baseline: age={patient.age} cr={patient.serum_creatinine} -> GFR={gfr}")

        return KidneyMetricsEngine.assemble_metrics(
            age=patient.age,
            gfr=gfr,
            creatinine=round_to(patient.serum_creatinine, 2),
            uric_acid=round_to(patient.uric_acid, 1),
            bun=round_to(patient.bun, 1),
            stone_risk=round_half_up(KidneyMetricsEngine._calculate_stone_risk(patient)),
            stress_index=stress,
            ckd_progression_risk=round_half_up(KidneyMetricsEngine._calculate_ckd_progression(patient, gfr)),
            cardiovascular_risk=round_half_up(KidneyMetricsEngine._calculate_cardiovascular_risk(patient, gfr)),
            aki_risk=round_half_up(KidneyMetricsEngine._calculate_aki_risk(patient, gfr, classifier)),
            infection_risk=round_half_up(KidneyMetricsEngine._calculate_infection_risk(patient, gfr)),
            electrolyte_balance=round_half_up(KidneyMetricsEngine._calculate_electrolyte_balance(patient)),
            acid_base_balance=round_half_up(clamp(85 - stress * 0.15)),
            mineral_bone_score=round_half_up(KidneyMetricsEngine._calculate_mineral_bone(patient)),
            anemia_score=round_half_up(KidneyMetricsEngine._calculate_anemia_score(patient, gfr)),
            inflammation_score=round_half_up(KidneyMetricsEngine._calculate_inflammation_score(patient)),
            proteinuria_level=patient.urine_protein,
            albuminuria_category=KidneyMetricsEngine.albuminuria_category(patient.urine_albumin),
            kidney_perfusion_index=round_half_up(KidneyMetricsEngine._calculate_perfusion_index(patient, gfr)),
            interstitial_health=round_half_up(KidneyMetricsEngine._calculate_interstitial_health(patient)),
            vascular_health=round_half_up(KidneyMetricsEngine._calculate_vascular_health(patient)),
        )
