# --- METADATA & COMPLIANCE ---
__version__ = "1.0.0"
__model_date__ = "2026-10-18"
__validation_status__ = "Clinical validation pending"
__gfr_equation__ = "CKD-EPI 2021 (race-free)"
__staging_guideline__ = "KDIGO 2012 CKD classification"

MEDICAL_DISCLAIMER = """
⚠️ DECISION SUPPORT TOOL - NOT A PRESCRIPTION
• Final responsibility: Treating nephrologist
• Not a substitute for clinical judgment
• Scores are heuristic models, not validated prognostic tools
"""

"""
NephroTwin: Orchestrator
========================
Entry points for the intake form and the report view.

create_assessment(data)  -> AssessmentResult  (never raises)
run_simulation(request)  -> SimulationResult  (baseline, simulated, interactions,
                                               rankings, forecast, comparison)
"""

import logging
from typing import Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from constants import VERSION
from core_metrics import KidneyMetricsEngine, round_half_up
from interactions import DEFAULT_CLASSIFIER, DrugClassifier, detect_interactions
from models import (
    AssessmentResult,
    AuditLog,
    DataTypeError,
    IntakeWarnings,
    InvalidInputError,
    KidneyMetrics,
    MetricComparison,
    SimulationResult,
)
from projection import TimeProjection
from ranking import TreatmentRanker
from schemas import PatientRequest, SimulationRequest
from simulator import TreatmentSimulator

logger = logging.getLogger("nephrotwin-app")

# (row label, KidneyMetrics attribute) for the before/after table
COMPARISON_ROWS = (
    ("GFR", "gfr"),
    ("Efficiency", "efficiency"),
    ("Stress", "stress_index"),
    ("CKD Risk", "ckd_progression_risk"),
    ("CV Risk", "cardiovascular_risk"),
    ("Health Score", "overall_health_score"),
)


def _format_validation_error(exc: ValidationError) -> list:
    return [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]


def create_assessment(data: dict,
                      classifier: DrugClassifier = DEFAULT_CLASSIFIER) -> AssessmentResult:
    """
    SAFE FACTORY: The main entry point for the intake form.
    Validates raw input, fills blanks with neutral values, computes the
    baseline and reports problems as data instead of raising.
    """
    warnings = IntakeWarnings()
    audit = None

    try:
        # 1. Schema validation + neutral defaults
        request = PatientRequest.model_validate(data)
        warnings.defaulted_fields = request.defaulted_fields()

        # 2. Domain object (second validation layer)
        patient = request.to_patient()

        # 3. Medicines the classifier cannot place get no class effects
        warnings.unclassified_medicines = [
            m for m in patient.current_medicines if classifier.classify(m) is None
        ]

        # 4. Baseline assessment
        baseline = KidneyMetricsEngine.calculate_baseline(patient, classifier)
        audit = AuditLog(inputs_hash=hash(str(data)), model_version=VERSION)

        logger.info(
            f"Assessment for {patient.name}: GFR {baseline.gfr} ({baseline.gfr_category}), "
            f"health score {baseline.overall_health_score}"
        )
        return AssessmentResult(
            success=True,
            patient=patient,
            baseline=baseline,
            errors=[],
            warnings=warnings,
            audit_log=audit,
        )

    except ValidationError as e:
        logger.warning(f"Rejected intake: {e.error_count()} validation error(s)")
        return AssessmentResult(False, None, None, _format_validation_error(e), warnings, audit)
    except (InvalidInputError, DataTypeError) as e:
        logger.warning(f"Rejected intake: {e}")
        return AssessmentResult(False, None, None, [str(e)], warnings, audit)
    except Exception as e:
        logger.error(f"Assessment failed: {e}", exc_info=True)
        return AssessmentResult(False, None, None, [f"System Error: {str(e)}"], warnings, audit)


def compare_metrics(baseline: KidneyMetrics, simulated: KidneyMetrics) -> Tuple[MetricComparison, ...]:
    rows = []
    for label, attr in COMPARISON_ROWS:
        before = getattr(baseline, attr)
        after = getattr(simulated, attr)
        change = round_half_up((after - before) / before * 100) if before else None
        rows.append(MetricComparison(metric=label, before=before, after=after, percent_change=change))
    return tuple(rows)


def run_simulation(request: Union[SimulationRequest, dict],
                   classifier: DrugClassifier = DEFAULT_CLASSIFIER,
                   max_workers: Optional[int] = None) -> SimulationResult:
    """
    Full pipeline for one report:
    Baseline -> Simulation -> Interactions -> Ranking -> Forecast -> Comparison.

    Raises pydantic.ValidationError / InvalidInputError on bad input; use
    create_assessment first when the caller needs errors as data.
    """
    if not isinstance(request, SimulationRequest):
        request = SimulationRequest.model_validate(request)

    patient = request.patient.to_patient()
    treatments = tuple(t.to_treatment() for t in request.treatments)
    adjustments = request.adjustments.to_adjustments(patient)

    # 1. Before
    baseline = KidneyMetricsEngine.calculate_baseline(patient, classifier)

    # 2. After
    simulated = TreatmentSimulator.simulate(baseline, patient, treatments, adjustments, classifier)
    interactions = tuple(detect_interactions(treatments, classifier))

    # 3. Best regimens from the candidate pool (selected treatments by default)
    rankings: Sequence = ()
    if request.include_rankings:
        pool = treatments
        if request.treatment_pool is not None:
            pool = tuple(t.to_treatment() for t in request.treatment_pool)
        ranker = TreatmentRanker(classifier=classifier, max_workers=max_workers)
        rankings = ranker.rank(baseline, patient, pool)

    # 4. Trajectory from the post-treatment snapshot
    forecast = TimeProjection.forecast(simulated)

    logger.info(
        f"Simulation for {patient.name}: {len(treatments)} treatment(s), "
        f"GFR {baseline.gfr} -> {simulated.gfr}, {len(interactions)} interaction(s), "
        f"{len(rankings)} ranked regimen(s)"
    )

    return SimulationResult(
        patient=patient,
        baseline=baseline,
        simulated=simulated,
        treatments=treatments,
        adjustments=adjustments,
        interactions=interactions,
        rankings=tuple(rankings),
        forecast=forecast,
        comparison=compare_metrics(baseline, simulated),
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    demo = {
        "patient": {
            "name": "Demo Patient", "age": 62, "gender": "female", "weight": 74,
            "systolic_bp": 152, "diastolic_bp": 94, "glucose": 148, "hba1c": 7.6,
            "serum_creatinine": 1.7, "bun": 28, "uric_acid": 7.9,
            "urine_albumin": 180, "urine_protein": 420,
            "hydration_level": 4, "water_intake": 1.4, "salt_intake": 9,
            "existing_conditions": ["diabetes", "hypertension"],
            "current_medicines": "Lisinopril 10mg, Ibuprofen 400mg",
        },
        "treatments": [
            {"medicine": "Empagliflozin 10mg"},
            {"medicine": "Allopurinol 100mg", "tablets": 2},
        ],
        "adjustments": {"hydration": 7, "water_intake": 2.5, "salt_intake": 5},
        "treatment_pool": [
            {"medicine": "Lisinopril 10mg"}, {"medicine": "Losartan 50mg"},
            {"medicine": "Empagliflozin 10mg"}, {"medicine": "Allopurinol 100mg"},
            {"medicine": "Atorvastatin 20mg"}, {"medicine": "Ibuprofen 400mg"},
        ],
    }

    print(MEDICAL_DISCLAIMER)
    intake = create_assessment(demo["patient"])
    if not intake.success:
        print("Intake errors:", intake.errors)
        raise SystemExit(1)
    if intake.warnings.unclassified_medicines:
        print("Unclassified medicines:", intake.warnings.unclassified_medicines)

    result = run_simulation(demo)
    b, s = result.baseline, result.simulated
    print(f"Baseline : GFR {b.gfr} ({b.gfr_category_label}), {b.albuminuria_label}, score {b.overall_health_score}")
    print(f"Simulated: GFR {s.gfr} ({s.gfr_category_label}), score {s.overall_health_score}")

    print("\n--- Before / After ---")
    for row in result.comparison:
        change = "n/a" if row.percent_change is None else f"{row.percent_change:+d}%"
        print(f"{row.metric:<13}{row.before:>8} -> {row.after:<8}{change}")

    print("\n--- Interactions ---")
    for i in result.interactions:
        print(f"[{i.severity.value.upper()}] {i.drug1} + {i.drug2}: {i.description} ({i.effect})")

    print("\n--- Top regimens ---")
    for rank, r in enumerate(result.rankings, start=1):
        print(f"{rank:>2}. {r.label:<45} score {r.score:>4}  {r.reasoning}")

    print("\n--- Forecast ---")
    for point in result.forecast:
        print(f"{point.label:>4}: GFR {point.metrics.gfr}, score {point.metrics.overall_health_score}")
