"""
NephroTwin: Data Dictionary
===========================
Inputs (patient snapshot, treatments, lifestyle requests), derived outputs
(kidney metrics, interactions, rankings) and the response envelopes handed to
the intake and report layers.

All engine-facing objects are frozen. A calculation never mutates its inputs;
it returns a fresh snapshot.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, List, Optional, Tuple

from constants import (
    ALBUMINURIA_LABELS,
    ENGINE_LIMITS,
    GFR_CATEGORY_LABELS,
    VERSION,
    Gender,
    InteractionSeverity,
    SmokingStatus,
)


class InvalidInputError(ValueError):
    """Raised when a value is non-finite, negative where impossible or out of range."""
    pass


class DegenerateRatioError(InvalidInputError):
    """Raised when serum creatinine <= 0 (GFR and BUN/creatinine ratio undefined)."""
    pass


class DataTypeError(TypeError):
    """Raised when inputs are wrong python types (str instead of float)."""
    pass


class TreatmentPoolTooLargeError(InvalidInputError):
    """Raised when the ranker is asked to search an oversized treatment pool."""
    pass


def _require_number(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DataTypeError(f"Field '{name}' must be numeric, got {type(value)}")
    if not math.isfinite(value):
        raise InvalidInputError(f"Field '{name}' must be finite, got {value}")


# --- 1. INPUT LAYER ---

@dataclass(frozen=True)
class PatientData:
    """
    Immutable intake snapshot. Created once and never mutated.
    Validation happens here so the engine itself can stay total.
    """
    # Demographics
    age: float
    gender: Gender
    weight: float            # kg
    height: float            # cm

    # Vitals
    systolic_bp: float
    diastolic_bp: float
    glucose: float           # mg/dL

    # Serum panel
    serum_creatinine: float  # mg/dL
    bun: float               # mg/dL
    serum_calcium: float
    serum_potassium: float
    serum_sodium: float
    serum_phosphorus: float
    serum_albumin: float     # g/dL
    uric_acid: float
    hemoglobin: float        # g/dL
    hba1c: float             # %
    cholesterol: float
    triglycerides: float

    # Urine markers (mg/day)
    urine_protein: float
    urine_albumin: float

    # Bone / inflammation
    parathyroid_hormone: float  # pg/mL
    vitamin_d: float            # ng/mL
    c_reactive_protein: float   # mg/L

    # Lifestyle
    hydration_level: float      # 1-10
    exercise_level: float       # 0-10
    protein_intake: float       # g/day
    salt_intake: float          # g/day
    water_intake: float         # L/day
    smoking_status: SmokingStatus = SmokingStatus.NEVER
    alcohol_units_per_week: float = 0.0

    existing_conditions: FrozenSet[str] = frozenset()
    current_medicines: Tuple[str, ...] = ()
    name: str = "Patient"

    def __post_init__(self):
        # 1. Enum coercion (frozen, so go through object.__setattr__)
        if not isinstance(self.gender, Gender):
            try:
                object.__setattr__(self, "gender", Gender(self.gender))
            except ValueError:
                raise InvalidInputError(f"Gender must be 'male' or 'female', got {self.gender!r}") from None
        if not isinstance(self.smoking_status, SmokingStatus):
            try:
                object.__setattr__(self, "smoking_status", SmokingStatus(self.smoking_status))
            except ValueError:
                raise InvalidInputError(f"Unknown smoking status: {self.smoking_status!r}") from None

        # A bare string would be split into characters
        for name in ("existing_conditions", "current_medicines"):
            if isinstance(getattr(self, name), str):
                raise DataTypeError(f"Field '{name}' must be a collection of strings, got str")
        object.__setattr__(self, "existing_conditions",
                           frozenset(c.strip().lower() for c in self.existing_conditions))
        object.__setattr__(self, "current_medicines", tuple(self.current_medicines))

        # 2. Type safety and finiteness
        for name in NUMERIC_PATIENT_FIELDS:
            _require_number(name, getattr(self, name))

        # 3. Physically impossible values
        for name in NUMERIC_PATIENT_FIELDS:
            if getattr(self, name) < 0:
                raise InvalidInputError(f"Field '{name}' cannot be negative, got {getattr(self, name)}")

        if self.serum_creatinine < ENGINE_LIMITS.MIN_SERUM_CREATININE:
            raise DegenerateRatioError(
                f"Serum creatinine must be >= {ENGINE_LIMITS.MIN_SERUM_CREATININE} mg/dL, got {self.serum_creatinine}"
            )
        if self.weight <= 0:
            raise InvalidInputError(f"Invalid weight: {self.weight}")

        # 4. Bounded lifestyle scales
        if not (1 <= self.hydration_level <= 10):
            raise InvalidInputError(f"Hydration level must be 1-10, got {self.hydration_level}")
        if not (0 <= self.exercise_level <= 10):
            raise InvalidInputError(f"Exercise level must be 0-10, got {self.exercise_level}")

    def has_condition(self, tag: str) -> bool:
        return tag in self.existing_conditions


NUMERIC_PATIENT_FIELDS = (
    "age", "weight", "height", "systolic_bp", "diastolic_bp", "glucose",
    "serum_creatinine", "bun", "serum_calcium", "serum_potassium", "serum_sodium",
    "serum_phosphorus", "serum_albumin", "uric_acid", "hemoglobin", "hba1c",
    "cholesterol", "triglycerides", "urine_protein", "urine_albumin",
    "parathyroid_hormone", "vitamin_d", "c_reactive_protein", "hydration_level",
    "exercise_level", "protein_intake", "salt_intake", "water_intake",
    "alcohol_units_per_week",
)


@dataclass(frozen=True)
class LifestyleAdjustments:
    """Requested lifestyle targets. Effects come from the difference to the patient's values."""
    hydration: float
    protein_intake: float
    salt_intake: float
    water_intake: float
    exercise_level: float

    @classmethod
    def from_patient(cls, patient: PatientData) -> "LifestyleAdjustments":
        """The no-change request: every target equals the patient's current value."""
        return cls(
            hydration=patient.hydration_level,
            protein_intake=patient.protein_intake,
            salt_intake=patient.salt_intake,
            water_intake=patient.water_intake,
            exercise_level=patient.exercise_level,
        )


@dataclass(frozen=True)
class Treatment:
    id: str
    medicine: str            # Free text, e.g. "Losartan 50mg"
    dosage: str = "1"
    frequency: str = "Once daily"
    tablets: int = 1
    category: Optional[str] = None  # UI tag only

    def __post_init__(self):
        if isinstance(self.tablets, bool) or not isinstance(self.tablets, int):
            raise DataTypeError(f"tablets must be an integer, got {type(self.tablets)}")
        if self.tablets < 1:
            raise InvalidInputError(f"tablets must be >= 1, got {self.tablets}")


# --- 2. DERIVED OUTPUTS ---

@dataclass(frozen=True)
class RiskHeatmapData:
    """Health per anatomical region, 0 (damaged) to 100 (healthy)."""
    glomerular: float
    tubular: float
    vascular: float
    interstitial: float
    collecting: float
    cortex: float
    medulla: float


@dataclass(frozen=True)
class KidneyMetrics:
    # Core
    gfr: float
    gfr_category: str        # "G1".."G5"
    ckd_stage: int
    creatinine: float
    uric_acid: float
    bun: float
    bun_creatinine_ratio: float

    # Risk scores (0-100)
    stone_risk: int
    stress_index: int
    ckd_progression_risk: int
    cardiovascular_risk: int
    aki_risk: int
    infection_risk: int

    # Function
    efficiency: int
    kidney_age: int
    filtration_rate: int     # L/day
    tubular_reabsorption: int

    # Balance (0-100)
    electrolyte_balance: int
    acid_base_balance: int
    mineral_bone_score: int
    anemia_score: int
    inflammation_score: int

    # Advanced
    proteinuria_level: float  # mg/day
    albuminuria_category: str  # "A1".."A3"
    kidney_perfusion_index: int
    nephron_health: int
    interstitial_health: int
    vascular_health: int

    # Composite
    overall_health_score: int
    risk_heatmap: RiskHeatmapData

    @property
    def gfr_category_label(self) -> str:
        return f"{self.gfr_category} - {GFR_CATEGORY_LABELS[self.gfr_category]}"

    @property
    def albuminuria_label(self) -> str:
        return f"{self.albuminuria_category} - {ALBUMINURIA_LABELS[self.albuminuria_category]}"


@dataclass(frozen=True)
class DrugInteraction:
    drug1: str
    drug2: str
    severity: InteractionSeverity
    description: str
    effect: str

    @property
    def pair(self) -> FrozenSet[str]:
        return frozenset((self.drug1, self.drug2))


@dataclass(frozen=True)
class TreatmentRanking:
    combination: Tuple[Treatment, ...]
    score: int
    gfr_improvement: float
    risk_reduction: int
    side_effect_risk: int
    interaction_count: int
    reasoning: str

    @property
    def label(self) -> str:
        return " + ".join(t.medicine for t in self.combination)


# --- 3. REPORT BUNDLE ---

@dataclass(frozen=True)
class ForecastPoint:
    days: int
    label: str               # "7d", "6m", ...
    metrics: KidneyMetrics


@dataclass(frozen=True)
class MetricComparison:
    metric: str
    before: float
    after: float
    percent_change: Optional[int]  # None when the baseline is 0


@dataclass(frozen=True)
class SimulationResult:
    """Frozen bundle consumed by the report/export layer."""
    patient: PatientData
    baseline: KidneyMetrics
    simulated: KidneyMetrics
    treatments: Tuple[Treatment, ...]
    adjustments: LifestyleAdjustments
    interactions: Tuple[DrugInteraction, ...]
    rankings: Tuple[TreatmentRanking, ...]
    forecast: Tuple[ForecastPoint, ...]
    comparison: Tuple[MetricComparison, ...]
    generated_at: str = field(default_factory=lambda: datetime.now().isoformat())


# --- 4. INTAKE ENVELOPE ---

@dataclass
class IntakeWarnings:
    """Tracks non-critical issues that the clinician must know."""
    defaulted_fields: List[str] = field(default_factory=list)
    unclassified_medicines: List[str] = field(default_factory=list)


@dataclass
class AuditLog:
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    action: str = "baseline_assessment"
    inputs_hash: int = 0
    model_version: str = VERSION


@dataclass
class AssessmentResult:
    """Standardized response format for the intake layer."""
    success: bool
    patient: Optional[PatientData]
    baseline: Optional[KidneyMetrics]
    errors: List[str]
    warnings: IntakeWarnings
    audit_log: Optional[AuditLog] = None
