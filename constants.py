from enum import Enum
from types import MappingProxyType

VERSION = "1.0.0"


class Gender(Enum):
    MALE = "male"
    FEMALE = "female"


class SmokingStatus(Enum):
    NEVER = "never"
    FORMER = "former"
    CURRENT = "current"


class InteractionSeverity(Enum):
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class Condition(Enum):
    """Condition tags understood by the scoring engine (free tags are allowed too)."""
    DIABETES = "diabetes"
    HYPERTENSION = "hypertension"
    KIDNEY_STONES = "kidney_stones"
    CKD = "ckd"
    UTI = "uti"
    GOUT = "gout"
    HEART_DISEASE = "heart_disease"
    OBESITY = "obesity"
    ANEMIA = "anemia"
    LUPUS = "lupus"
    POLYCYSTIC = "polycystic"
    LIVER_DISEASE = "liver_disease"


class DrugClass(Enum):
    # Classes with a member lexicon
    ACE = "ace"
    ARB = "arb"
    CCB = "ccb"
    DIURETIC = "diuretic"
    BETA_BLOCKER = "beta_blocker"
    STATIN = "statin"
    XANTHINE_OXIDASE = "xanthine_oxidase"
    SGLT2 = "sglt2"
    DPP4 = "dpp4"
    GLP1 = "glp1"
    NSAID = "nsaid"
    ANTICOAGULANT = "anticoagulant"
    PHOSPHATE_BINDER = "phosphate_binder"
    ESA = "esa"
    IRON = "iron"
    # Heuristic-only class
    ALKALIZER = "alkalizer"
    # Tags referenced by the interaction table only
    POTASSIUM = "potassium"
    METFORMIN = "metformin"
    CONTRAST = "contrast"
    ALLOPURINOL = "allopurinol"
    AZATHIOPRINE = "azathioprine"
    LITHIUM = "lithium"
    FIBRATE = "fibrate"
    AMINOGLYCOSIDE = "aminoglycoside"
    CYCLOSPORINE = "cyclosporine"
    TRIMETHOPRIM = "trimethoprim"


class GFR_CONSTANTS:
    # CKD-EPI 2021 (race-free)
    BASE = 142.0
    KAPPA_FEMALE = 0.7
    KAPPA_MALE = 0.9
    ALPHA_FEMALE = -0.241
    ALPHA_MALE = -0.302
    EXPONENT_ABOVE_KAPPA = -1.2
    AGE_DECAY = 0.9938
    FEMALE_FACTOR = 1.012

    MIN_GFR = 3.0
    MAX_GFR = 160.0

    # Efficiency = GFR as % of a 120 mL/min reference, floored at 5%
    REFERENCE_GFR = 120.0
    MIN_EFFICIENCY = 5.0
    FILTRATION_FACTOR = 1.44  # mL/min -> L/day


# (lower bound, code, stage)
GFR_STAGES = (
    (90.0, "G1", 1),
    (60.0, "G2", 2),
    (45.0, "G3a", 3),
    (30.0, "G3b", 3),
    (15.0, "G4", 4),
    (0.0, "G5", 5),
)

GFR_CATEGORY_LABELS = MappingProxyType({
    "G1": "Normal or High",
    "G2": "Mildly decreased",
    "G3a": "Mild-moderate decrease",
    "G3b": "Moderate-severe decrease",
    "G4": "Severely decreased",
    "G5": "Kidney failure",
})

# Urine albumin mg/day thresholds
ALBUMINURIA_A2_THRESHOLD = 30.0
ALBUMINURIA_A3_THRESHOLD = 300.0

ALBUMINURIA_LABELS = MappingProxyType({
    "A1": "Normal",
    "A2": "Moderately increased",
    "A3": "Severely increased",
})


class ENGINE_LIMITS:
    DOSE_SATURATION_TABLETS = 3    # Benefit saturates beyond 3 tablets/day
    MAX_COMBINATION_SIZE = 3
    TOP_RANKINGS = 10
    MAX_TREATMENT_POOL = 20        # C(20,1)+C(20,2)+C(20,3) = 1350 subsets
    CREATININE_FLOOR = 0.3         # mg/dL, lowest value a treatment can reach
    MIN_SERUM_CREATININE = 0.005   # mg/dL, smaller values round to 0.00
    URIC_ACID_FLOOR = 1.0          # mg/dL


class OVERALL_HEALTH_WEIGHTS:
    EFFICIENCY = 0.25
    INVERTED_STRESS = 0.15
    INVERTED_STONE_RISK = 0.05
    INVERTED_CKD_PROGRESSION = 0.15
    ELECTROLYTE_BALANCE = 0.10
    NEPHRON_HEALTH = 0.10
    VASCULAR_HEALTH = 0.10
    MINERAL_BONE = 0.05
    ANEMIA = 0.05


class PROJECTION_CONSTANTS:
    DAYS_PER_MONTH = 30.0
    TIME_CONSTANT_MONTHS = 6.0
    EFFICIENCY_FLOOR = 40.0        # No GFR headroom below this efficiency
    GFR_GAIN_PER_EFFICIENCY = 0.08
    STRESS_DAMPENING = 5.0
    RISK_DAMPENING = 8.0
    CKD_RISK_SHARE = 0.6
    CV_RISK_SHARE = 0.4
    OVERALL_GAIN = 5.0

    # (days, label)
    HORIZONS = (
        (7, "7d"),
        (30, "30d"),
        (90, "90d"),
        (180, "6m"),
        (365, "1y"),
    )


class RANKING_WEIGHTS:
    GFR_IMPROVEMENT = 3.0
    RISK_REDUCTION = 1.5
    OVERALL_HEALTH = 2.0
    SIDE_EFFECT = 2.0

    CV_RISK_SHARE = 0.5
    STONE_RISK_SHARE = 0.3

    SEVERE_PENALTY = 30
    MODERATE_PENALTY = 10

    # Reasoning thresholds
    STRONG_GFR_GAIN = 5.0
    SIGNIFICANT_RISK_REDUCTION = 15.0


class INTERACTION_PENALTIES:
    # (gfr delta removed, stress reduction removed) per interaction
    SEVERE = (3.0, 5.0)
    MODERATE = (1.0, 2.0)


class NEUTRAL_DEFAULTS:
    """Clinically neutral values used by intake when a field is left blank."""
    NAME = "Patient"
    AGE = 45
    WEIGHT_KG = 70.0
    HEIGHT_CM = 170.0
    SYSTOLIC_BP = 120.0
    DIASTOLIC_BP = 80.0
    GLUCOSE = 95.0
    URIC_ACID = 5.5
    HYDRATION_LEVEL = 5.0
    SERUM_CREATININE = 1.0
    BUN = 15.0
    SERUM_CALCIUM = 9.5
    SERUM_POTASSIUM = 4.2
    SERUM_SODIUM = 140.0
    SERUM_PHOSPHORUS = 3.8
    SERUM_ALBUMIN = 4.0
    HEMOGLOBIN_FEMALE = 13.0
    HEMOGLOBIN_MALE = 14.5
    HBA1C = 5.5
    CHOLESTEROL = 180.0
    TRIGLYCERIDES = 120.0
    URINE_PROTEIN = 50.0
    URINE_ALBUMIN = 15.0
    PARATHYROID_HORMONE = 45.0
    VITAMIN_D = 35.0
    C_REACTIVE_PROTEIN = 1.0
    PROTEIN_INTAKE = 60.0
    SALT_INTAKE = 5.0
    WATER_INTAKE = 2.0
    EXERCISE_LEVEL = 3.0
    ALCOHOL_UNITS_PER_WEEK = 0.0
