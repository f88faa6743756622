"""
NephroTwin: Intake Schemas
==========================
Strict input guardrails for raw dict/JSON intake. Blank fields fall back to
clinically neutral values; everything else is range-checked before it can
reach the engine.
"""

import uuid
from dataclasses import asdict
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from constants import ENGINE_LIMITS, NEUTRAL_DEFAULTS as D, Gender, SmokingStatus
from models import LifestyleAdjustments, PatientData, Treatment


def _split_csv(value):
    # "Losartan 50mg, Metformin" -> ["Losartan 50mg", "Metformin"]
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


class PatientRequest(BaseModel):
    name: str = Field(D.NAME, max_length=120)

    # Demographics with hard physiological limits
    age: float = Field(D.AGE, ge=0, le=120, description="Age in years")
    gender: Gender = Field(Gender.MALE, description="'male' or 'female'")
    weight: float = Field(D.WEIGHT_KG, gt=0, le=400, description="Weight in kg")
    height: float = Field(D.HEIGHT_CM, gt=0, le=250, description="Height in cm")

    # Vitals
    systolic_bp: float = Field(D.SYSTOLIC_BP, ge=50, le=260)
    diastolic_bp: float = Field(D.DIASTOLIC_BP, ge=20, le=180)
    glucose: float = Field(D.GLUCOSE, gt=0, le=1000, description="mg/dL")

    # Serum panel
    serum_creatinine: float = Field(D.SERUM_CREATININE, ge=ENGINE_LIMITS.MIN_SERUM_CREATININE, le=25,
                                    description="mg/dL")
    bun: float = Field(D.BUN, ge=0, le=250, description="mg/dL")
    serum_calcium: float = Field(D.SERUM_CALCIUM, ge=0, le=20)
    serum_potassium: float = Field(D.SERUM_POTASSIUM, ge=0, le=10)
    serum_sodium: float = Field(D.SERUM_SODIUM, ge=0, le=200)
    serum_phosphorus: float = Field(D.SERUM_PHOSPHORUS, ge=0, le=20)
    serum_albumin: float = Field(D.SERUM_ALBUMIN, ge=0, le=7, description="g/dL")
    uric_acid: float = Field(D.URIC_ACID, ge=0, le=25)
    hemoglobin: Optional[float] = Field(None, gt=0, le=25, description="Defaults by gender")
    hba1c: float = Field(D.HBA1C, ge=0, le=20)
    cholesterol: float = Field(D.CHOLESTEROL, ge=0, le=1000)
    triglycerides: float = Field(D.TRIGLYCERIDES, ge=0, le=5000)

    # Urine & bone / inflammation markers
    urine_protein: float = Field(D.URINE_PROTEIN, ge=0, le=30000, description="mg/day")
    urine_albumin: float = Field(D.URINE_ALBUMIN, ge=0, le=20000, description="mg/day")
    parathyroid_hormone: float = Field(D.PARATHYROID_HORMONE, ge=0, le=5000)
    vitamin_d: float = Field(D.VITAMIN_D, ge=0, le=300)
    c_reactive_protein: float = Field(D.C_REACTIVE_PROTEIN, ge=0, le=500)

    existing_conditions: List[str] = Field(default_factory=list)
    current_medicines: List[str] = Field(default_factory=list)

    # Lifestyle
    hydration_level: float = Field(D.HYDRATION_LEVEL, ge=1, le=10)
    exercise_level: float = Field(D.EXERCISE_LEVEL, ge=0, le=10)
    protein_intake: float = Field(D.PROTEIN_INTAKE, ge=0, le=500, description="g/day")
    salt_intake: float = Field(D.SALT_INTAKE, ge=0, le=60, description="g/day")
    water_intake: float = Field(D.WATER_INTAKE, ge=0, le=15, description="L/day")
    smoking_status: SmokingStatus = Field(SmokingStatus.NEVER)
    alcohol_units_per_week: float = Field(D.ALCOHOL_UNITS_PER_WEEK, ge=0, le=300)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "name": "Jane Doe", "age": 62, "gender": "female", "weight": 68,
            "systolic_bp": 148, "diastolic_bp": 92, "serum_creatinine": 1.6,
            "uric_acid": 7.8, "hydration_level": 4,
            "existing_conditions": ["hypertension", "diabetes"],
            "current_medicines": "Lisinopril 10mg, Ibuprofen 400mg",
        }
    })

    @field_validator("current_medicines", "existing_conditions", mode="before")
    @classmethod
    def _accept_comma_separated(cls, value):
        return _split_csv(value)

    def defaulted_fields(self) -> List[str]:
        """Fields the caller left blank and that were filled with neutral values."""
        return [name for name in type(self).model_fields if name not in self.model_fields_set]

    def to_patient(self) -> PatientData:
        data = self.model_dump(exclude={"hemoglobin", "existing_conditions", "current_medicines"})
        hemoglobin = self.hemoglobin
        if hemoglobin is None:
            hemoglobin = D.HEMOGLOBIN_FEMALE if self.gender == Gender.FEMALE else D.HEMOGLOBIN_MALE
        return PatientData(
            hemoglobin=hemoglobin,
            existing_conditions=frozenset(self.existing_conditions),
            current_medicines=tuple(self.current_medicines),
            **data,
        )


class TreatmentRequest(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    medicine: str = Field(..., min_length=1, max_length=200)
    dosage: str = "1"
    frequency: str = "Once daily"
    tablets: int = Field(1, ge=1, le=20)
    category: Optional[str] = None

    def to_treatment(self) -> Treatment:
        return Treatment(**self.model_dump())


class AdjustmentsRequest(BaseModel):
    """Requested lifestyle targets; a blank target keeps the patient's current value."""
    hydration: Optional[float] = Field(None, ge=1, le=10)
    protein_intake: Optional[float] = Field(None, ge=0, le=500)
    salt_intake: Optional[float] = Field(None, ge=0, le=60)
    water_intake: Optional[float] = Field(None, ge=0, le=15)
    exercise_level: Optional[float] = Field(None, ge=0, le=10)

    def to_adjustments(self, patient: PatientData) -> LifestyleAdjustments:
        current = asdict(LifestyleAdjustments.from_patient(patient))
        current.update(self.model_dump(exclude_none=True))
        return LifestyleAdjustments(**current)


class SimulationRequest(BaseModel):
    patient: PatientRequest
    treatments: List[TreatmentRequest] = Field(default_factory=list)
    adjustments: AdjustmentsRequest = Field(default_factory=AdjustmentsRequest)
    # Candidate pool for the ranker; the selected treatments are used when absent
    treatment_pool: Optional[List[TreatmentRequest]] = Field(
        None, max_length=ENGINE_LIMITS.MAX_TREATMENT_POOL
    )
    include_rankings: bool = True
