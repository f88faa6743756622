import unittest

from constants import Gender
from core_metrics import KidneyMetricsEngine, round_half_up, round_to
from models import DataTypeError, DegenerateRatioError, InvalidInputError, PatientData


class TestKidneyMetricsEngine(unittest.TestCase):

    def setUp(self):
        """A healthy 50-year-old man with textbook labs."""
        self.patient_data = {
            'name': 'Standard Adult',
            'age': 50,
            'gender': 'male',
            'weight': 70.0,
            'height': 170.0,
            'systolic_bp': 120,
            'diastolic_bp': 80,
            'glucose': 95,
            'serum_creatinine': 1.0,
            'bun': 15,
            'serum_calcium': 9.5,
            'serum_potassium': 4.2,
            'serum_sodium': 140,
            'serum_phosphorus': 3.8,
            'serum_albumin': 4.0,
            'uric_acid': 5.5,
            'hemoglobin': 14.5,
            'hba1c': 5.5,
            'cholesterol': 180,
            'triglycerides': 120,
            'urine_protein': 50,
            'urine_albumin': 15,
            'parathyroid_hormone': 45,
            'vitamin_d': 35,
            'c_reactive_protein': 1.0,
            'hydration_level': 5,
            'exercise_level': 3,
            'protein_intake': 60,
            'salt_intake': 5,
            'water_intake': 2.0,
        }

    def make_patient(self, **overrides) -> PatientData:
        data = dict(self.patient_data)
        data.update(overrides)
        return PatientData(**data)

    # --- GFR & STAGING ---

    def test_01_gfr_reference_value(self):
        """[FORMULA] CKD-EPI 2021: male, 50y, creatinine 1.0 -> 91.7, G1."""
        m = KidneyMetricsEngine.calculate_baseline(self.make_patient())
        self.assertAlmostEqual(m.gfr, 91.7, places=1)
        self.assertEqual(m.gfr_category, "G1")
        self.assertEqual(m.ckd_stage, 1)
        self.assertEqual(m.gfr_category_label, "G1 - Normal or High")

    def test_02_gfr_female_at_kappa(self):
        gfr = KidneyMetricsEngine.calculate_gfr(50, Gender.FEMALE, 0.7)
        self.assertAlmostEqual(gfr, 105.3, delta=0.15)

    def test_03_gfr_monotonic_in_creatinine_and_age(self):
        gfrs = [KidneyMetricsEngine.calculate_gfr(50, Gender.MALE, cr) for cr in (0.6, 0.9, 1.2, 2.0, 4.0)]
        self.assertEqual(gfrs, sorted(gfrs, reverse=True))

        by_age = [KidneyMetricsEngine.calculate_gfr(age, Gender.FEMALE, 1.1) for age in (20, 40, 60, 80)]
        self.assertEqual(by_age, sorted(by_age, reverse=True))

    def test_04_gfr_clamped(self):
        self.assertEqual(KidneyMetricsEngine.calculate_gfr(18, Gender.FEMALE, 0.1), 160.0)
        self.assertEqual(KidneyMetricsEngine.calculate_gfr(90, Gender.MALE, 20.0), 3.0)

    def test_05_stage_boundaries(self):
        cases = [
            (120.0, ("G1", 1)), (90.0, ("G1", 1)), (89.9, ("G2", 2)),
            (60.0, ("G2", 2)), (59.9, ("G3a", 3)), (45.0, ("G3a", 3)),
            (44.9, ("G3b", 3)), (30.0, ("G3b", 3)), (29.9, ("G4", 4)),
            (15.0, ("G4", 4)), (14.9, ("G5", 5)), (3.0, ("G5", 5)),
        ]
        for gfr, expected in cases:
            with self.subTest(gfr=gfr):
                self.assertEqual(KidneyMetricsEngine.gfr_stage(gfr), expected)

    def test_06_albuminuria_categories(self):
        self.assertEqual(KidneyMetricsEngine.albuminuria_category(29.9), "A1")
        self.assertEqual(KidneyMetricsEngine.albuminuria_category(30), "A2")
        self.assertEqual(KidneyMetricsEngine.albuminuria_category(299), "A2")
        self.assertEqual(KidneyMetricsEngine.albuminuria_category(300), "A3")

    # --- RISK SCORES ---

    def test_07_stone_risk_scenario(self):
        """[SCORE] uric 8.0, hydration 3, water 2.0 -> 8 + 24 + 16 = 48."""
        m = KidneyMetricsEngine.calculate_baseline(self.make_patient(uric_acid=8.0, hydration_level=3))
        self.assertEqual(m.stone_risk, 48)

    def test_08_healthy_baseline_scores(self):
        m = KidneyMetricsEngine.calculate_baseline(self.make_patient())
        self.assertEqual(m.stone_risk, 8)
        self.assertEqual(m.stress_index, 15)
        self.assertEqual(m.ckd_progression_risk, 10)
        self.assertEqual(m.cardiovascular_risk, 8)
        self.assertEqual(m.aki_risk, 5)
        self.assertEqual(m.electrolyte_balance, 90)
        self.assertEqual(m.acid_base_balance, 83)
        self.assertEqual(m.efficiency, 76)
        self.assertEqual(m.nephron_health, 79)
        self.assertEqual(m.kidney_age, 61)
        self.assertEqual(m.bun_creatinine_ratio, 15.0)
        self.assertEqual(m.overall_health_score, 84)
        self.assertEqual(m.albuminuria_category, "A1")

    def test_09_nsaid_in_current_medicines_raises_aki_risk(self):
        plain = KidneyMetricsEngine.calculate_baseline(self.make_patient())
        on_nsaid = KidneyMetricsEngine.calculate_baseline(
            self.make_patient(current_medicines=("Ibuprofen 400mg",))
        )
        self.assertEqual(on_nsaid.aki_risk - plain.aki_risk, 12)

    def test_10_risk_factors_only_worsen_scores(self):
        healthy = KidneyMetricsEngine.calculate_baseline(self.make_patient())
        sick = KidneyMetricsEngine.calculate_baseline(self.make_patient(
            systolic_bp=165, hba1c=8.5, glucose=180, salt_intake=12,
            existing_conditions=frozenset({"diabetes", "hypertension"}),
            smoking_status="current",
        ))
        self.assertGreater(sick.stress_index, healthy.stress_index)
        self.assertGreater(sick.ckd_progression_risk, healthy.ckd_progression_risk)
        self.assertGreater(sick.cardiovascular_risk, healthy.cardiovascular_risk)
        self.assertLess(sick.vascular_health, healthy.vascular_health)
        self.assertLess(sick.overall_health_score, healthy.overall_health_score)

    def test_11_scores_stay_in_range_for_extreme_inputs(self):
        extreme = self.make_patient(
            age=95, serum_creatinine=12.0, systolic_bp=250, diastolic_bp=150,
            glucose=600, hba1c=15, uric_acid=18, serum_calcium=14, serum_phosphorus=12,
            serum_potassium=7.5, serum_sodium=120, serum_albumin=1.5, hemoglobin=5,
            cholesterol=500, triglycerides=1500, urine_protein=9000, urine_albumin=5000,
            parathyroid_hormone=1500, vitamin_d=2, c_reactive_protein=200,
            hydration_level=1, water_intake=0, salt_intake=25, protein_intake=250,
            alcohol_units_per_week=80, smoking_status="current",
            existing_conditions=frozenset({"diabetes", "hypertension", "ckd", "uti",
                                           "heart_disease", "kidney_stones", "gout"}),
            current_medicines=("Naproxen",),
        )
        m = KidneyMetricsEngine.calculate_baseline(extreme)
        self.assertGreaterEqual(m.gfr, 3.0)
        self.assertLessEqual(m.gfr, 160.0)
        for field_name in ("stone_risk", "stress_index", "ckd_progression_risk", "cardiovascular_risk",
                           "aki_risk", "infection_risk", "efficiency", "electrolyte_balance",
                           "acid_base_balance", "mineral_bone_score", "anemia_score",
                           "inflammation_score", "kidney_perfusion_index", "nephron_health",
                           "interstitial_health", "vascular_health", "overall_health_score"):
            with self.subTest(field=field_name):
                value = getattr(m, field_name)
                self.assertGreaterEqual(value, 0)
                self.assertLessEqual(value, 100)
        for region, value in vars(m.risk_heatmap).items():
            with self.subTest(region=region):
                self.assertTrue(0 <= value <= 100)
        self.assertEqual(m.ckd_stage, 5)
        self.assertEqual(m.albuminuria_category, "A3")

    def test_12_baseline_is_pure(self):
        patient = self.make_patient(uric_acid=7.2, existing_conditions=frozenset({"gout"}))
        first = KidneyMetricsEngine.calculate_baseline(patient)
        second = KidneyMetricsEngine.calculate_baseline(patient)
        self.assertEqual(first, second)

    def test_13_lab_echoes_are_rounded(self):
        m = KidneyMetricsEngine.calculate_baseline(self.make_patient(serum_creatinine=1.234, uric_acid=6.66))
        self.assertEqual(m.creatinine, 1.23)
        self.assertEqual(m.uric_acid, 6.7)

    # --- INPUT GUARDRAILS ---

    def test_14_zero_creatinine_rejected(self):
        with self.assertRaises(DegenerateRatioError):
            self.make_patient(serum_creatinine=0)

    def test_15_invalid_inputs_rejected(self):
        with self.assertRaises(InvalidInputError):
            self.make_patient(age=-1)
        with self.assertRaises(InvalidInputError):
            self.make_patient(hydration_level=11)
        with self.assertRaises(InvalidInputError):
            self.make_patient(gender="unknown")
        with self.assertRaises(InvalidInputError):
            self.make_patient(glucose=float("nan"))
        with self.assertRaises(DataTypeError):
            self.make_patient(age="fifty")

    def test_16_creatinine_that_rounds_to_zero_rejected(self):
        """[GUARDRAIL] 0.004 mg/dL would echo as 0.00 and break the BUN/creatinine ratio."""
        with self.assertRaises(DegenerateRatioError):
            self.make_patient(serum_creatinine=0.004)

        m = KidneyMetricsEngine.calculate_baseline(self.make_patient(serum_creatinine=0.005))
        self.assertEqual(m.creatinine, 0.01)
        self.assertEqual(m.bun_creatinine_ratio, 1500.0)
        self.assertEqual(m.gfr, 160.0)

    def test_17_bare_string_lists_rejected(self):
        with self.assertRaises(DataTypeError):
            self.make_patient(existing_conditions="diabetes")
        with self.assertRaises(DataTypeError):
            self.make_patient(current_medicines="Ibuprofen")

    def test_18_half_up_rounding(self):
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(-2.5), -2)
        self.assertEqual(round_to(0.25, 1), 0.3)


if __name__ == '__main__':
    unittest.main()
