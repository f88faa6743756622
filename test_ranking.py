import unittest

from core_metrics import KidneyMetricsEngine
from models import Treatment, TreatmentPoolTooLargeError
from ranking import TreatmentRanker, generate_reasoning
from schemas import PatientRequest


def rx(*names):
    return [Treatment(id=f"t{i}", medicine=name) for i, name in enumerate(names)]


class TestTreatmentRanker(unittest.TestCase):

    def setUp(self):
        self.patient = PatientRequest(age=50, gender="male").to_patient()
        self.baseline = KidneyMetricsEngine.calculate_baseline(self.patient)
        self.ranker = TreatmentRanker()

    def test_01_empty_pool(self):
        self.assertEqual(self.ranker.rank(self.baseline, self.patient, []), [])

    def test_02_pool_cap(self):
        pool = [Treatment(id=str(i), medicine=f"Drug {i}") for i in range(21)]
        with self.assertRaises(TreatmentPoolTooLargeError):
            self.ranker.rank(self.baseline, self.patient, pool)

    def test_03_combination_sizes(self):
        combos = TreatmentRanker.generate_combinations(rx("A", "B", "C", "D"))
        self.assertEqual(len(combos), 4 + 6 + 4)
        self.assertEqual([len(c) for c in combos[:4]], [1, 1, 1, 1])
        self.assertEqual(max(len(c) for c in combos), 3)
        self.assertEqual(len(TreatmentRanker.generate_combinations(rx("A", "B"))), 3)

    def test_04_top_ten_sorted(self):
        pool = rx("Lisinopril", "Losartan", "Empagliflozin", "Allopurinol", "Atorvastatin")
        rankings = self.ranker.rank(self.baseline, self.patient, pool)
        self.assertEqual(len(rankings), 10)
        scores = [r.score for r in rankings]
        self.assertEqual(scores, sorted(scores, reverse=True))

    def test_05_small_pool_returns_every_regimen(self):
        rankings = self.ranker.rank(self.baseline, self.patient, rx("Lisinopril", "Empagliflozin"))
        self.assertEqual(len(rankings), 3)

    def test_06_monotherapy_score(self):
        """Lisinopril alone: 3.5*3 + 11*1.5 + 5*2 = 37."""
        [ranking] = self.ranker.rank(self.baseline, self.patient, rx("Lisinopril 10mg"))
        self.assertEqual(ranking.score, 37)
        self.assertEqual(ranking.gfr_improvement, 3.5)
        self.assertEqual(ranking.risk_reduction, 11)
        self.assertEqual(ranking.side_effect_risk, 0)
        self.assertEqual(ranking.reasoning,
                         "Moderate GFR benefit (+3.5) • no drug interactions • monotherapy")

    def test_07_severe_pair_penalised(self):
        rankings = self.ranker.rank(self.baseline, self.patient, rx("Lisinopril", "Losartan", "Empagliflozin"))
        dual = next(r for r in rankings if r.label == "Lisinopril + Losartan")
        self.assertEqual(dual.side_effect_risk, 30)
        self.assertEqual(dual.interaction_count, 1)
        self.assertIn("⚠️ 1 severe interaction(s)", dual.reasoning)
        self.assertIn("2-drug regimen", dual.reasoning)

        top = rankings[0]
        self.assertEqual(top.side_effect_risk, 0)
        self.assertIn("Empagliflozin", top.label)

    def test_08_ties_keep_generation_order(self):
        rankings = self.ranker.rank(self.baseline, self.patient, rx("Vitamin C", "Fish oil"))
        self.assertEqual([r.label for r in rankings], ["Vitamin C", "Fish oil", "Vitamin C + Fish oil"])
        self.assertTrue(all(r.score == 0 for r in rankings))

    def test_09_thread_pool_matches_sequential(self):
        pool = rx("Lisinopril", "Losartan", "Empagliflozin", "Allopurinol", "Ibuprofen", "Furosemide")
        sequential = self.ranker.rank(self.baseline, self.patient, pool)
        threaded = TreatmentRanker(max_workers=4).rank(self.baseline, self.patient, pool)
        self.assertEqual(sequential, threaded)

    def test_10_reasoning_text(self):
        combo = rx("Empagliflozin")
        self.assertEqual(generate_reasoning(combo, [], 6.0, 20.0),
                         "Strong GFR improvement (+6.0) • significant risk reduction • "
                         "no drug interactions • monotherapy")
        self.assertEqual(generate_reasoning(rx("A", "B", "C"), [], 0.0, 0.0),
                         "no drug interactions • 3-drug regimen")


if __name__ == '__main__':
    unittest.main()
