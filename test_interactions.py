import unittest

from constants import DrugClass, InteractionSeverity
from drug_library import DRUG_LIBRARY, ClassificationRuleset, HeuristicRule
from interactions import DEFAULT_CLASSIFIER, DrugClassifier, detect_interactions
from models import Treatment


def rx(*names):
    return [Treatment(id=str(i), medicine=name) for i, name in enumerate(names)]


class TestDrugClassifier(unittest.TestCase):

    def setUp(self):
        self.classifier = DEFAULT_CLASSIFIER

    def test_01_lexicon_lookup_is_case_insensitive(self):
        self.assertEqual(self.classifier.classify("LISINOPRIL 10mg"), DrugClass.ACE)
        self.assertEqual(self.classifier.classify("Losartan 50mg"), DrugClass.ARB)
        self.assertEqual(self.classifier.classify("empagliflozin"), DrugClass.SGLT2)
        self.assertEqual(self.classifier.classify("Epoetin alfa"), DrugClass.ESA)
        self.assertEqual(self.classifier.classify("Calcium acetate 667mg"), DrugClass.PHOSPHATE_BINDER)

    def test_02_bicarbonate_is_not_an_arb(self):
        """'sodium bicarbonate' contains 'arb'; the alkalizer rule must win."""
        self.assertEqual(self.classifier.classify("Sodium Bicarbonate 650mg"), DrugClass.ALKALIZER)

    def test_03_acetate_excluded_from_ace_heuristic(self):
        self.assertIsNone(self.classifier.classify("Zinc acetate"))

    def test_04_metformin_scored_as_sglt2(self):
        self.assertEqual(self.classifier.classify("Metformin 500mg"), DrugClass.SGLT2)

    def test_05_unknown_name_is_unclassified(self):
        self.assertIsNone(self.classifier.classify("Mystery herbal tonic"))
        self.assertIsNone(self.classifier.classify(""))

    def test_06_longest_lexicon_member_wins(self):
        ruleset = ClassificationRuleset(lexicon={
            DrugClass.ESA: frozenset({"epo"}),
            DrugClass.IRON: frozenset({"epoferrin"}),
        })
        classifier = DrugClassifier(ruleset)
        self.assertEqual(classifier.classify("Epoferrin 100mg"), DrugClass.IRON)
        self.assertEqual(classifier.classify("Epo injection"), DrugClass.ESA)

    def test_07_injected_ruleset_without_heuristics(self):
        classifier = DrugClassifier(ClassificationRuleset(lexicon=DRUG_LIBRARY.LEXICON))
        self.assertIsNone(classifier.classify("Metformin 500mg"))
        self.assertIsNone(classifier.classify("Sodium bicarbonate"))
        self.assertEqual(classifier.classify("Ramipril"), DrugClass.ACE)

    def test_08_heuristic_rule_blockers(self):
        rule = HeuristicRule("ace", DrugClass.ACE, unless=("acetate",))
        self.assertTrue(rule.matches("generic ace inhibitor"))
        self.assertFalse(rule.matches("magnesium acetate"))
        self.assertFalse(rule.matches("losartan"))

    def test_09_mentions(self):
        self.assertTrue(self.classifier.mentions("Ibuprofen 400mg", DrugClass.NSAID))
        self.assertFalse(self.classifier.mentions("Paracetamol", DrugClass.NSAID))


class TestInteractionDetector(unittest.TestCase):

    def test_01_dual_raas_blockade(self):
        found = detect_interactions(rx("Lisinopril 10mg", "Losartan 50mg"))
        self.assertEqual(len(found), 1)
        self.assertEqual(found[0].severity, InteractionSeverity.SEVERE)
        self.assertEqual(found[0].description, "Dual RAAS blockade")
        self.assertEqual(found[0].drug1, "Lisinopril 10mg")
        self.assertEqual(found[0].drug2, "Losartan 50mg")

    def test_02_order_independent(self):
        names = ["Lisinopril 10mg", "Losartan 50mg", "Ibuprofen 400mg", "Furosemide 40mg"]
        forward = {(i.pair, i.description) for i in detect_interactions(rx(*names))}
        backward = {(i.pair, i.description) for i in detect_interactions(rx(*reversed(names)))}
        self.assertEqual(forward, backward)

    def test_03_one_entry_per_interacting_pair(self):
        found = detect_interactions(rx("Lisinopril", "Losartan", "Ibuprofen"))
        by_description = {i.description: i.severity for i in found}
        self.assertEqual(by_description, {
            "Dual RAAS blockade": InteractionSeverity.SEVERE,
            "ACEi + NSAID": InteractionSeverity.MODERATE,
            "ARB + NSAID": InteractionSeverity.MODERATE,
        })

    def test_04_mild_and_moderate_pairs(self):
        mild = detect_interactions(rx("Amlodipine 5mg", "Metoprolol 50mg"))
        self.assertEqual([i.severity for i in mild], [InteractionSeverity.MILD])

        moderate = detect_interactions(rx("Furosemide 40mg", "Enalapril 5mg"))
        self.assertEqual([i.description for i in moderate], ["Diuretic + ACEi first dose"])

    def test_05_no_interaction_cases(self):
        self.assertEqual(detect_interactions([]), [])
        self.assertEqual(detect_interactions(rx("Lisinopril")), [])
        self.assertEqual(detect_interactions(rx("Lisinopril", "Enalapril")), [])
        self.assertEqual(detect_interactions(rx("Lisinopril", "Mystery tonic")), [])
        self.assertEqual(detect_interactions(rx("Sodium bicarbonate", "Lisinopril")), [])

    def test_06_table_tags_reachable_through_injected_lexicon(self):
        classifier = DrugClassifier(ClassificationRuleset(lexicon={
            DrugClass.ACE: frozenset({"lisinopril"}),
            DrugClass.POTASSIUM: frozenset({"potassium chloride"}),
        }))
        found = detect_interactions(rx("Lisinopril", "Potassium chloride 20mEq"), classifier)
        self.assertEqual(len(found), 1)
        self.assertEqual(found[0].description, "ACEi + K+ supplements")

    def test_07_interaction_table_is_symmetric(self):
        self.assertIs(DRUG_LIBRARY.interaction_for(DrugClass.ACE, DrugClass.ARB),
                      DRUG_LIBRARY.interaction_for(DrugClass.ARB, DrugClass.ACE))
        self.assertIsNone(DRUG_LIBRARY.interaction_for(DrugClass.SGLT2, DrugClass.ACE))


if __name__ == '__main__':
    unittest.main()
