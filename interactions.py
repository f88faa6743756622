"""
NephroTwin: Drug Classifier & Interaction Detector
==================================================
Maps free-text medicine names to drug classes and flags known class-pair
interactions. Unknown names are not an error: they classify to None and are
skipped by interaction checks and dosed effects.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from constants import DrugClass
from drug_library import DRUG_LIBRARY, ClassificationRuleset
from models import DrugInteraction, Treatment

logger = logging.getLogger("nephrotwin-interactions")


class DrugClassifier:
    """
    Classifies medicine names against an injected ClassificationRuleset.
    1. Lexicon: case-insensitive, longest member name contained in the input wins.
    2. Heuristics: first matching substring rule, in declared order.
    """

    def __init__(self, ruleset: ClassificationRuleset = DRUG_LIBRARY.DEFAULT_RULESET):
        self.ruleset = ruleset
        # Longest names first; stable sort keeps lexicon order for equal lengths
        members = [(name, cls) for cls, names in ruleset.lexicon.items() for name in sorted(names)]
        self._members: Tuple[Tuple[str, DrugClass], ...] = tuple(
            sorted(members, key=lambda pair: len(pair[0]), reverse=True)
        )

    def classify(self, medicine: str) -> Optional[DrugClass]:
        lowered = medicine.lower()

        for name, drug_class in self._members:
            if name in lowered:
                return drug_class

        for rule in self.ruleset.heuristics:
            if rule.matches(lowered):
                return rule.drug_class

        logger.debug(f"Unclassified medicine: {medicine!r}")
        return None

    def mentions(self, medicine: str, drug_class: DrugClass) -> bool:
        """True if the name contains any lexicon member of `drug_class`."""
        lowered = medicine.lower()
        return any(name in lowered for name in self.ruleset.lexicon.get(drug_class, ()))


DEFAULT_CLASSIFIER = DrugClassifier()


def detect_interactions(treatments: Sequence[Treatment],
                        classifier: DrugClassifier = DEFAULT_CLASSIFIER) -> List[DrugInteraction]:
    """
    Checks every unordered pair of classified treatments against the symmetric
    interaction table. Returns one entry per matching pair, with the actual
    medicine names in place of the class tags.
    """
    resolved = [(t, classifier.classify(t.medicine)) for t in treatments]
    interactions: List[DrugInteraction] = []

    for i in range(len(resolved)):
        first, class_a = resolved[i]
        if class_a is None:
            continue
        for j in range(i + 1, len(resolved)):
            second, class_b = resolved[j]
            if class_b is None:
                continue
            rule = DRUG_LIBRARY.interaction_for(class_a, class_b)
            if rule is None:
                continue
            interactions.append(DrugInteraction(
                drug1=first.medicine,
                drug2=second.medicine,
                severity=rule.severity,
                description=rule.description,
                effect=rule.effect,
            ))

    if interactions:
        logger.debug(f"{len(interactions)} interaction(s) among {len(treatments)} treatment(s)")
    return interactions
