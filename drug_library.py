"""
NephroTwin: Drug Reference Data
===============================
The pharmacopoeia the engine reasons over: which names belong to which drug
class, how free-text names are classified when no lexicon entry matches,
which class pairs interact, and what each class does to kidney metrics.

Everything here is built once at import into immutable structures and is
injected into the classifier/simulator rather than read as globals.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional, Tuple

from constants import DrugClass, InteractionSeverity


@dataclass(frozen=True)
class HeuristicRule:
    """Substring fallback: `needle` in name (and none of `unless`) -> drug_class."""
    needle: str
    drug_class: DrugClass
    unless: Tuple[str, ...] = ()

    def matches(self, lowered_name: str) -> bool:
        if self.needle not in lowered_name:
            return False
        return not any(blocker in lowered_name for blocker in self.unless)


@dataclass(frozen=True)
class ClassificationRuleset:
    """Ordered ruleset: lexicon lookup first, then heuristics in declared order."""
    lexicon: Mapping[DrugClass, FrozenSet[str]]
    heuristics: Tuple[HeuristicRule, ...] = ()


@dataclass(frozen=True)
class InteractionRule:
    classes: FrozenSet[DrugClass]
    severity: InteractionSeverity
    description: str
    effect: str


@dataclass(frozen=True)
class EffectBundle:
    """
    Per-class deltas applied by the simulator. Reductions are positive numbers
    (subtracted from a risk), improvements are positive (added to a score).
    Fields named in `dose_scaled` are multiplied by min(tablets, 3).
    """
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
    dose_scaled: Tuple[str, ...] = ()


def _lexicon(entries) -> Mapping[DrugClass, FrozenSet[str]]:
    return MappingProxyType({cls: frozenset(names) for cls, names in entries})


def _interactions(rules) -> Mapping[FrozenSet[DrugClass], InteractionRule]:
    table = {}
    for a, b, severity, description, effect in rules:
        key = frozenset((a, b))
        table[key] = InteractionRule(key, severity, description, effect)
    return MappingProxyType(table)


_SEVERE = InteractionSeverity.SEVERE
_MODERATE = InteractionSeverity.MODERATE
_MILD = InteractionSeverity.MILD

_BICARBONATE_EFFECT = EffectBundle(gfr=3, ckd_progression_reduction=4)


class DRUG_LIBRARY:
    """The static drug reference tables."""

    LEXICON = _lexicon([
        (DrugClass.ACE, ["enalapril", "lisinopril", "ramipril", "captopril", "perindopril",
                         "benazepril", "fosinopril", "quinapril", "trandolapril"]),
        (DrugClass.ARB, ["losartan", "valsartan", "telmisartan", "irbesartan", "candesartan",
                         "olmesartan", "azilsartan"]),
        (DrugClass.CCB, ["amlodipine", "nifedipine", "felodipine", "diltiazem", "verapamil",
                         "nicardipine"]),
        (DrugClass.DIURETIC, ["furosemide", "hydrochlorothiazide", "spironolactone", "bumetanide",
                              "torsemide", "amiloride", "chlorthalidone", "indapamide"]),
        (DrugClass.BETA_BLOCKER, ["metoprolol", "atenolol", "carvedilol", "bisoprolol",
                                  "propranolol", "nebivolol"]),
        (DrugClass.STATIN, ["atorvastatin", "rosuvastatin", "simvastatin", "pravastatin",
                            "fluvastatin"]),
        (DrugClass.XANTHINE_OXIDASE, ["allopurinol", "febuxostat"]),
        (DrugClass.SGLT2, ["empagliflozin", "dapagliflozin", "canagliflozin"]),
        (DrugClass.DPP4, ["sitagliptin", "linagliptin", "saxagliptin", "alogliptin"]),
        (DrugClass.GLP1, ["semaglutide", "liraglutide", "dulaglutide", "exenatide"]),
        (DrugClass.NSAID, ["ibuprofen", "naproxen", "diclofenac", "celecoxib", "indomethacin"]),
        (DrugClass.ANTICOAGULANT, ["warfarin", "apixaban", "rivaroxaban", "dabigatran"]),
        (DrugClass.PHOSPHATE_BINDER, ["sevelamer", "lanthanum", "calcium acetate",
                                      "calcium carbonate"]),
        (DrugClass.ESA, ["epoetin", "darbepoetin"]),
        (DrugClass.IRON, ["ferric carboxymaltose", "iron sucrose", "ferrous sulfate"]),
    ])

    # Order matters: "sodium bicarbonate" contains "arb", so it is tested first.
    # Earlier releases matched "arb" first and flagged bicarbonate + ACEi as dual RAAS blockade.
    HEURISTICS = (
        HeuristicRule("sodium bicarbonate", DrugClass.ALKALIZER),
        HeuristicRule("ace", DrugClass.ACE, unless=("acetate",)),
        HeuristicRule("arb", DrugClass.ARB),
        HeuristicRule("diuretic", DrugClass.DIURETIC),
        # Oral antidiabetic bucket; metformin is a biguanide but is scored as SGLT2
        HeuristicRule("metformin", DrugClass.SGLT2),
    )

    DEFAULT_RULESET = ClassificationRuleset(lexicon=LEXICON, heuristics=HEURISTICS)

    INTERACTIONS = _interactions([
        (DrugClass.ACE, DrugClass.ARB, _SEVERE, "Dual RAAS blockade",
         "Hyperkalemia, hypotension, renal failure risk"),
        (DrugClass.ACE, DrugClass.POTASSIUM, _SEVERE, "ACEi + K+ supplements",
         "Life-threatening hyperkalemia"),
        (DrugClass.ACE, DrugClass.NSAID, _MODERATE, "ACEi + NSAID",
         "Reduced antihypertensive effect, acute kidney injury risk"),
        (DrugClass.ARB, DrugClass.POTASSIUM, _SEVERE, "ARB + K+ supplements",
         "Life-threatening hyperkalemia"),
        (DrugClass.ARB, DrugClass.NSAID, _MODERATE, "ARB + NSAID",
         "Reduced renal function, fluid retention"),
        (DrugClass.METFORMIN, DrugClass.CONTRAST, _SEVERE, "Metformin + IV contrast",
         "Lactic acidosis risk"),
        (DrugClass.ALLOPURINOL, DrugClass.AZATHIOPRINE, _SEVERE, "Xanthine oxidase + thiopurine",
         "Bone marrow suppression"),
        (DrugClass.DIURETIC, DrugClass.ACE, _MODERATE, "Diuretic + ACEi first dose",
         "Excessive hypotension"),
        (DrugClass.DIURETIC, DrugClass.LITHIUM, _MODERATE, "Diuretic + Lithium",
         "Lithium toxicity"),
        (DrugClass.DIURETIC, DrugClass.NSAID, _MODERATE, "Diuretic + NSAID",
         "Reduced diuretic efficacy, renal impairment"),
        (DrugClass.CCB, DrugClass.BETA_BLOCKER, _MILD, "CCB + Beta blocker",
         "Excessive bradycardia"),
        (DrugClass.STATIN, DrugClass.FIBRATE, _MODERATE, "Statin + Fibrate",
         "Rhabdomyolysis risk → acute kidney injury"),
        (DrugClass.AMINOGLYCOSIDE, DrugClass.DIURETIC, _SEVERE, "Aminoglycoside + Loop diuretic",
         "Ototoxicity and nephrotoxicity"),
        (DrugClass.CYCLOSPORINE, DrugClass.NSAID, _SEVERE, "Cyclosporine + NSAID",
         "Nephrotoxicity"),
        (DrugClass.ACE, DrugClass.TRIMETHOPRIM, _MODERATE, "ACEi + Trimethoprim",
         "Hyperkalemia"),
    ])

    EFFECTS = MappingProxyType({
        DrugClass.ACE: EffectBundle(gfr=5 * 0.7, stress_reduction=10, ckd_progression_reduction=8,
                                    cv_risk_reduction=6, dose_scaled=("gfr",)),
        DrugClass.ARB: EffectBundle(gfr=4 * 0.7, stress_reduction=9, ckd_progression_reduction=7,
                                    cv_risk_reduction=5, dose_scaled=("gfr",)),
        # Strong evidence for CKD protection
        DrugClass.SGLT2: EffectBundle(gfr=6, stress_reduction=8, ckd_progression_reduction=15,
                                      cv_risk_reduction=10, stone_risk_reduction=3),
        DrugClass.XANTHINE_OXIDASE: EffectBundle(uric_acid=-2.5 * 0.6, stone_risk_reduction=15,
                                                 ckd_progression_reduction=3,
                                                 dose_scaled=("uric_acid",)),
        DrugClass.CCB: EffectBundle(stress_reduction=8, cv_risk_reduction=5),
        DrugClass.DIURETIC: EffectBundle(stress_reduction=6, gfr=2, stone_risk_reduction=5),
        DrugClass.BETA_BLOCKER: EffectBundle(stress_reduction=5, cv_risk_reduction=8),
        DrugClass.STATIN: EffectBundle(cv_risk_reduction=12, inflammation_reduction=5),
        DrugClass.PHOSPHATE_BINDER: EffectBundle(mineral_bone_improvement=12),
        DrugClass.ESA: EffectBundle(anemia_improvement=20),
        DrugClass.IRON: EffectBundle(anemia_improvement=10),
        DrugClass.GLP1: EffectBundle(stress_reduction=5, ckd_progression_reduction=8,
                                     cv_risk_reduction=8),
        DrugClass.ALKALIZER: _BICARBONATE_EFFECT,
    })

    # Names that resolved to no class (or to a class without effects) still get
    # these; every matching needle applies.
    UNCLASSIFIED_EFFECTS = (
        ("sodium bicarbonate", _BICARBONATE_EFFECT),
        ("metformin", EffectBundle(stress_reduction=5)),
    )

    @staticmethod
    def interaction_for(a: DrugClass, b: DrugClass) -> Optional[InteractionRule]:
        return DRUG_LIBRARY.INTERACTIONS.get(frozenset((a, b)))

    @staticmethod
    def effect_for(drug_class: Optional[DrugClass]) -> Optional[EffectBundle]:
        if drug_class is None:
            return None
        return DRUG_LIBRARY.EFFECTS.get(drug_class)
