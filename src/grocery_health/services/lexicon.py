"""Ingredient risk lexicon shared by product scoring and health assessment."""

from dataclasses import dataclass

from grocery_health.domain.health import Severity


@dataclass(frozen=True)
class LexiconEntry:
    """A harmful ingredient fragment and how much it costs."""

    fragment: str
    points: int
    severity: Severity
    display_name: str
    reason: str


_SWEETENER = "Artificial sweetener linked to gut microbiome disruption"
_DYE = "Petroleum-based artificial food dye"
_PRESERVATIVE = "Synthetic antioxidant preservative with suspected health risks"
_TRANS_FAT = "Source of trans fats that raise LDL cholesterol"
_SYRUP = "Highly refined added sugar"
_CURING = "Curing agent that can form nitrosamines"
_FLAVOR = "Synthetic flavoring that signals heavy processing"
_ADDITIVE = "Processing additive associated with inflammation"

LEXICON: tuple[LexiconEntry, ...] = (
    LexiconEntry("sucralose", 50, Severity.AVOID, "Sucralose", _SWEETENER),
    LexiconEntry("aspartame", 50, Severity.AVOID, "Aspartame", _SWEETENER),
    LexiconEntry("acesulfame", 45, Severity.AVOID, "Acesulfame", _SWEETENER),
    LexiconEntry("acesulfame-k", 45, Severity.AVOID, "Acesulfame-K", _SWEETENER),
    LexiconEntry("red 40", 50, Severity.AVOID, "Red 40", _DYE),
    LexiconEntry("red dye 40", 50, Severity.AVOID, "Red Dye 40", _DYE),
    LexiconEntry("yellow 5", 45, Severity.AVOID, "Yellow 5", _DYE),
    LexiconEntry("yellow 6", 45, Severity.AVOID, "Yellow 6", _DYE),
    LexiconEntry("blue 1", 40, Severity.AVOID, "Blue 1", _DYE),
    LexiconEntry("blue 2", 40, Severity.AVOID, "Blue 2", _DYE),
    LexiconEntry(
        "caramel color",
        35,
        Severity.CONCERNING,
        "Caramel Color",
        "Coloring that may contain the contaminant 4-MEI",
    ),
    LexiconEntry("tartrazine", 45, Severity.AVOID, "Tartrazine", _DYE),
    LexiconEntry("sunset yellow", 45, Severity.AVOID, "Sunset Yellow", _DYE),
    LexiconEntry("tbhq", 48, Severity.AVOID, "TBHQ", _PRESERVATIVE),
    LexiconEntry("bha", 48, Severity.AVOID, "BHA", _PRESERVATIVE),
    LexiconEntry("bht", 48, Severity.AVOID, "BHT", _PRESERVATIVE),
    LexiconEntry(
        "high fructose corn syrup",
        25,
        Severity.CONCERNING,
        "High Fructose Corn Syrup",
        _SYRUP,
    ),
    LexiconEntry("corn syrup", 20, Severity.MODERATE, "Corn Syrup", _SYRUP),
    LexiconEntry(
        "partially hydrogenated",
        50,
        Severity.AVOID,
        "Partially Hydrogenated Oils",
        _TRANS_FAT,
    ),
    LexiconEntry("trans fat", 50, Severity.AVOID, "Trans Fats", _TRANS_FAT),
    LexiconEntry(
        "monosodium glutamate",
        30,
        Severity.CONCERNING,
        "Monosodium Glutamate",
        "Flavor enhancer some people react to",
    ),
    LexiconEntry(
        "msg", 30, Severity.CONCERNING, "MSG", "Flavor enhancer some people react to"
    ),
    LexiconEntry(
        "sodium benzoate",
        25,
        Severity.MODERATE,
        "Sodium Benzoate",
        "Preservative that can form benzene with vitamin C",
    ),
    LexiconEntry(
        "potassium bromate",
        50,
        Severity.AVOID,
        "Potassium Bromate",
        "Flour additive classified as a possible carcinogen",
    ),
    LexiconEntry(
        "propyl gallate", 35, Severity.CONCERNING, "Propyl Gallate", _PRESERVATIVE
    ),
    LexiconEntry("sodium nitrite", 40, Severity.CONCERNING, "Sodium Nitrite", _CURING),
    LexiconEntry("sodium nitrate", 38, Severity.CONCERNING, "Sodium Nitrate", _CURING),
    LexiconEntry(
        "artificial flavor", 30, Severity.CONCERNING, "Artificial Flavors", _FLAVOR
    ),
    LexiconEntry(
        "artificial flavoring",
        30,
        Severity.CONCERNING,
        "Artificial Flavoring",
        _FLAVOR,
    ),
    LexiconEntry("carrageenan", 28, Severity.CONCERNING, "Carrageenan", _ADDITIVE),
    LexiconEntry("polysorbate", 32, Severity.CONCERNING, "Polysorbate", _ADDITIVE),
)


def match_ingredients(ingredient_statement: str | None) -> list[LexiconEntry]:
    """Return every lexicon entry whose fragment occurs in the statement.

    Matching is case-insensitive substring containment. Overlapping
    fragments (``corn syrup`` inside ``high fructose corn syrup``) each
    count as a separate match.
    """
    if not ingredient_statement:
        return []
    text = ingredient_statement.lower()
    return [entry for entry in LEXICON if entry.fragment in text]


def penalty_for(ingredient_statement: str | None) -> int:
    """Sum of points for all matched fragments."""
    return sum(entry.points for entry in match_ingredients(ingredient_statement))


def entry_for(fragment: str) -> LexiconEntry | None:
    """Look up an entry by its exact fragment."""
    key = fragment.lower()
    for entry in LEXICON:
        if entry.fragment == key:
            return entry
    return None
