"""
SKU Variant Codec — decodes catalog codes typed at the counter or scanned
from labels.

Grammar (case-insensitive, upper-cased before matching):

    CODE   = MASTER SUFFIX
    SUFFIX = [FINISH] [BRIDGE] [STONE]

  - FINISH: one letter from FINISH_CODES ("" = lustre, the unplated default)
  - BRIDGE: optional "S" right after the finish (bridge/cap construction)
  - STONE:  1-3 letters from a gender-aware stone table

Nothing in here raises on bad input: unknown fragments are passed back to
the caller so the operator can review them.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from jewel_costing import config
from jewel_costing.models.catalog_schema import Gender, PlatingType, Product, ProductVariant

logger = logging.getLogger("jewelcost-codec")


# ---------------------------------------------------------------------------
# Code tables
# ---------------------------------------------------------------------------

FINISH_CODES: Dict[str, str] = {
    "": "Lustre (Polished)",
    "P": "Patina",
    "X": "Gold-Plated",
    "D": "Two-Tone",
    "H": "Platinum",
}

# Plating implied by each finish code
FINISH_PLATING: Dict[str, PlatingType] = {
    "": PlatingType.NONE,
    "P": PlatingType.NONE,
    "X": PlatingType.GOLD_PLATED,
    "D": PlatingType.TWO_TONE,
    "H": PlatingType.PLATINUM,
}

# Finish label used when the suffix carries no finish but the master is plated
PLATING_LABELS: Dict[PlatingType, str] = {
    PlatingType.GOLD_PLATED: FINISH_CODES["X"],
    PlatingType.PLATINUM: FINISH_CODES["H"],
    PlatingType.TWO_TONE: FINISH_CODES["D"],
    PlatingType.ROSE_GOLD: "Rose Gold-Plated",
}

BRIDGE_CODE = "S"

STONE_CODES_WOMEN: Dict[str, str] = {
    "CO": "Copper",
    "PCO": "Green Copper",
    "MCO": "Purple Copper",
    "PAX": "Green Agate",
    "MAX": "Blue Agate",
    "KAX": "Red Agate",
    "AI": "Hematite",
    "AP": "Apatite",
    "AM": "Amazonite",
    "LR": "Labradorite",
    "LA": "Lapis Lazuli",
    "FI": "Mother of Pearl",
    "TPR": "Green Triplet",
    "TKO": "Red Triplet",
    "TMP": "Blue Triplet",
    "BST": "Blue Sky Topaz",
}

STONE_CODES_MEN: Dict[str, str] = {
    "KR": "Carnelian",
    "LA": "Lapis",
    "LE": "Howlite",
    "AX": "Agate",
    "TG": "Tiger's Eye",
    "QN": "Onyx",
    "TY": "Turquoise",
}

# Unisex lines see both tables; the women's meaning wins where a code is shared
STONE_CODES_ALL: Dict[str, str] = {**STONE_CODES_MEN, **STONE_CODES_WOMEN}

# Shortest plausible master code ("RN1")
_MIN_MASTER_LEN = 3

_STRUCTURAL_SPLIT_RE = re.compile(r"^([A-Z]+-?\d+)(.*)$")
_BRIDGE_MASTER_RE = re.compile(r"^([A-Z-]+\d+)([XPHD])(S)$")
_PLAIN_FINISH_RE = re.compile(r"^([A-Z-]+\d+)([XPHD])$")
_SKU_RANGE_RE = re.compile(r"^([A-Z-]+)(\d+)([A-Z]*)-([A-Z-]+)(\d+)([A-Z]*)$", re.IGNORECASE)

_GREEK_TO_LATIN: Dict[str, str] = {
    "Α": "A", "Β": "V", "Γ": "G", "Δ": "D", "Ε": "E", "Ζ": "Z", "Η": "I", "Θ": "TH",
    "Ι": "I", "Κ": "K", "Λ": "L", "Μ": "M", "Ν": "N", "Ξ": "X", "Ο": "O", "Π": "P",
    "Ρ": "R", "Σ": "S", "Τ": "T", "Υ": "Y", "Φ": "F", "Χ": "CH", "Ψ": "PS", "Ω": "O",
    "α": "a", "β": "v", "γ": "g", "δ": "d", "ε": "e", "ζ": "z", "η": "i", "θ": "th",
    "ι": "i", "κ": "k", "λ": "l", "μ": "m", "ν": "n", "ξ": "x", "ο": "o", "π": "p",
    "ρ": "r", "σ": "s", "τ": "t", "υ": "y", "φ": "f", "χ": "ch", "ψ": "ps", "ω": "o",
    "ς": "s",
}

# Prefix -> (gender, category) for the two-letter catalog families
_PREFIX_PROFILES: Dict[str, Tuple[Gender, str]] = {
    "CR": (Gender.MEN, "Cross"),
    "RN": (Gender.MEN, "Ring"),
    "PN": (Gender.MEN, "Pendant"),
    "DA": (Gender.WOMEN, "Ring"),
    "SK": (Gender.WOMEN, "Earrings"),
    "MN": (Gender.WOMEN, "Pendant"),
    "BR": (Gender.WOMEN, "Bracelet"),
}

# XR bracelets are split by number range: (upper bound inclusive, gender, category)
_XR_RANGES: List[Tuple[int, Gender, str]] = [
    (100, Gender.MEN, "Leather Bracelet"),
    (199, Gender.MEN, "Solid Bracelet"),
    (700, Gender.UNISEX, "Stone Bracelet"),
    (1099, Gender.UNISEX, "Multicolor Macrame Bracelet"),
    (1149, Gender.UNISEX, "Religious Macrame Bracelet"),
    (1199, Gender.UNISEX, "Multicolor Macrame Bracelet"),
    (1290, Gender.UNISEX, "Religious Leather Bracelet"),
]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CodeLabel:
    code: str
    name: str


@dataclass(frozen=True)
class VariantComponents:
    finish: CodeLabel
    stone: CodeLabel
    bridge: str = ""
    unknown: str = ""     # trailing characters no table recognized

    @property
    def is_recognized(self) -> bool:
        return not self.unknown


@dataclass(frozen=True)
class SkuSplit:
    master: str
    suffix: str
    matched: bool         # False = structural guess, display only


@dataclass(frozen=True)
class SkuAnalysis:
    is_variant: bool
    master_sku: str
    suffix: str
    detected_plating: PlatingType
    detected_bridge: str
    variant_description: Optional[str]


@dataclass(frozen=True)
class SkuProfile:
    gender: Gender
    category: str


class ScanStatus(str, Enum):
    MATCHED = "matched"
    VARIANT_REQUIRED = "variant_required"   # master known, variants exist, none matches
    UNKNOWN_SUFFIX = "unknown_suffix"       # master has no variants but trailing text remains


@dataclass(frozen=True)
class ScanResult:
    product: Product
    variant: Optional[ProductVariant]
    status: ScanStatus
    suffix: str = ""

    @property
    def requires_variant_selection(self) -> bool:
        return self.status == ScanStatus.VARIANT_REQUIRED


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def stone_table_for(gender: Optional[Gender]) -> Dict[str, str]:
    if gender == Gender.MEN:
        return STONE_CODES_MEN
    if gender == Gender.WOMEN:
        return STONE_CODES_WOMEN
    return STONE_CODES_ALL


def _components(
    finish: str, bridge: str, stone: str, stones: Dict[str, str], unknown: str = ""
) -> VariantComponents:
    return VariantComponents(
        finish=CodeLabel(finish, FINISH_CODES.get(finish, FINISH_CODES[""])),
        stone=CodeLabel(stone, stones.get(stone, stone)),
        bridge=bridge,
        unknown=unknown,
    )


def get_variant_components(suffix: str, gender: Optional[Gender] = None) -> VariantComponents:
    """
    Decode a variant suffix into finish, bridge and stone.

    Resolution order:
      1. finish-first: leading finish letter whose remainder (after an
         optional bridge) is empty or a known stone. "PCO" therefore reads
         as Patina + Copper, not Green Copper.
      2. the whole suffix is a known stone.
      3. greedy: optional finish, optional bridge, the longest stone code
         prefixing what is left; anything after it is returned as unknown.
    """
    stones = stone_table_for(gender)
    clean = (suffix or "").strip().upper()
    if not clean:
        return _components("", "", "", stones)

    head, rest = clean[0], clean[1:]
    is_finish = head != "" and head in FINISH_CODES

    if is_finish:
        candidates = [("", rest)]
        if rest.startswith(BRIDGE_CODE):
            candidates.append((BRIDGE_CODE, rest[len(BRIDGE_CODE):]))
        for bridge, stone in candidates:
            if stone == "" or stone in stones:
                return _components(head, bridge, stone, stones)

    if clean in stones:
        return _components("", "", clean, stones)

    finish = head if is_finish else ""
    remainder = clean[len(finish):]
    bridge = ""
    if finish and remainder.startswith(BRIDGE_CODE):
        bridge, remainder = BRIDGE_CODE, remainder[len(BRIDGE_CODE):]

    stone = ""
    for code in sorted(stones, key=lambda c: (-len(c), c)):
        if remainder.startswith(code):
            stone = code
            break
    unknown = remainder[len(stone):]
    return _components(finish, bridge, stone, stones, unknown=unknown)


def analyze_suffix(
    suffix: str,
    gender: Optional[Gender] = None,
    plating: Optional[PlatingType] = None,
) -> Optional[str]:
    """Human description of a suffix: "<finish>" or "<finish> - <stone>"."""
    clean = (suffix or "").strip().upper()
    if not clean:
        return None

    parts = get_variant_components(clean, gender)
    if parts.finish.code:
        finish_name = parts.finish.name
    elif plating is not None and plating != PlatingType.NONE:
        finish_name = PLATING_LABELS.get(plating, "")
    else:
        finish_name = FINISH_CODES[""]

    labels = [finish_name] if finish_name else []
    if parts.stone.code:
        labels.append(parts.stone.name)
    if parts.unknown:
        labels.append(parts.unknown)
    return " - ".join(labels) or None


# ---------------------------------------------------------------------------
# Master lookup
# ---------------------------------------------------------------------------

def transliterate_for_barcode(text: str) -> str:
    """Greek -> Latin so Code-128 labels can carry Greek SKUs."""
    return "".join(_GREEK_TO_LATIN.get(ch, ch) for ch in text)


def _master_candidates(code: str, products: Iterable[Product]) -> List[Tuple[Product, str]]:
    """
    Products whose SKU (or its barcode transliteration) prefixes ``code``,
    best first: longest prefix, then exact match, then alphabetical.
    """
    found: List[Tuple[Product, str]] = []
    for product in products:
        forms = {product.sku, transliterate_for_barcode(product.sku).upper()}
        matching = [form for form in forms if form and code.startswith(form)]
        if matching:
            found.append((product, max(matching, key=len)))
    found.sort(key=lambda pair: (-len(pair[1]), pair[1] != code, pair[0].sku))
    return found


def split_sku_components(code: str, products: Iterable[Product] = ()) -> SkuSplit:
    """Split a code into master and suffix, preferring known catalog masters."""
    clean = (code or "").strip().upper()
    candidates = _master_candidates(clean, products)
    if candidates:
        _, form = candidates[0]
        return SkuSplit(master=clean[: len(form)], suffix=clean[len(form):], matched=True)

    match = _STRUCTURAL_SPLIT_RE.match(clean)
    if match:
        return SkuSplit(master=match.group(1), suffix=match.group(2), matched=False)
    return SkuSplit(master=clean, suffix="", matched=False)


def infer_sku_profile(sku: str) -> SkuProfile:
    """Gender and category implied by the catalog family prefix."""
    clean = (sku or "").strip().upper()
    if clean.startswith("STX"):
        return SkuProfile(Gender.UNISEX, "Component (STX)")

    prefix = clean[:2]
    if prefix == "XR":
        digits = re.sub(r"\D", "", clean)
        if digits:
            number = int(digits)
            for upper, gender, category in _XR_RANGES:
                if number <= upper:
                    return SkuProfile(gender, category)
            return SkuProfile(Gender.MEN, "Bracelet")

    if prefix in _PREFIX_PROFILES:
        gender, category = _PREFIX_PROFILES[prefix]
        return SkuProfile(gender, category)
    return SkuProfile(Gender.UNISEX, "Cross" if prefix == "ST" else "General")


def _analysis_for(master: str, suffix: str, gender: Optional[Gender]) -> SkuAnalysis:
    if not suffix:
        return SkuAnalysis(False, master, "", PlatingType.NONE, "", None)

    parts = get_variant_components(suffix, gender)
    if not parts.is_recognized:
        logger.debug(f"Unrecognized suffix '{suffix}' on master {master}")
        return SkuAnalysis(False, master, suffix, PlatingType.NONE, "", None)

    plating = FINISH_PLATING.get(parts.finish.code, PlatingType.NONE)
    return SkuAnalysis(
        is_variant=True,
        master_sku=master,
        suffix=suffix,
        detected_plating=plating,
        detected_bridge=parts.bridge,
        variant_description=analyze_suffix(suffix, gender, plating),
    )


def analyze_sku(
    full_sku: str,
    gender: Optional[Gender] = None,
    products: Sequence[Product] = (),
) -> SkuAnalysis:
    """
    Decide whether ``full_sku`` is a variant of a master and describe it.

    A known catalog master always wins. Without one, ROOT+FINISH+S codes
    (MN050XS) are masters of their own since bridge pieces use separate
    molds and weights; ROOT+FINISH is a plain finish variant; anything else
    is scanned from the longest master down, preferring a master that ends
    in a digit.
    """
    clean = (full_sku or "").strip().upper()

    candidates = _master_candidates(clean, products)
    if candidates:
        product, form = candidates[0]
        return _analysis_for(clean[: len(form)], clean[len(form):], gender or product.gender)

    gender = gender or infer_sku_profile(clean).gender

    bridge_match = _BRIDGE_MASTER_RE.match(clean)
    if bridge_match:
        return SkuAnalysis(
            is_variant=False,
            master_sku=clean,
            suffix="",
            detected_plating=FINISH_PLATING[bridge_match.group(2)],
            detected_bridge=bridge_match.group(3),
            variant_description=None,
        )

    plain_match = _PLAIN_FINISH_RE.match(clean)
    if plain_match:
        return _analysis_for(plain_match.group(1), plain_match.group(2), gender)

    best = SkuAnalysis(False, clean, "", PlatingType.NONE, "", None)
    for cut in range(len(clean) - 1, _MIN_MASTER_LEN - 1, -1):
        master, suffix = clean[:cut], clean[cut:]
        parts = get_variant_components(suffix, gender)
        if not parts.is_recognized or not (parts.finish.code or parts.stone.code):
            continue
        best = _analysis_for(master, suffix, gender)
        if master[-1].isdigit():
            break
    return best


def find_product_by_scanned_code(code: str, products: Sequence[Product]) -> Optional[ScanResult]:
    """
    Resolve a scanned or typed code to a product and, when possible, a variant.

    Returns None when no master prefixes the code. A master whose variants
    do not include the remaining suffix comes back as VARIANT_REQUIRED; the
    caller must ask for the variant rather than add the bare master.
    """
    clean = (code or "").strip().upper()
    if not clean:
        return None

    candidates = _master_candidates(clean, products)
    if not candidates:
        logger.info(f"Scanned code {clean} matches no catalog master")
        return None

    product, form = candidates[0]
    suffix = clean[len(form):]

    for variant in product.variants:
        if suffix in (variant.suffix, transliterate_for_barcode(variant.suffix).upper()):
            return ScanResult(product, variant, ScanStatus.MATCHED, suffix)

    if not product.variants:
        status = ScanStatus.MATCHED if suffix == "" else ScanStatus.UNKNOWN_SUFFIX
        return ScanResult(product, None, status, suffix)

    return ScanResult(product, None, ScanStatus.VARIANT_REQUIRED, suffix)


# ---------------------------------------------------------------------------
# Catalog helpers
# ---------------------------------------------------------------------------

def expand_sku_range(token: str) -> List[str]:
    """
    Expand "DA050-DA063" (or "DA050X-DA063X") into individual SKUs.
    Tokens that are not a valid range come back unchanged as [token].
    """
    match = _SKU_RANGE_RE.match(token.strip())
    if not match:
        return [token]

    prefix1, num1, suffix1, prefix2, num2, suffix2 = match.groups()
    if prefix1.upper() != prefix2.upper() or suffix1.upper() != suffix2.upper():
        return [token]

    start, end = int(num1), int(num2)
    if start > end or end - start > config.MAX_SKU_RANGE_SPAN:
        return [token]

    pad = (num1.startswith("0") and len(num1) > 1) or len(num1) == len(num2)
    expanded = []
    for number in range(start, end + 1):
        digits = str(number).zfill(len(num1)) if pad else str(number)
        expanded.append(f"{prefix1.upper()}{digits}{suffix1.upper()}")
    return expanded


def get_prevalent_variant(variants: Sequence[ProductVariant]) -> Optional[ProductVariant]:
    """Variant shown by default: plain patina, else gold-plated, else the first."""
    if not variants:
        return None
    for variant in variants:
        if "P" in variant.suffix and "X" not in variant.suffix and "D" not in variant.suffix:
            return variant
    for variant in variants:
        if "X" in variant.suffix:
            return variant
    return variants[0]
