"""
Pack rules for catalog variants.

A variant whose option set carries no ``pack`` option, or a pack value of 1,
is a base unit and owns physical stock. Any other pack value N denotes a
bundle of N base units whose stock is derived from the base unit's record.

Everything here is pure: callers hand in option pairs, not model instances.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, Optional, Tuple

from storefront.domain.exceptions import AmbiguousOptions, InvalidPackValue

PACK_OPTION_TYPE = "pack"

OptionPairs = Iterable[Tuple[str, str]]


@dataclass(frozen=True)
class PackDetails:
    is_base_unit: bool
    pack_multiplier: int = 1
    base_unit_variant_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "is_base_unit": self.is_base_unit,
            "pack_multiplier": self.pack_multiplier,
            "base_unit_variant_id": self.base_unit_variant_id,
        }


def build_option_map(option_pairs: OptionPairs) -> Dict[str, str]:
    """
    Turn ``(type, value)`` pairs into a mapping.

    Raises:
        AmbiguousOptions: the same option type appears more than once
    """
    option_map = {}
    for option_type, option_value in option_pairs:
        if option_type in option_map:
            raise AmbiguousOptions(option_type)
        option_map[option_type] = str(option_value).strip()
    return option_map


def candidate_option_maps(candidates: Iterable[Tuple[object, OptionPairs]]):
    """Yield ``(id, option_map)`` for each candidate, skipping those whose options are malformed."""
    for candidate_id, option_pairs in candidates:
        try:
            yield candidate_id, build_option_map(option_pairs)
        except AmbiguousOptions:
            continue


def parse_pack_value(raw_value) -> int:
    """
    Parse a pack option value into a positive integer multiplier.

    Raises:
        InvalidPackValue: value is not numeric, not integral or not positive
    """
    try:
        number = Decimal(str(raw_value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidPackValue(raw_value) from None

    if not number.is_finite() or number != number.to_integral_value() or number <= 0:
        raise InvalidPackValue(raw_value)
    return int(number)


def classify(option_map: Dict[str, str]) -> PackDetails:
    raw_value = option_map.get(PACK_OPTION_TYPE)
    if raw_value is None:
        return PackDetails(is_base_unit=True, pack_multiplier=1)

    multiplier = parse_pack_value(raw_value)
    return PackDetails(is_base_unit=multiplier == 1, pack_multiplier=multiplier)


def non_pack_options(option_map: Dict[str, str]) -> Dict[str, str]:
    return {option_type: value for option_type, value in option_map.items() if option_type != PACK_OPTION_TYPE}


def is_matching_base_unit(pack_options: Dict[str, str], candidate_options: Dict[str, str]) -> bool:
    """
    True when ``candidate_options`` describe the base unit of ``pack_options``.

    The non-pack options must be the same type/value pairs on both sides and
    the candidate must itself classify as a base unit. A candidate with a
    malformed pack value never matches.
    """
    if non_pack_options(pack_options) != non_pack_options(candidate_options):
        return False
    try:
        return classify(candidate_options).is_base_unit
    except InvalidPackValue:
        return False


def computed_quantity(base_stock: int, pack_multiplier: int) -> int:
    """Whole packs available from ``base_stock`` units. Partial packs are never counted."""
    if base_stock <= 0:
        return 0
    return base_stock // pack_multiplier


def find_base_unit(pack_options: Dict[str, str], candidates: Iterable[Tuple[object, Dict[str, str]]]):
    """Return the id of the first ``(id, option_map)`` candidate that is the base unit, or None."""
    for candidate_id, candidate_options in candidates:
        if is_matching_base_unit(pack_options, candidate_options):
            return candidate_id
    return None
