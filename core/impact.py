"""
Environmental impact calculator.

Maps an item's (category, condition) pair to the CO2 and waste it keeps
out of circulation when the item is swapped instead of discarded. Pure
and deterministic; safe to call inside a transaction.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from .exceptions import InvalidCategory, InvalidCondition


# kg CO2-equivalent per category
BASE_FACTORS = {
    'clothing': Decimal('10'),
    'electronics': Decimal('50'),
    'furniture': Decimal('100'),
    'books': Decimal('5'),
    'toys': Decimal('8'),
    'sports': Decimal('15'),
    'kitchen': Decimal('20'),
    'garden': Decimal('25'),
    'automotive': Decimal('200'),
    'other': Decimal('10'),
}

CONDITION_MULTIPLIERS = {
    'new': Decimal('1.0'),
    'like-new': Decimal('0.9'),
    'good': Decimal('0.7'),
    'fair': Decimal('0.5'),
    'poor': Decimal('0.3'),
}

WASTE_RATIO = Decimal('0.2')

LEDGER_PRECISION = Decimal('0.001')

# A tree absorbs roughly 0.5kg CO2 a day; an average car emits ~250g per km.
TREE_DAILY_ABSORPTION_KG = Decimal('0.5')
CAR_KM_PER_KG = Decimal('4')


@dataclass(frozen=True)
class ImpactCredit:
    """CO2 saved and waste reduced, both in kg."""

    co2_saved: Decimal = Decimal('0')
    waste_reduced: Decimal = Decimal('0')

    def __add__(self, other):
        if not isinstance(other, ImpactCredit):
            return NotImplemented
        return ImpactCredit(
            co2_saved=self.co2_saved + other.co2_saved,
            waste_reduced=self.waste_reduced + other.waste_reduced,
        )

    def halved(self):
        """Split the credit evenly between two swap participants."""
        return ImpactCredit(
            co2_saved=(self.co2_saved / 2).quantize(LEDGER_PRECISION),
            waste_reduced=(self.waste_reduced / 2).quantize(LEDGER_PRECISION),
        )

    def is_zero(self):
        return not self.co2_saved and not self.waste_reduced

    def as_dict(self):
        return {
            'co2_saved': self.co2_saved,
            'waste_reduced': self.waste_reduced,
        }


ZERO_CREDIT = ImpactCredit()


def credit_for(category, condition):
    """
    Compute the environmental credit of a single item.

    Args:
        category: One of the BASE_FACTORS keys
        condition: One of the CONDITION_MULTIPLIERS keys

    Returns:
        ImpactCredit: co2_saved = base factor * condition multiplier,
        waste_reduced = co2_saved * WASTE_RATIO

    Raises:
        InvalidCategory: If category is not a known category
        InvalidCondition: If condition is not a known condition
    """
    if category not in BASE_FACTORS:
        raise InvalidCategory(f'Unknown item category: {category!r}.')
    if condition not in CONDITION_MULTIPLIERS:
        raise InvalidCondition(f'Unknown item condition: {condition!r}.')

    co2_saved = BASE_FACTORS[category] * CONDITION_MULTIPLIERS[condition]
    return ImpactCredit(
        co2_saved=co2_saved,
        waste_reduced=co2_saved * WASTE_RATIO,
    )


def swap_credit(initiator_item, receiver_item):
    """Total credit of a swap: the componentwise sum of both items' credit."""
    return (
        credit_for(initiator_item.category, initiator_item.condition)
        + credit_for(receiver_item.category, receiver_item.condition)
    )


def _round(value, places='0.1'):
    return Decimal(value).quantize(Decimal(places), rounding=ROUND_HALF_UP)


def impact_statement(credit):
    """
    Build a human-readable description of a swap's impact.

    Returns:
        dict: ``summary`` sentence plus a list of ``equivalents``
    """
    co2 = _round(credit.co2_saved)
    waste = _round(credit.waste_reduced)
    tree_days = int(_round(co2 / TREE_DAILY_ABSORPTION_KG, '1'))
    car_km = int(_round(co2 * CAR_KM_PER_KG, '1'))

    return {
        'summary': f'This swap saved {co2}kg of CO2 and reduced waste by {waste}kg.',
        'equivalents': [
            f'Equivalent to a tree absorbing CO2 for {tree_days} days.',
            f'Equivalent to reducing car travel by {car_km} kilometers.',
        ],
    }
