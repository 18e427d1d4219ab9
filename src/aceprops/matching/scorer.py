"""
Scoring de propiedades contra preferencias de investors.

Score aditivo ponderado (0-100):
- Tipo de propiedad: 25
- Dormitorios: 20
- Presupuesto: 30
- Ubicación: 25

Cuando el presupuesto es de portfolio completo el criterio se saltea
y sus 30 puntos se reparten proporcionalmente entre los otros tres.

Funciones puras: no hacen I/O ni lanzan excepciones.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_FLOOR, Decimal
from typing import Iterable, Optional

from aceprops.models import (
    BudgetType,
    PreferenceProfile,
    PropertyRecord,
    normalize_property_type,
)

FACTOR_PROPERTY_TYPE = "property_type"
FACTOR_BEDROOMS = "bedrooms"
FACTOR_BUDGET = "budget"
FACTOR_LOCATION = "location"
FACTOR_MISSING_DATA = "missing_data"
FACTOR_PROFILE_INCOMPLETE = "profile_incomplete"

WEIGHTS = {
    FACTOR_PROPERTY_TYPE: 25,
    FACTOR_BEDROOMS: 20,
    FACTOR_BUDGET: 30,
    FACTOR_LOCATION: 25,
}

# Hasta 20% fuera del rango el puntaje de presupuesto decae linealmente a 0
BUDGET_TOLERANCE = Decimal("0.20")


def redistribute_weights(weights: dict[str, int], skipped: str) -> dict[str, int]:
    """
    Reparte el peso de un criterio salteado entre los demás.

    Escala los pesos restantes por 100/(100 - peso salteado) y redondea
    por mayor resto para que la suma siga dando exactamente 100.
    """
    kept = {k: v for k, v in weights.items() if k != skipped}
    total = sum(kept.values())
    exact = {k: Decimal(v * 100) / total for k, v in kept.items()}
    result = {k: int(v) for k, v in exact.items()}

    leftover = 100 - sum(result.values())
    by_remainder = sorted(
        kept, key=lambda k: (exact[k] - result[k], weights[k]), reverse=True
    )
    for key in by_remainder[:leftover]:
        result[key] += 1

    result[skipped] = 0
    return {k: result[k] for k in weights}


PORTFOLIO_WEIGHTS = redistribute_weights(WEIGHTS, FACTOR_BUDGET)


@dataclass
class BreakdownItem:
    """Aporte de un criterio al score."""

    factor: str
    points: int
    matched: bool
    note: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "factor": self.factor,
            "points": self.points,
            "matched": self.matched,
            "note": self.note,
        }


@dataclass
class MatchScore:
    """Score 0-100 con el detalle de cada criterio, en orden fijo."""

    score: int
    breakdown: list[BreakdownItem] = field(default_factory=list)

    @classmethod
    def zero(cls, factor: str, note: str) -> "MatchScore":
        return cls(score=0, breakdown=[BreakdownItem(factor, 0, False, note)])

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "breakdown": [item.to_dict() for item in self.breakdown],
        }


@dataclass
class MatchResult:
    """Resultado de matching para un par investor/propiedad."""

    investor_id: Optional[str]
    property: PropertyRecord
    match: MatchScore
    profile: Optional[PreferenceProfile] = None

    @property
    def property_id(self) -> Optional[str]:
        return self.property.id

    @property
    def score(self) -> int:
        return self.match.score

    @property
    def breakdown(self) -> list[BreakdownItem]:
        return self.match.breakdown


class PreferenceMatcher:
    """
    Calcula qué tan bien una propiedad cubre las preferencias de un investor.

    Criterios sin datos (perfil o propiedad) suman 0 en vez de fallar;
    la única excepción es el tipo de propiedad, donde una lista vacía
    es comodín y suma el peso completo.
    """

    def score(
        self,
        profile: Optional[PreferenceProfile],
        property: PropertyRecord,
    ) -> MatchScore:
        if profile is None:
            return MatchScore.zero(
                FACTOR_PROFILE_INCOMPLETE, "investor has no valid preference data"
            )

        if property.monthly_rent_minor_units is None or property.bedrooms is None:
            return MatchScore.zero(
                FACTOR_MISSING_DATA, "property is missing monthly rent or bedrooms"
            )

        budget = profile.budget_range
        portfolio = (
            budget is not None and budget.budget_type == BudgetType.TOTAL_PORTFOLIO
        )
        weights = PORTFOLIO_WEIGHTS if portfolio else WEIGHTS

        breakdown = [
            self._score_property_type(profile, property, weights[FACTOR_PROPERTY_TYPE]),
            self._score_bedrooms(profile, property, weights[FACTOR_BEDROOMS]),
            self._score_budget(profile, property, weights[FACTOR_BUDGET], portfolio),
            self._score_location(profile, property, weights[FACTOR_LOCATION]),
        ]

        total = sum(item.points for item in breakdown)
        return MatchScore(score=max(0, min(100, total)), breakdown=breakdown)

    def rank(
        self,
        profiles: Iterable[PreferenceProfile],
        properties: Iterable[PropertyRecord],
        min_score: int = 0,
    ) -> list[MatchResult]:
        """
        Modo batch: producto cruzado perfiles x propiedades.

        Excluye perfiles inactivos, filtra por min_score y ordena por
        score descendente; empates por fecha de creación de la propiedad,
        más nueva primero.
        """
        properties = list(properties)
        results = []
        for profile in profiles:
            if not profile.active:
                continue
            for prop in properties:
                match = self.score(profile, prop)
                if match.score >= min_score:
                    results.append(
                        MatchResult(
                            investor_id=profile.investor_id,
                            property=prop,
                            match=match,
                            profile=profile,
                        )
                    )

        results.sort(
            key=lambda r: (r.score, _created_ts(r.property.created_at)),
            reverse=True,
        )
        return results

    def _score_property_type(
        self, profile: PreferenceProfile, property: PropertyRecord, weight: int
    ) -> BreakdownItem:
        if not profile.property_types:
            return BreakdownItem(FACTOR_PROPERTY_TYPE, weight, True, "any property type")

        tag = normalize_property_type(property.property_type)
        if tag and tag in profile.property_types:
            return BreakdownItem(FACTOR_PROPERTY_TYPE, weight, True)
        return BreakdownItem(FACTOR_PROPERTY_TYPE, 0, False)

    def _score_bedrooms(
        self, profile: PreferenceProfile, property: PropertyRecord, weight: int
    ) -> BreakdownItem:
        bedroom_range = profile.bedroom_range
        if bedroom_range is None:
            return BreakdownItem(FACTOR_BEDROOMS, 0, False, "no bedroom preference")

        low, high = _ordered(bedroom_range.min, bedroom_range.max)
        beds = property.bedrooms

        if beds >= low and (high is None or beds <= high):
            return BreakdownItem(FACTOR_BEDROOMS, weight, True)

        if beds == low - 1 or (high is not None and beds == high + 1):
            return BreakdownItem(
                FACTOR_BEDROOMS, weight // 2, False, "one bedroom outside range"
            )
        return BreakdownItem(FACTOR_BEDROOMS, 0, False)

    def _score_budget(
        self,
        profile: PreferenceProfile,
        property: PropertyRecord,
        weight: int,
        portfolio: bool,
    ) -> BreakdownItem:
        if portfolio:
            return BreakdownItem(
                FACTOR_BUDGET, 0, False, "portfolio budget, weight redistributed"
            )

        budget = profile.budget_range
        if budget is None:
            return BreakdownItem(FACTOR_BUDGET, 0, False, "no budget preference")

        low, high = _ordered(budget.min, budget.max)
        rent = property.monthly_rent

        if rent >= low and (high is None or rent <= high):
            return BreakdownItem(FACTOR_BUDGET, weight, True)

        if rent < low:
            deviation = (low - rent) / low
            note = "below budget"
        elif high > 0:
            deviation = (rent - high) / high
            note = "over budget"
        else:
            return BreakdownItem(FACTOR_BUDGET, 0, False, "over budget")

        if deviation >= BUDGET_TOLERANCE:
            return BreakdownItem(FACTOR_BUDGET, 0, False, note)

        points = Decimal(weight) * (1 - deviation / BUDGET_TOLERANCE)
        points = int(points.to_integral_value(rounding=ROUND_FLOOR))
        return BreakdownItem(FACTOR_BUDGET, points, False, note)

    def _score_location(
        self, profile: PreferenceProfile, property: PropertyRecord, weight: int
    ) -> BreakdownItem:
        cities = profile.cities
        if not cities:
            return BreakdownItem(FACTOR_LOCATION, 0, False, "no location preference")

        city = (property.city or "").strip().lower()
        if city and city in cities:
            return BreakdownItem(FACTOR_LOCATION, weight, True)
        return BreakdownItem(FACTOR_LOCATION, 0, False)


def _ordered(low, high):
    # Rangos invertidos se corrigen en vez de fallar
    if high is not None and low > high:
        return high, low
    return low, high


def _created_ts(created_at: Optional[datetime]) -> float:
    if created_at is None:
        return float("-inf")
    return created_at.timestamp()
