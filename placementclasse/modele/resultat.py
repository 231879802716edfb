from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from ..contraintes.types import TypeViolation
from .placement import Arrangement, arrangement_en_cles
from .position import Position


@dataclass(frozen=True)
class Violation:
    """Violation de contrainte relevée sur un arrangement (jamais persistée)."""

    type: TypeViolation
    message: str
    eleves: Tuple[str, ...] = ()
    positions: Tuple[Position, ...] = ()

    def en_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "type": self.type.value,
            "message": self.message,
            "studentIds": list(self.eleves),
        }
        if self.positions:
            d["positions"] = [p.cle() for p in self.positions]
        return d


@dataclass(frozen=True)
class ResultatValidation:
    est_valide: bool
    violations: List[Violation] = field(default_factory=list)


@dataclass(frozen=True)
class ResultatCompatibilite:
    est_valide: bool
    conflits: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class StatistiquesPlacement:
    """Indicateurs d'un placement.

    Attributs
    ---------
    total_places : int
        Nombre de cases de la grille.
    places_disponibles : int
        Cases non désactivées.
    places_desactivees : int
        Cases désactivées.
    nb_places : int
        Élèves assis (élèves fixés compris).
    nb_non_places : int
        Élèves restés sans siège.
    nb_violations : int
        Violations relevées par le validateur sur l'arrangement final.
    """

    total_places: int
    places_disponibles: int
    places_desactivees: int
    nb_places: int
    nb_non_places: int
    nb_violations: int

    def en_dict(self) -> Dict[str, int]:
        return {
            "totalSeats": self.total_places,
            "availableSeats": self.places_disponibles,
            "disabledSeats": self.places_desactivees,
            "placedCount": self.nb_places,
            "unplacedCount": self.nb_non_places,
            "violationCount": self.nb_violations,
        }


@dataclass(frozen=True)
class ResultatPlacement:
    """Résultat d'un moteur de placement, renvoyé même en cas d'échec partiel."""

    succes: bool
    arrangement: Arrangement
    message: str
    violations: List[Violation]
    stats: StatistiquesPlacement

    def est_parfait(self) -> bool:
        """Tous les élèves sont placés et aucune contrainte n'est violée."""
        return self.stats.nb_non_places == 0 and self.stats.nb_violations == 0

    def score_candidat(self) -> int:
        """Score utilisé pour départager plusieurs candidats aléatoires."""
        return self.stats.nb_places * 100 - self.stats.nb_violations * 10

    def avec_message(self, message: str) -> "ResultatPlacement":
        return ResultatPlacement(self.succes, self.arrangement, message, self.violations, self.stats)

    def en_dict(self) -> Dict[str, Any]:
        return {
            "success": self.succes,
            "seating": arrangement_en_cles(self.arrangement),
            "message": self.message,
            "violations": [v.en_dict() for v in self.violations],
            "stats": self.stats.en_dict(),
        }


def meilleur_pour_recherche(candidat: ResultatPlacement, reference: ResultatPlacement) -> bool:
    """Comparaison des moteurs de recherche : plus d'élèves placés, puis moins de violations."""
    if candidat.stats.nb_places != reference.stats.nb_places:
        return candidat.stats.nb_places > reference.stats.nb_places
    return candidat.stats.nb_violations < reference.stats.nb_violations


def meilleur_pour_reessais(candidat: ResultatPlacement, reference: ResultatPlacement) -> bool:
    """Comparaison entre tentatives : moins de violations, plus de placés, moins de non placés, succès."""
    a, b = candidat.stats, reference.stats
    if a.nb_violations != b.nb_violations:
        return a.nb_violations < b.nb_violations
    if a.nb_places != b.nb_places:
        return a.nb_places > b.nb_places
    if a.nb_non_places != b.nb_non_places:
        return a.nb_non_places < b.nb_non_places
    return candidat.succes and not reference.succes
