from __future__ import annotations

from enum import Enum


class TypeContrainte(str, Enum):
    """Enum centralisant les types logiques de contraintes.

    Hérite de `str` pour une sérialisation JSON directe (valeur = nom stable).
    """

    # Binaires (paire d'élèves)
    PAIRE_REQUISE = "pair_required"
    PAIRE_INTERDITE = "pair_prohibited"
    DISTANCE = "distance"

    # Unaires (élève)
    EXCLUSION_RANGEES = "row_exclusion"


class TypeViolation(str, Enum):
    """Nature d'une violation relevée par le validateur."""

    PAIRE_REQUISE = "pair_required"
    PAIRE_INTERDITE = "pair_prohibited"
    DISTANCE = "distance"
    GENRE = "gender"
    SIEGE_DESACTIVE = "disabled_seat"
    EXCLUSION_RANGEES = "row_exclusion"

    @classmethod
    def depuis_contrainte(cls, type_c: TypeContrainte) -> "TypeViolation":
        return cls(type_c.value)
