from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Sequence

from ..modele.identifiants import nouvel_identifiant
from ..modele.position import Position
from ..modele.salle import Salle
from .types import TypeContrainte


class Contrainte(ABC):
    """Classe de base des contraintes (unaires ou binaires).

    Les contraintes désignent les élèves par **identifiant** : un identifiant
    inconnu n'est pas une erreur de construction, il est signalé par le
    validateur.

    Méthodes à implémenter
    ----------------------
    - `type_contrainte()` : retourne un membre de `TypeContrainte`.
    - `implique()` : identifiants des élèves concernés (1 ou 2).
    - `est_satisfaite(positions, salle)` : valide l'affectation partielle/complète.
    - `texte_humain(noms)` : texte lisible pour l'interface.
    - `code_machine()` : représentation stable et sérialisable (dict JSON-friendly).
    """

    def __init__(self, identifiant: Optional[str] = None, cree_le: Optional[datetime] = None) -> None:
        self.identifiant: str = identifiant or nouvel_identifiant("c")
        self.cree_le: datetime = cree_le or datetime.now(timezone.utc)

    @abstractmethod
    def type_contrainte(self) -> TypeContrainte:
        """Retourne le type logique de la contrainte."""
        raise NotImplementedError

    @abstractmethod
    def implique(self) -> Sequence[str]:
        """Retourne les identifiants des élèves impliqués."""
        raise NotImplementedError

    @abstractmethod
    def est_satisfaite(self, positions: Mapping[str, Position], salle: Salle) -> bool:
        """Indique si la contrainte est satisfaite sous l'affectation courante.

        Une contrainte dont un élève n'est pas encore placé est considérée
        satisfaite (affectation partielle).
        """
        raise NotImplementedError

    @abstractmethod
    def texte_humain(self, noms: Optional[Mapping[str, str]] = None) -> str:
        """Texte concis, lisible par un humain."""
        raise NotImplementedError

    @abstractmethod
    def code_machine(self) -> Dict[str, Any]:
        """Représentation sérialisable, stable et exploitable par des outils."""
        raise NotImplementedError

    def _entete_code(self) -> Dict[str, Any]:
        return {
            "type": self.type_contrainte().value,
            "id": self.identifiant,
            "createdAt": self.cree_le.isoformat(),
        }

    def __repr__(self) -> str:  # pragma: no cover - représentation
        return f"{type(self).__name__}({self.code_machine()!r})"


def nom_de(ident: str, noms: Optional[Mapping[str, str]]) -> str:
    """Nom d'affichage d'un élève, ou son identifiant à défaut."""
    if noms is None:
        return ident
    return noms.get(ident, ident)


def distance_chebyshev(a: Position, b: Position) -> int:
    """Distance de Chebyshev (max des écarts de rang et de colonne)."""
    return max(abs(a.rang - b.rang), abs(a.colonne - b.colonne))


def est_position_paire(a: Position, b: Position) -> bool:
    """`True` si `a` et `b` forment une table à deux : même rang, colonnes {2k, 2k+1}."""
    if a.rang != b.rang:
        return False
    gauche, droite = sorted((a.colonne, b.colonne))
    return gauche % 2 == 0 and droite == gauche + 1
