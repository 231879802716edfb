from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Sequence

from ..erreurs import ErreurEntree
from ..modele.position import Position
from ..modele.salle import Salle
from .base import Contrainte, distance_chebyshev, est_position_paire, nom_de
from .types import TypeContrainte


class ContrainteBinaire(Contrainte):
    """Contrainte liant deux élèves distincts A et B (relation symétrique)."""

    def __init__(
        self,
        a: str,
        b: str,
        *,
        identifiant: Optional[str] = None,
        cree_le: Optional[datetime] = None,
    ) -> None:
        super().__init__(identifiant, cree_le)
        if a == b:
            raise ErreurEntree(f"une contrainte binaire doit lier deux élèves distincts ({a!r})")
        self.a: str = a
        self.b: str = b

    def implique(self) -> Sequence[str]:
        return [self.a, self.b]

    def concerne(self, ident: str) -> bool:
        return ident == self.a or ident == self.b

    def partenaire_de(self, ident: str) -> Optional[str]:
        """Identifiant de l'autre élève, ou `None` si `ident` n'est pas concerné."""
        if ident == self.a:
            return self.b
        if ident == self.b:
            return self.a
        return None

    def meme_couple(self, autre: "ContrainteBinaire") -> bool:
        """`True` si `autre` porte sur le même couple d'élèves (ordre indifférent)."""
        return {self.a, self.b} == {autre.a, autre.b}

    def _positions(self, positions: Mapping[str, Position]) -> tuple[Optional[Position], Optional[Position]]:
        return positions.get(self.a), positions.get(self.b)


class DoiventEtreEnPaire(ContrainteBinaire):
    """Exige que A et B partagent une table à deux (même rang, colonnes {2k, 2k+1})."""

    def __init__(
        self,
        a: str,
        b: str,
        *,
        couleur: Optional[str] = None,
        identifiant: Optional[str] = None,
        cree_le: Optional[datetime] = None,
    ) -> None:
        super().__init__(a, b, identifiant=identifiant, cree_le=cree_le)
        self.couleur: Optional[str] = couleur

    def type_contrainte(self) -> TypeContrainte:
        return TypeContrainte.PAIRE_REQUISE

    def est_satisfaite(self, positions: Mapping[str, Position], salle: Salle) -> bool:
        pa, pb = self._positions(positions)
        if pa is None or pb is None:
            return True
        return est_position_paire(pa, pb)

    def texte_humain(self, noms: Optional[Mapping[str, str]] = None) -> str:
        return f"{nom_de(self.a, noms)} et {nom_de(self.b, noms)} doivent être assis ensemble"

    def code_machine(self) -> Dict[str, Any]:
        code = {**self._entete_code(), "a": self.a, "b": self.b}
        if self.couleur:
            code["color"] = self.couleur
        return code


class NeDoiventPasEtreEnPaire(ContrainteBinaire):
    """Interdit à A et B de partager une table à deux."""

    def __init__(
        self,
        a: str,
        b: str,
        *,
        couleur: Optional[str] = None,
        identifiant: Optional[str] = None,
        cree_le: Optional[datetime] = None,
    ) -> None:
        super().__init__(a, b, identifiant=identifiant, cree_le=cree_le)
        self.couleur: Optional[str] = couleur

    def type_contrainte(self) -> TypeContrainte:
        return TypeContrainte.PAIRE_INTERDITE

    def est_satisfaite(self, positions: Mapping[str, Position], salle: Salle) -> bool:
        pa, pb = self._positions(positions)
        if pa is None or pb is None:
            return True
        return not est_position_paire(pa, pb)

    def texte_humain(self, noms: Optional[Mapping[str, str]] = None) -> str:
        return f"{nom_de(self.a, noms)} et {nom_de(self.b, noms)} ne doivent pas être assis ensemble"

    def code_machine(self) -> Dict[str, Any]:
        code = {**self._entete_code(), "a": self.a, "b": self.b}
        if self.couleur:
            code["color"] = self.couleur
        return code


class DoiventEtreEloignes(ContrainteBinaire):
    """Exige que A et B soient séparés d'au moins `distance_min` (distance de Chebyshev)."""

    def __init__(
        self,
        a: str,
        b: str,
        distance_min: int,
        *,
        identifiant: Optional[str] = None,
        cree_le: Optional[datetime] = None,
    ) -> None:
        super().__init__(a, b, identifiant=identifiant, cree_le=cree_le)
        if int(distance_min) < 1:
            raise ErreurEntree(f"distance_min doit être >= 1, reçu {distance_min!r}")
        self.distance_min: int = int(distance_min)

    def type_contrainte(self) -> TypeContrainte:
        return TypeContrainte.DISTANCE

    def manque(self, pa: Position, pb: Position) -> int:
        """Écart entre la distance minimale et la distance réelle (0 si respectée)."""
        return max(0, self.distance_min - distance_chebyshev(pa, pb))

    def est_satisfaite(self, positions: Mapping[str, Position], salle: Salle) -> bool:
        pa, pb = self._positions(positions)
        if pa is None or pb is None:
            return True
        return distance_chebyshev(pa, pb) >= self.distance_min

    def texte_humain(self, noms: Optional[Mapping[str, str]] = None) -> str:
        return (
            f"{nom_de(self.a, noms)} et {nom_de(self.b, noms)} doivent être éloignés "
            f"d'au moins {self.distance_min}"
        )

    def code_machine(self) -> Dict[str, Any]:
        return {**self._entete_code(), "a": self.a, "b": self.b, "minDistance": self.distance_min}
