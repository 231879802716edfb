from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

from ..erreurs import ErreurEntree
from ..modele.position import Position
from ..modele.salle import Salle
from .base import Contrainte, nom_de
from .types import TypeContrainte


class DoitEviterDernieresRangees(Contrainte):
    """Interdit à l'élève les `nb_rangees` dernières rangées (les plus éloignées du tableau)."""

    def __init__(
        self,
        eleve: str,
        nb_rangees: int,
        *,
        identifiant: Optional[str] = None,
        cree_le: Optional[datetime] = None,
    ) -> None:
        super().__init__(identifiant, cree_le)
        if int(nb_rangees) < 1:
            raise ErreurEntree(f"nb_rangees doit être >= 1, reçu {nb_rangees!r}")
        self.eleve: str = eleve
        self.nb_rangees: int = int(nb_rangees)

    def type_contrainte(self) -> TypeContrainte:
        return TypeContrainte.EXCLUSION_RANGEES

    def implique(self) -> Sequence[str]:
        return [self.eleve]

    def rang_exclu(self, rang: int, salle: Salle) -> bool:
        return rang in salle.rangs_exclus(self.nb_rangees)

    def places_autorisees(self, salle: Salle) -> Iterable[Position]:
        """Retourne les places hors des dernières rangées exclues."""
        return [p for p in salle.toutes_les_places() if not self.rang_exclu(p.rang, salle)]

    def est_satisfaite(self, positions: Mapping[str, Position], salle: Salle) -> bool:
        pos: Optional[Position] = positions.get(self.eleve)
        if pos is None:
            return True
        return not self.rang_exclu(pos.rang, salle)

    def texte_humain(self, noms: Optional[Mapping[str, str]] = None) -> str:
        if self.nb_rangees == 1:
            return f"{nom_de(self.eleve, noms)} ne doit pas être au dernier rang"
        return f"{nom_de(self.eleve, noms)} ne doit pas être dans les {self.nb_rangees} derniers rangs"

    def code_machine(self) -> Dict[str, Any]:
        return {**self._entete_code(), "student": self.eleve, "excludedRowsFromBack": self.nb_rangees}
