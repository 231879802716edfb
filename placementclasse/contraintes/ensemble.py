from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional

from .base import Contrainte
from .binaires import ContrainteBinaire, DoiventEtreEloignes, DoiventEtreEnPaire, NeDoiventPasEtreEnPaire
from .unaires import DoitEviterDernieresRangees


class JeuContraintes:
    """Ensemble de contraintes rangées par nature, avec index par élève.

    Les quatre natures sont fermées : toute autre classe est refusée par
    `ajouter`. Les index permettent aux moteurs de retrouver en O(1) les
    contraintes d'un élève au lieu de parcourir toute la liste.
    """

    def __init__(self) -> None:
        self._vider()

    def _vider(self) -> None:
        self.paires_requises: List[DoiventEtreEnPaire] = []
        self.paires_interdites: List[NeDoiventPasEtreEnPaire] = []
        self.distances: List[DoiventEtreEloignes] = []
        self.exclusions: List[DoitEviterDernieresRangees] = []
        self._binaires_par_eleve: Dict[str, List[ContrainteBinaire]] = {}
        self._exclusions_par_eleve: Dict[str, List[DoitEviterDernieresRangees]] = {}

    @classmethod
    def depuis(cls, contraintes: Iterable[Contrainte] | "JeuContraintes") -> "JeuContraintes":
        """Construit un jeu depuis un itérable quelconque de contraintes."""
        if isinstance(contraintes, JeuContraintes):
            return contraintes
        jeu = cls()
        for c in contraintes:
            jeu.ajouter(c)
        return jeu

    # --- Édition -------------------------------------------------------------

    def ajouter(self, c: Contrainte) -> None:
        if isinstance(c, DoiventEtreEnPaire):
            self.paires_requises.append(c)
        elif isinstance(c, NeDoiventPasEtreEnPaire):
            self.paires_interdites.append(c)
        elif isinstance(c, DoiventEtreEloignes):
            self.distances.append(c)
        elif isinstance(c, DoitEviterDernieresRangees):
            self.exclusions.append(c)
            self._exclusions_par_eleve.setdefault(c.eleve, []).append(c)
            return
        else:
            raise TypeError(f"type de contrainte non pris en charge : {type(c).__name__}")
        self._binaires_par_eleve.setdefault(c.a, []).append(c)
        self._binaires_par_eleve.setdefault(c.b, []).append(c)

    def retirer(self, identifiant: str) -> bool:
        """Retire la contrainte d'identifiant donné ; `False` si absente."""
        cible: Optional[Contrainte] = next((c for c in self if c.identifiant == identifiant), None)
        if cible is None:
            return False
        restantes = [c for c in self if c is not cible]
        self._vider()
        for c in restantes:
            self.ajouter(c)
        return True

    # --- Lecture -------------------------------------------------------------

    def __iter__(self) -> Iterator[Contrainte]:
        yield from self.paires_requises
        yield from self.paires_interdites
        yield from self.distances
        yield from self.exclusions

    def __len__(self) -> int:
        return (
            len(self.paires_requises)
            + len(self.paires_interdites)
            + len(self.distances)
            + len(self.exclusions)
        )

    def binaires_de(self, ident: str) -> List[ContrainteBinaire]:
        """Contraintes binaires impliquant l'élève `ident`."""
        return self._binaires_par_eleve.get(ident, [])

    def paires_requises_de(self, ident: str) -> List[DoiventEtreEnPaire]:
        return [c for c in self.binaires_de(ident) if isinstance(c, DoiventEtreEnPaire)]

    def paires_interdites_de(self, ident: str) -> List[NeDoiventPasEtreEnPaire]:
        return [c for c in self.binaires_de(ident) if isinstance(c, NeDoiventPasEtreEnPaire)]

    def distances_de(self, ident: str) -> List[DoiventEtreEloignes]:
        return [c for c in self.binaires_de(ident) if isinstance(c, DoiventEtreEloignes)]

    def exclusions_de(self, ident: str) -> List[DoitEviterDernieresRangees]:
        return self._exclusions_par_eleve.get(ident, [])

    def nb_contraintes_de(self, ident: str) -> int:
        return len(self.binaires_de(ident)) + len(self.exclusions_de(ident))

    def a_des_contraintes(self, ident: str) -> bool:
        return self.nb_contraintes_de(ident) > 0
