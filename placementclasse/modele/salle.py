from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..erreurs import ErreurEntree
from .eleve import Genre
from .position import Position

DIMENSION_MIN: int = 1
DIMENSION_MAX: int = 10


@dataclass(frozen=True)
class ContrainteUsage:
    """Contrainte d'usage attachée à un siège (désactivation et motif éventuel)."""

    desactive: bool = True
    raison: Optional[str] = None


def colonnes_paires_par_defaut(colonnes: int) -> List[Tuple[int, int]]:
    """Toutes les paires (2k, 2k+1) qui tiennent dans `colonnes` colonnes."""
    return [(c, c + 1) for c in range(0, colonnes - 1, 2)]


class Salle:
    """
    Modélise une salle en grille rangées × colonnes.

    - Les rangées sont numérotées depuis le tableau (rang 0 = premier rang).
    - Les *places en paire* (deux élèves à la même table) sont déclarées par
      `colonnes_paires`, liste de couples (2k, 2k+1).
    - Les contraintes de genre et d'usage sont des dictionnaires creux indexés
      par position : au plus une de chaque par siège.

    Exemple :
        salle = Salle(5, 6, colonnes_paires=[(0, 1), (4, 5)])
        salle.definir_genre_siege(Position(0, 0), Genre.FEMININ)
        salle.desactiver_siege(Position(4, 5), "pilier")
    """

    def __init__(
        self,
        rangs: int,
        colonnes: int,
        *,
        nom: str = "",
        colonnes_paires: Optional[Iterable[Sequence[int]]] = None,
        genres_sieges: Optional[Mapping[Position, Genre]] = None,
        usages_sieges: Optional[Mapping[Position, ContrainteUsage]] = None,
    ) -> None:
        """
        Args:
            rangs: nombre de rangées (1 à 10).
            colonnes: nombre de colonnes (1 à 10).
            nom: libellé libre de la salle.
            colonnes_paires: couples de colonnes formant une table à deux ;
                par défaut toutes les paires (2k, 2k+1).
            genres_sieges: genre imposé par siège.
            usages_sieges: sièges désactivés (avec motif).
        """
        for libelle, valeur in (("rangs", rangs), ("colonnes", colonnes)):
            if not isinstance(valeur, int) or isinstance(valeur, bool):
                raise ErreurEntree(f"{libelle} doit être un entier, reçu {valeur!r}")
            if not DIMENSION_MIN <= valeur <= DIMENSION_MAX:
                raise ErreurEntree(
                    f"{libelle}={valeur} hors bornes [{DIMENSION_MIN}, {DIMENSION_MAX}]"
                )

        self._rangs: int = rangs
        self._colonnes: int = colonnes
        self._nom: str = nom

        if colonnes_paires is None:
            paires = colonnes_paires_par_defaut(colonnes)
        else:
            paires = [self._valider_paire(p) for p in colonnes_paires]
        self._colonnes_paires: List[Tuple[int, int]] = sorted(set(paires))

        self._genres_sieges: Dict[Position, Genre] = {}
        for pos, genre in (genres_sieges or {}).items():
            self.definir_genre_siege(pos, genre)

        self._usages_sieges: Dict[Position, ContrainteUsage] = {}
        for pos, usage in (usages_sieges or {}).items():
            if usage.desactive:
                self._verifier_dans_grille(pos)
                self._usages_sieges[pos] = usage

    # --- Validation ---------------------------------------------------------

    def _valider_paire(self, paire: Sequence[int]) -> Tuple[int, int]:
        if len(paire) != 2:
            raise ErreurEntree(f"une paire de colonnes doit contenir 2 indices : {paire!r}")
        gauche, droite = sorted(int(c) for c in paire)
        if gauche % 2 != 0 or droite != gauche + 1:
            raise ErreurEntree(f"paire de colonnes invalide {paire!r} : attendu (2k, 2k+1)")
        if droite >= self._colonnes:
            raise ErreurEntree(f"paire de colonnes {paire!r} hors de la grille")
        return gauche, droite

    def contient(self, pos: Position) -> bool:
        """Indique si `pos` appartient à la grille."""
        return 0 <= pos.rang < self._rangs and 0 <= pos.colonne < self._colonnes

    def _verifier_dans_grille(self, pos: Position) -> None:
        if not self.contient(pos):
            raise ErreurEntree(f"position {pos} hors de la grille {self._rangs}x{self._colonnes}")

    # --- Accès de base -----------------------------------------------------

    @property
    def rangs(self) -> int:
        return self._rangs

    @property
    def colonnes(self) -> int:
        return self._colonnes

    @property
    def nom(self) -> str:
        return self._nom

    @property
    def colonnes_paires(self) -> List[Tuple[int, int]]:
        return list(self._colonnes_paires)

    def genres_sieges(self) -> Dict[Position, Genre]:
        """Retourne une copie des contraintes de genre par siège."""
        return dict(self._genres_sieges)

    def usages_sieges(self) -> Dict[Position, ContrainteUsage]:
        """Retourne une copie des contraintes d'usage par siège."""
        return dict(self._usages_sieges)

    def genre_requis(self, pos: Position) -> Optional[Genre]:
        """Genre imposé au siège `pos`, ou `None`."""
        return self._genres_sieges.get(pos)

    def est_desactive(self, pos: Position) -> bool:
        usage = self._usages_sieges.get(pos)
        return usage is not None and usage.desactive

    # --- Édition (côté appelant) ------------------------------------------

    def definir_genre_siege(self, pos: Position, genre: Genre | str) -> None:
        """Impose un genre au siège `pos` (remplace l'éventuelle contrainte existante)."""
        self._verifier_dans_grille(pos)
        self._genres_sieges[pos] = genre if isinstance(genre, Genre) else Genre.depuis_texte(genre)

    def retirer_genre_siege(self, pos: Position) -> None:
        self._genres_sieges.pop(pos, None)

    def desactiver_siege(self, pos: Position, raison: Optional[str] = None) -> None:
        """Marque le siège `pos` comme inutilisable."""
        self._verifier_dans_grille(pos)
        self._usages_sieges[pos] = ContrainteUsage(desactive=True, raison=raison)

    def reactiver_siege(self, pos: Position) -> None:
        self._usages_sieges.pop(pos, None)

    # --- Copies -------------------------------------------------------------

    def copie(self) -> "Salle":
        """Copie indépendante de la salle."""
        return Salle(
            self._rangs,
            self._colonnes,
            nom=self._nom,
            colonnes_paires=self._colonnes_paires,
            genres_sieges=self._genres_sieges,
            usages_sieges=self._usages_sieges,
        )

    def sans_genres_sieges(self) -> "Salle":
        """Copie de la salle dont toutes les contraintes de genre sont effacées."""
        salle = self.copie()
        salle._genres_sieges.clear()
        return salle

    # --- Utilitaires pour le solveur / tests -------------------------------

    def toutes_les_places(self) -> List[Position]:
        """
        Énumère **toutes** les cases de la grille, désactivées comprises.

        L'ordre est par rang croissant puis par colonne croissante.
        """
        return [Position(r, c) for r in range(self._rangs) for c in range(self._colonnes)]

    def rangs_exclus(self, nb_depuis_le_fond: int) -> range:
        """Rangées couvertes par une exclusion des `nb_depuis_le_fond` derniers rangs."""
        debut: int = max(0, self._rangs - nb_depuis_le_fond)
        return range(debut, self._rangs)

    def centre(self) -> Tuple[float, float]:
        """Coordonnées (rang, colonne) du centre géométrique de la grille."""
        return (self._rangs - 1) / 2, (self._colonnes - 1) / 2

    def __str__(self) -> str:
        """
        Représentation texte simple : rangée par rangée.
        « . » siège libre, « F »/« M » siège genré, « X » siège désactivé.
        """
        lignes: List[str] = []
        for r in range(self._rangs):
            cases: List[str] = []
            for c in range(self._colonnes):
                pos = Position(r, c)
                if self.est_desactive(pos):
                    cases.append("X")
                elif pos in self._genres_sieges:
                    cases.append("F" if self._genres_sieges[pos] is Genre.FEMININ else "M")
                else:
                    cases.append(".")
            lignes.append(" ".join(cases))
        return "\n".join(lignes)
