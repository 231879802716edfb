from __future__ import annotations

from dataclasses import dataclass

from ..erreurs import ErreurEntree


@dataclass(frozen=True, order=True)
class Position:
    """Représente une *place* de la grille.

    Attributs
    ---------
    rang : int
    Indice de rangée, du tableau vers le fond (0-indexé, 0 = premier rang).
    colonne : int
    Indice de colonne, de gauche à droite (0-indexé).


    Cette classe est immuable pour garantir la stabilité des clés
    dans les dictionnaires/ensembles pendant la recherche.
    """

    rang: int
    colonne: int

    def cle(self) -> str:
        """Retourne la clé texte « rang-colonne » (ex. « 2-3 »)."""
        return f"{self.rang}-{self.colonne}"

    @classmethod
    def depuis_cle(cls, cle: str) -> "Position":
        """Reconstruit une position depuis sa clé « rang-colonne »."""
        morceaux = str(cle).strip().split("-")
        if len(morceaux) != 2:
            raise ErreurEntree(f"clé de position invalide : {cle!r}")
        try:
            rang, colonne = int(morceaux[0]), int(morceaux[1])
        except ValueError as exc:
            raise ErreurEntree(f"clé de position invalide : {cle!r}") from exc
        return cls(rang, colonne)

    def __str__(self) -> str:
        return self.cle()
