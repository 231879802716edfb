from __future__ import annotations

from enum import Enum
from typing import Optional

from ..erreurs import ErreurEntree
from .identifiants import nouvel_identifiant


class Genre(str, Enum):
    """Genre d'un élève ; hérite de `str` pour une sérialisation JSON directe."""

    MASCULIN = "male"
    FEMININ = "female"

    @classmethod
    def depuis_texte(cls, texte: str) -> "Genre":
        """Interprète « male », « M », « garçon », « female », « F »... (insensible à la casse)."""
        t: str = str(texte).strip().lower()
        if t in {"male", "m", "h", "g", "garcon", "garçon", "homme"}:
            return cls.MASCULIN
        if t in {"female", "f", "fille", "femme"}:
            return cls.FEMININ
        raise ErreurEntree(f"genre inconnu : {texte!r}")


class Eleve:
    """Modélise un élève à placer.


    Paramètres du constructeur
    --------------------------
    nom : str
    Nom complet tel que saisi (ex. « DUPONT Alice »).
    genre : Genre | str
    Genre de l'élève (`Genre` ou texte interprétable).
    identifiant : str, optionnel
    Identifiant stable ; généré s'il est absent, jamais réutilisé.
    numero : int, optionnel
    Numéro d'affichage (ordre d'appel, par exemple).


    Détails d'implémentation
    ------------------------
    - L'identité (égalité, hachage) repose sur l'identifiant, pas sur le nom.
    - Le nom est découpé en *nom de famille* (préfixe en MAJUSCULES) et *prénom*.
    """

    def __init__(
        self,
        nom: str,
        genre: Genre | str,
        identifiant: Optional[str] = None,
        numero: Optional[int] = None,
    ) -> None:
        nom_epure: str = str(nom).strip()
        if not nom_epure:
            raise ErreurEntree("le nom d'un élève ne peut pas être vide")

        self._identifiant: str = identifiant if identifiant else nouvel_identifiant()
        self._nom: str = nom_epure
        self._genre: Genre = genre if isinstance(genre, Genre) else Genre.depuis_texte(genre)
        self._numero: Optional[int] = numero

        mots: list[str] = self._nom.split()
        i: int = 0
        while i < len(mots) and mots[i].isupper():
            i += 1
        self._nom_famille: str = " ".join(mots[:i])
        self._prenom: str = " ".join(mots[i:])

    def identifiant(self) -> str:
        """Retourne l'identifiant stable de l'élève."""
        return self._identifiant

    def nom(self) -> str:
        """Retourne le nom complet saisi."""
        return self._nom

    def nom_famille(self) -> str:
        """Retourne la partie détectée comme nom de famille."""
        return self._nom_famille

    def prenom(self) -> str:
        """Retourne la partie détectée comme prénom."""
        return self._prenom

    def genre(self) -> Genre:
        """Retourne le genre de l'élève."""
        return self._genre

    def numero(self) -> Optional[int]:
        """Retourne le numéro d'affichage, ou `None`."""
        return self._numero

    def affichage_nom(self) -> str:
        """Retourne la chaîne à afficher (préfixée du numéro s'il existe)."""
        if self._numero is not None:
            return f"{self._numero}. {self._nom}"
        return self._nom

    # --- Protocole de comparaison / hachage ---
    def __str__(self) -> str:  # pragma: no cover - représentation
        return f"{self._nom} ({self._genre.value})"

    def __repr__(self) -> str:  # pragma: no cover - représentation
        return f"Eleve({self._nom!r}, {self._genre.value!r}, identifiant={self._identifiant!r})"

    def __hash__(self) -> int:
        return hash(self._identifiant)

    def __eq__(self, autre: object) -> bool:
        return isinstance(autre, Eleve) and self._identifiant == autre._identifiant

    def __lt__(self, autre: "Eleve") -> bool:
        # Tri : nom de famille, prénom, puis identifiant pour départager les homonymes
        return (self.nom_famille(), self.prenom(), self._identifiant) < (
            autre.nom_famille(),
            autre.prenom(),
            autre._identifiant,
        )
