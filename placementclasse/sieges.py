from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from .contraintes.base import distance_chebyshev, est_position_paire
from .contraintes.ensemble import JeuContraintes
from .erreurs import ErreurEntree
from .modele.eleve import Eleve
from .modele.placement import Arrangement, PlacementFixe, index_par_eleve
from .modele.position import Position
from .modele.salle import Salle

__all__ = [
    "places_disponibles",
    "places_libres",
    "est_eligible",
    "siege_paire",
    "places_paires_disponibles",
    "arrangement_depuis_fixes",
    "voisins",
    "distance_chebyshev",
    "est_position_paire",
]


def places_disponibles(salle: Salle) -> List[Position]:
    """Toutes les cases de la grille hors sièges désactivés (ordre rang puis colonne)."""
    return [p for p in salle.toutes_les_places() if not salle.est_desactive(p)]


def places_libres(places: Iterable[Position], arrangement: Mapping[Position, str]) -> List[Position]:
    """Filtre `places` en retirant les sièges déjà occupés."""
    return [p for p in places if p not in arrangement]


def est_eligible(
    eleve: Eleve,
    pos: Position,
    salle: Salle,
    contraintes: JeuContraintes,
    arrangement: Optional[Mapping[Position, str]] = None,
    positions: Optional[Mapping[str, Position]] = None,
) -> bool:
    """
    Indique si `eleve` peut s'asseoir en `pos`.

    Vérifie dans l'ordre, en s'arrêtant au premier échec :
      1. genre imposé au siège ;
      2. siège désactivé ;
      3. exclusion des dernières rangées.
    Si un `arrangement` partiel est fourni, vérifie en plus :
      4. siège occupé par un autre élève ;
      5. distances minimales avec les partenaires déjà placés ;
      6. paires interdites avec un partenaire déjà placé.

    Args:
        positions: index inverse identifiant -> position de `arrangement`,
            s'il est déjà construit (sinon il est calculé ici).
    """
    genre_requis = salle.genre_requis(pos)
    if genre_requis is not None and genre_requis != eleve.genre():
        return False
    if salle.est_desactive(pos):
        return False
    ident: str = eleve.identifiant()
    for exclusion in contraintes.exclusions_de(ident):
        if exclusion.rang_exclu(pos.rang, salle):
            return False

    if arrangement is None:
        return True

    occupant: Optional[str] = arrangement.get(pos)
    if occupant is not None and occupant != ident:
        return False

    if positions is None:
        positions = index_par_eleve(arrangement)

    for distance in contraintes.distances_de(ident):
        partenaire = positions.get(distance.partenaire_de(ident) or "")
        if partenaire is not None and distance_chebyshev(pos, partenaire) < distance.distance_min:
            return False

    for interdite in contraintes.paires_interdites_de(ident):
        partenaire = positions.get(interdite.partenaire_de(ident) or "")
        if partenaire is not None and est_position_paire(pos, partenaire):
            return False

    return True


def siege_paire(pos: Position, salle: Salle) -> Optional[Position]:
    """Siège partenaire de `pos` sur la même table à deux, ou `None`."""
    for gauche, droite in salle.colonnes_paires:
        if pos.colonne == gauche:
            return Position(pos.rang, droite)
        if pos.colonne == droite:
            return Position(pos.rang, gauche)
    return None


def places_paires_disponibles(
    salle: Salle, arrangement: Optional[Mapping[Position, str]] = None
) -> List[Tuple[Position, Position]]:
    """
    Tables à deux dont les deux sièges sont disponibles (non désactivés) et,
    si `arrangement` est fourni, libres.
    """
    paires: List[Tuple[Position, Position]] = []
    for r in range(salle.rangs):
        for gauche, droite in salle.colonnes_paires:
            p1, p2 = Position(r, gauche), Position(r, droite)
            if salle.est_desactive(p1) or salle.est_desactive(p2):
                continue
            if arrangement is not None and (p1 in arrangement or p2 in arrangement):
                continue
            paires.append((p1, p2))
    return paires


def voisins(pos: Position, salle: Salle) -> List[Position]:
    """Voisinage en croix (haut, bas, gauche, droite) restreint à la grille."""
    candidats = (
        Position(pos.rang - 1, pos.colonne),
        Position(pos.rang + 1, pos.colonne),
        Position(pos.rang, pos.colonne - 1),
        Position(pos.rang, pos.colonne + 1),
    )
    return [p for p in candidats if salle.contient(p)]


def arrangement_depuis_fixes(fixes: Sequence[PlacementFixe]) -> Arrangement:
    """Arrangement initial contenant uniquement les élèves fixés.

    Lève `ErreurEntree` si deux placements fixes visent le même siège ou le même élève.
    """
    arrangement: Arrangement = {}
    deja_fixes: set[str] = set()
    for fixe in fixes:
        if fixe.position in arrangement:
            raise ErreurEntree(
                f"siège {fixe.position} fixé à la fois pour {arrangement[fixe.position]!r} "
                f"et {fixe.identifiant_eleve!r}"
            )
        if fixe.identifiant_eleve in deja_fixes:
            raise ErreurEntree(f"l'élève {fixe.identifiant_eleve!r} est fixé deux fois")
        arrangement[fixe.position] = fixe.identifiant_eleve
        deja_fixes.add(fixe.identifiant_eleve)
    return arrangement
