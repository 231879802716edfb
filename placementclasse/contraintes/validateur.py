"""Validation d'un arrangement et détection des contraintes incompatibles.

Toutes les fonctions sont pures : elles ne modifient ni l'arrangement, ni la
salle, ni les contraintes, et renvoient des structures (`Violation`, listes de
conflits) plutôt que de lever des exceptions.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..modele.eleve import Eleve
from ..modele.placement import index_par_eleve
from ..modele.position import Position
from ..modele.resultat import ResultatCompatibilite, ResultatValidation, Violation
from ..modele.salle import Salle
from ..sieges import est_eligible, places_paires_disponibles
from .base import Contrainte, distance_chebyshev, est_position_paire, nom_de
from .binaires import ContrainteBinaire
from .ensemble import JeuContraintes
from .types import TypeViolation

MESSAGE_ELEVE_INEXISTANT = "référence un élève inexistant"


def _noms(eleves: Iterable[Eleve]) -> Dict[str, str]:
    return {e.identifiant(): e.nom() for e in eleves}


def _violation_reference(c: Contrainte, noms: Mapping[str, str]) -> Optional[Violation]:
    """Violation signalant une contrainte qui cite un élève absent de la liste, sinon `None`."""
    manquants = [i for i in c.implique() if i not in noms]
    if not manquants:
        return None
    return Violation(
        type=TypeViolation.depuis_contrainte(c.type_contrainte()),
        message=f"La contrainte « {c.texte_humain(noms)} » {MESSAGE_ELEVE_INEXISTANT} ({', '.join(manquants)})",
        eleves=tuple(c.implique()),
    )


def valider_paires_requises(
    jeu: JeuContraintes, positions: Mapping[str, Position], noms: Mapping[str, str]
) -> List[Violation]:
    violations: List[Violation] = []
    for c in jeu.paires_requises:
        ref = _violation_reference(c, noms)
        if ref is not None:
            violations.append(ref)
            continue
        pa, pb = positions.get(c.a), positions.get(c.b)
        if pa is None or pb is None:
            non_places = [nom_de(i, noms) for i, p in ((c.a, pa), (c.b, pb)) if p is None]
            verbe = "ne sont pas placés" if len(non_places) > 1 else "n'est pas placé"
            violations.append(
                Violation(
                    type=TypeViolation.PAIRE_REQUISE,
                    message=(
                        f"{nom_de(c.a, noms)} et {nom_de(c.b, noms)} doivent être assis ensemble "
                        f"mais {' et '.join(non_places)} {verbe}"
                    ),
                    eleves=(c.a, c.b),
                    positions=tuple(p for p in (pa, pb) if p is not None),
                )
            )
        elif not est_position_paire(pa, pb):
            violations.append(
                Violation(
                    type=TypeViolation.PAIRE_REQUISE,
                    message=f"{nom_de(c.a, noms)} et {nom_de(c.b, noms)} doivent être assis ensemble ({pa} / {pb})",
                    eleves=(c.a, c.b),
                    positions=(pa, pb),
                )
            )
    return violations


def valider_paires_interdites(
    jeu: JeuContraintes, positions: Mapping[str, Position], noms: Mapping[str, str]
) -> List[Violation]:
    violations: List[Violation] = []
    for c in jeu.paires_interdites:
        ref = _violation_reference(c, noms)
        if ref is not None:
            violations.append(ref)
            continue
        pa, pb = positions.get(c.a), positions.get(c.b)
        if pa is not None and pb is not None and est_position_paire(pa, pb):
            violations.append(
                Violation(
                    type=TypeViolation.PAIRE_INTERDITE,
                    message=f"{nom_de(c.a, noms)} et {nom_de(c.b, noms)} ne doivent pas être assis ensemble",
                    eleves=(c.a, c.b),
                    positions=(pa, pb),
                )
            )
    return violations


def valider_distances(
    jeu: JeuContraintes, positions: Mapping[str, Position], noms: Mapping[str, str]
) -> List[Violation]:
    violations: List[Violation] = []
    for c in jeu.distances:
        ref = _violation_reference(c, noms)
        if ref is not None:
            violations.append(ref)
            continue
        pa, pb = positions.get(c.a), positions.get(c.b)
        if pa is None or pb is None:
            continue
        d = distance_chebyshev(pa, pb)
        if d < c.distance_min:
            violations.append(
                Violation(
                    type=TypeViolation.DISTANCE,
                    message=(
                        f"{nom_de(c.a, noms)} et {nom_de(c.b, noms)} doivent être à au moins "
                        f"{c.distance_min} places l'un de l'autre (actuellement {d})"
                    ),
                    eleves=(c.a, c.b),
                    positions=(pa, pb),
                )
            )
    return violations


def valider_genres(
    arrangement: Mapping[Position, str], eleves_par_id: Mapping[str, Eleve], salle: Salle
) -> List[Violation]:
    violations: List[Violation] = []
    for pos, ident in arrangement.items():
        eleve = eleves_par_id.get(ident)
        requis = salle.genre_requis(pos)
        if eleve is None or requis is None or requis == eleve.genre():
            continue
        violations.append(
            Violation(
                type=TypeViolation.GENRE,
                message=f"{eleve.nom()} occupe le siège {pos} réservé au genre « {requis.value} »",
                eleves=(ident,),
                positions=(pos,),
            )
        )
    return violations


def valider_places_desactivees(
    arrangement: Mapping[Position, str], eleves_par_id: Mapping[str, Eleve], salle: Salle
) -> List[Violation]:
    violations: List[Violation] = []
    for pos, ident in arrangement.items():
        eleve = eleves_par_id.get(ident)
        if eleve is None or not salle.est_desactive(pos):
            continue
        violations.append(
            Violation(
                type=TypeViolation.SIEGE_DESACTIVE,
                message=f"{eleve.nom()} occupe le siège désactivé {pos}",
                eleves=(ident,),
                positions=(pos,),
            )
        )
    return violations


def valider_exclusions_rangees(
    jeu: JeuContraintes, positions: Mapping[str, Position], noms: Mapping[str, str], salle: Salle
) -> List[Violation]:
    violations: List[Violation] = []
    for c in jeu.exclusions:
        ref = _violation_reference(c, noms)
        if ref is not None:
            violations.append(ref)
            continue
        pos = positions.get(c.eleve)
        if pos is not None and c.rang_exclu(pos.rang, salle):
            violations.append(
                Violation(
                    type=TypeViolation.EXCLUSION_RANGEES,
                    message=f"{c.texte_humain(noms)} (actuellement rang {pos.rang + 1})",
                    eleves=(c.eleve,),
                    positions=(pos,),
                )
            )
    return violations


def valider_tout(
    arrangement: Mapping[Position, str],
    eleves: Sequence[Eleve],
    salle: Salle,
    contraintes: Iterable[Contrainte] | JeuContraintes,
) -> ResultatValidation:
    """Relève toutes les violations de l'arrangement, chaque famille indépendamment."""
    jeu = JeuContraintes.depuis(contraintes)
    eleves_par_id: Dict[str, Eleve] = {e.identifiant(): e for e in eleves}
    noms = _noms(eleves)
    positions = index_par_eleve(arrangement)

    violations: List[Violation] = []
    violations += valider_paires_requises(jeu, positions, noms)
    violations += valider_paires_interdites(jeu, positions, noms)
    violations += valider_distances(jeu, positions, noms)
    violations += valider_genres(arrangement, eleves_par_id, salle)
    violations += valider_places_desactivees(arrangement, eleves_par_id, salle)
    violations += valider_exclusions_rangees(jeu, positions, noms, salle)
    return ResultatValidation(est_valide=not violations, violations=violations)


# ---------------------------------------------------------------- compatibilité


def _table_admissible(
    a: Eleve, b: Eleve, table: Tuple[Position, Position], salle: Salle, jeu: JeuContraintes
) -> bool:
    p1, p2 = table
    return (est_eligible(a, p1, salle, jeu) and est_eligible(b, p2, salle, jeu)) or (
        est_eligible(a, p2, salle, jeu) and est_eligible(b, p1, salle, jeu)
    )


def verifier_compatibilite(
    contraintes: Iterable[Contrainte] | JeuContraintes,
    eleves: Sequence[Eleve],
    salle: Salle,
) -> ResultatCompatibilite:
    """
    Détecte, avant toute recherche, les combinaisons de contraintes insatisfiables :

    - même paire à la fois requise et interdite ;
    - paire requise sans aucune table à deux admissible (genres imposés,
      sièges désactivés, exclusions de rangées) ;
    - paire requise assortie d'une distance minimale > 1 (une table à deux
      est toujours à distance 1).
    """
    jeu = JeuContraintes.depuis(contraintes)
    eleves_par_id: Dict[str, Eleve] = {e.identifiant(): e for e in eleves}
    noms = _noms(eleves)
    conflits: List[str] = []

    def libelle(c: ContrainteBinaire) -> str:
        return f"{nom_de(c.a, noms)} et {nom_de(c.b, noms)}"

    tables = places_paires_disponibles(salle)

    for requise in jeu.paires_requises:
        for interdite in jeu.paires_interdites:
            if requise.meme_couple(interdite):
                conflits.append(f"{libelle(requise)} sont à la fois requis et interdits en binôme")

        for distance in jeu.distances:
            if requise.meme_couple(distance) and distance.distance_min > 1:
                conflits.append(
                    f"{libelle(requise)} doivent être en binôme mais aussi à au moins "
                    f"{distance.distance_min} places l'un de l'autre"
                )

        a, b = eleves_par_id.get(requise.a), eleves_par_id.get(requise.b)
        if a is None or b is None:
            continue
        if not any(_table_admissible(a, b, t, salle, jeu) for t in tables):
            if a.genre() == b.genre():
                conflits.append(
                    f"{libelle(requise)} (genre « {a.genre().value} ») n'ont aucune table à deux "
                    f"compatible avec les contraintes de genre"
                )
            else:
                conflits.append(f"{libelle(requise)} n'ont aucune table à deux compatible")

    return ResultatCompatibilite(est_valide=not conflits, conflits=conflits)
