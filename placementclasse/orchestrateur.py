from __future__ import annotations

import logging
import random
from enum import Enum
from typing import Callable, Iterable, List, Mapping, Optional, Sequence

from .config import BUDGET_REESSAIS_PAR_DEFAUT_MS, OptionsPlacement
from .contraintes.base import Contrainte
from .contraintes.ensemble import JeuContraintes
from .contraintes.validateur import valider_tout, verifier_compatibilite
from .erreurs import ErreurEntree, exiger
from .modele.eleve import Eleve
from .modele.placement import PlacementFixe
from .modele.position import Position
from .modele.resultat import ResultatCompatibilite, ResultatPlacement, ResultatValidation, meilleur_pour_reessais
from .modele.salle import Salle
from .sieges import arrangement_depuis_fixes
from .solveurs.aleatoire_adaptatif import ConfigAleatoire, SolveurAleatoireAdaptatif
from .solveurs.base import Chrono, Solveur
from .solveurs.heuristique import PRESET_LEGER, PRESET_ORIENTE_CONTRAINTES, PRESET_AVANCE, SolveurHeuristique
from .solveurs.mixte import SolveurMixte
from .solveurs.retour_arriere import SolveurRetourArriere

logger = logging.getLogger(__name__)

Progression = Callable[[int, int], None]


class TypeMoteur(str, Enum):
    RETOUR_ARRIERE = "backtracking"
    HEURISTIQUE = "heuristic"
    HEURISTIQUE_LEGER = "heuristic_lightweight"
    HEURISTIQUE_CONTRAINTES = "heuristic_constraint_focused"
    ALEATOIRE = "adaptive_random"
    ALEATOIRE_SUBTIL = "adaptive_random_subtle"
    ALEATOIRE_EQUILIBRE = "adaptive_random_balanced"
    ALEATOIRE_CREATIF = "adaptive_random_creative"
    ALEATOIRE_SAUVAGE = "adaptive_random_wild"
    MIXTE = "gender_balanced"
    CPSAT = "cpsat"

    @classmethod
    def depuis(cls, valeur: "TypeMoteur | str") -> "TypeMoteur":
        if isinstance(valeur, TypeMoteur):
            return valeur
        try:
            return cls(str(valeur).strip().lower())
        except ValueError as exc:
            attendus = ", ".join(t.value for t in cls)
            raise ErreurEntree(f"moteur inconnu : {valeur!r} (attendu : {attendus})") from exc


_PRESET_PAR_MOTEUR = {
    TypeMoteur.ALEATOIRE_SUBTIL: "subtle",
    TypeMoteur.ALEATOIRE_EQUILIBRE: "balanced",
    TypeMoteur.ALEATOIRE_CREATIF: "creative",
    TypeMoteur.ALEATOIRE_SAUVAGE: "wild",
}


def fabriquer_moteur(moteur: TypeMoteur | str, options: Optional[OptionsPlacement] = None) -> Solveur:
    """Instancie le moteur demandé, configuré par `options`."""
    type_m = TypeMoteur.depuis(moteur)
    o = options or OptionsPlacement()

    if type_m is TypeMoteur.RETOUR_ARRIERE:
        return SolveurRetourArriere(graine=o.graine, tentatives_max=o.tentatives_max, profondeur_max=o.profondeur_max)

    if type_m in (TypeMoteur.HEURISTIQUE, TypeMoteur.HEURISTIQUE_LEGER, TypeMoteur.HEURISTIQUE_CONTRAINTES):
        preset = {
            TypeMoteur.HEURISTIQUE: PRESET_AVANCE,
            TypeMoteur.HEURISTIQUE_LEGER: PRESET_LEGER,
            TypeMoteur.HEURISTIQUE_CONTRAINTES: PRESET_ORIENTE_CONTRAINTES,
        }[type_m]
        return SolveurHeuristique(poids=o.poids_heuristiques, profondeur_max=o.profondeur_max, preset=preset)

    if type_m is TypeMoteur.MIXTE:
        return SolveurMixte(graine=o.graine, nb_paires=o.nb_paires)

    if type_m is TypeMoteur.CPSAT:
        # import local : ortools n'est chargé que si le moteur est choisi
        from .solveurs.cpsat import SolveurCPSAT

        return SolveurCPSAT(graine=o.graine)

    nom_preset = _PRESET_PAR_MOTEUR.get(type_m, o.preset_aleatoire)
    config = ConfigAleatoire.depuis_preset(nom_preset, o.surcharges_aleatoire)
    return SolveurAleatoireAdaptatif(config, graine=o.graine)


def _executer_une_fois(
    solveur: Solveur,
    salle: Salle,
    eleves: Sequence[Eleve],
    contraintes: JeuContraintes,
    fixes: Sequence[PlacementFixe],
    options: OptionsPlacement,
    budget_temps_ms: Optional[int],
) -> ResultatPlacement:
    if isinstance(solveur, SolveurAleatoireAdaptatif) and options.nb_candidats > 1:
        return solveur.generer_plusieurs(
            options.nb_candidats, salle, eleves, contraintes, fixes=fixes, budget_temps_ms=budget_temps_ms
        )
    return solveur.resoudre(salle, eleves, contraintes, fixes=fixes, budget_temps_ms=budget_temps_ms)


def executer_avec_reessais(
    moteur: TypeMoteur | str | Solveur,
    eleves: Sequence[Eleve],
    salle: Salle,
    contraintes: Iterable[Contrainte] | JeuContraintes,
    *,
    fixes: Sequence[PlacementFixe] = (),
    activer_reessais: Optional[bool] = None,
    max_reessais: Optional[int] = None,
    progression: Optional[Progression] = None,
    graine: Optional[int] = None,
    options: Optional[OptionsPlacement] = None,
) -> ResultatPlacement:
    """
    Lance un moteur une fois, ou plusieurs fois en gardant le meilleur résultat.

    Avec réessais, chaque tentative réensemence le moteur (`graine + tentative`,
    ou une base aléatoire + tentative si `graine` vaut `None` ou 0) et la boucle
    s'arrête dès qu'un résultat ne présente aucune violation.
    Comparaison : moins de violations, puis plus de placés, puis moins de non
    placés, puis succès.

    Toutes les tentatives partagent un seul budget de temps : chacune reçoit
    le temps restant, et la boucle s'arrête une fois le budget consommé.
    """
    o = options or OptionsPlacement()
    reessais = o.activer_reessais if activer_reessais is None else activer_reessais
    nb_max = (o.max_reessais if max_reessais is None else max_reessais) if reessais else 1
    nb_max = max(1, nb_max)
    graine = o.graine if graine is None else graine
    jeu = JeuContraintes.depuis(contraintes)
    solveur = moteur if isinstance(moteur, Solveur) else fabriquer_moteur(moteur, o)

    budget = o.budget_temps_ms
    if budget is None and nb_max > 1:
        budget = BUDGET_REESSAIS_PAR_DEFAUT_MS
    chrono = Chrono(budget)

    base = graine if graine else random.randrange(1_000_000)
    meilleur: Optional[ResultatPlacement] = None
    tentative = 0
    while tentative < nb_max:
        tentative += 1
        if progression is not None:
            progression(tentative, nb_max)
        courant = solveur.avec_graine(base + tentative) if reessais else solveur
        res = _executer_une_fois(courant, salle, eleves, jeu, fixes, o, chrono.restant_ms())
        logger.info(
            "tentative %d/%d : %d placés, %d non placés, %d violations",
            tentative,
            nb_max,
            res.stats.nb_places,
            res.stats.nb_non_places,
            res.stats.nb_violations,
        )
        if meilleur is None or meilleur_pour_reessais(res, meilleur):
            meilleur = res
        if meilleur.stats.nb_violations == 0:
            break
        if chrono.depasse():
            logger.info("budget de %d ms épuisé après %d tentative(s)", budget, tentative)
            break

    assert meilleur is not None
    if reessais:
        return meilleur.avec_message(f"{meilleur.message} ({tentative} tentative(s))")
    return meilleur


# ---------------------------------------------------------------- API publique


def _verifier_entrees(
    eleves: Sequence[Eleve], salle: Salle, fixes: Sequence[PlacementFixe]
) -> None:
    ids: set[str] = set()
    for e in eleves:
        if e.identifiant() in ids:
            raise ErreurEntree(f"identifiant d'élève en double : {e.identifiant()!r}")
        ids.add(e.identifiant())
    for fixe in fixes:
        if not salle.contient(fixe.position):
            raise ErreurEntree(f"placement fixe hors de la grille : {fixe.position}")
        if fixe.identifiant_eleve not in ids:
            raise ErreurEntree(f"placement fixe d'un élève inconnu : {fixe.identifiant_eleve!r}")
    arrangement_depuis_fixes(fixes)


def placer_eleves(
    eleves: Sequence[Eleve],
    salle: Salle,
    contraintes: Iterable[Contrainte] | JeuContraintes,
    fixes: Sequence[PlacementFixe] = (),
    moteur: TypeMoteur | str = TypeMoteur.RETOUR_ARRIERE,
    options: Optional[OptionsPlacement] = None,
    *,
    progression: Optional[Progression] = None,
) -> ResultatPlacement:
    """
    Point d'entrée unique : place les élèves dans la salle avec le moteur choisi.

    Lève `ErreurEntree` pour les entrées invalides (argument `None`, identifiants
    en double, moteur inconnu, placement fixe hors grille, en double ou visant
    un élève inconnu). Un placement incomplet n'est jamais une exception :
    `succes` vaut alors `False` et `stats.nb_non_places` est non nul.
    """
    exiger(eleves, "eleves")
    exiger(salle, "salle")
    exiger(contraintes, "contraintes")
    fixes = tuple(fixes or ())
    type_m = TypeMoteur.depuis(moteur)
    _verifier_entrees(eleves, salle, fixes)

    o = options or OptionsPlacement()
    logger.info(
        "placement : moteur %s, %d élèves (%d fixés), salle %dx%d",
        type_m.value,
        len(eleves),
        len(fixes),
        salle.rangs,
        salle.colonnes,
    )
    return executer_avec_reessais(type_m, eleves, salle, contraintes, fixes=fixes, progression=progression, options=o)


def valider_arrangement(
    arrangement: Mapping[Position, str],
    eleves: Sequence[Eleve],
    salle: Salle,
    contraintes: Iterable[Contrainte] | JeuContraintes,
) -> ResultatValidation:
    """Validation en lecture seule d'un arrangement (par exemple modifié à la main)."""
    exiger(arrangement, "arrangement")
    exiger(salle, "salle")
    return valider_tout(arrangement, exiger(eleves, "eleves"), salle, exiger(contraintes, "contraintes"))


def verifier_compatibilite_contraintes(
    contraintes: Iterable[Contrainte] | JeuContraintes,
    eleves: Sequence[Eleve],
    salle: Salle,
) -> ResultatCompatibilite:
    """Détection en lecture seule des contraintes contradictoires, avant toute recherche."""
    exiger(salle, "salle")
    return verifier_compatibilite(exiger(contraintes, "contraintes"), exiger(eleves, "eleves"), salle)


__all__: List[str] = [
    "TypeMoteur",
    "fabriquer_moteur",
    "executer_avec_reessais",
    "placer_eleves",
    "valider_arrangement",
    "verifier_compatibilite_contraintes",
]
