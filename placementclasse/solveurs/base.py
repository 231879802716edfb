from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from ..contraintes.base import Contrainte
from ..contraintes.ensemble import JeuContraintes
from ..contraintes.validateur import valider_tout
from ..modele.eleve import Eleve
from ..modele.placement import Arrangement, PlacementFixe
from ..modele.position import Position
from ..modele.resultat import ResultatPlacement, StatistiquesPlacement
from ..modele.salle import Salle
from ..sieges import arrangement_depuis_fixes, places_disponibles, places_libres


class Chrono:
    """Budget de temps mural d'une résolution (horloge monotone)."""

    def __init__(self, budget_ms: Optional[float]) -> None:
        self.budget_ms: Optional[float] = budget_ms
        self._debut: float = time.monotonic()

    def ecoule_ms(self) -> float:
        return (time.monotonic() - self._debut) * 1000.0

    def depasse(self) -> bool:
        """`True` une fois le budget consommé (jamais si aucun budget)."""
        return self.budget_ms is not None and self.ecoule_ms() >= self.budget_ms

    def restant_ms(self) -> Optional[int]:
        """Temps restant en ms (au moins 1), `None` si aucun budget."""
        if self.budget_ms is None:
            return None
        return max(1, int(self.budget_ms - self.ecoule_ms()))


@dataclass
class ContexteResolution:
    """Données préparées une fois par appel et partagées par la recherche.

    Attributs
    ---------
    salle : Salle
    jeu : JeuContraintes
    eleves : List[Eleve]
        Tous les élèves connus (élèves fixés compris), pour la validation.
    a_placer : List[Eleve]
        Élèves soumis au moteur (élèves fixés exclus).
    eleves_par_id : Dict[str, Eleve]
    arrangement_initial : Arrangement
        Sièges déjà pris par les placements fixes.
    places : List[Position]
        Sièges disponibles et libres au départ.
    """

    salle: Salle
    jeu: JeuContraintes
    eleves: List[Eleve]
    a_placer: List[Eleve]
    eleves_par_id: Dict[str, Eleve]
    arrangement_initial: Arrangement
    places: List[Position]

    def nb_placables(self) -> int:
        """Nombre maximal d'élèves assis : borné par les élèves connus et par les sièges."""
        fixes = len(set(self.arrangement_initial.values()) & self.eleves_par_id.keys())
        return min(len(self.eleves), fixes + len(self.places))

    def est_optimal(self, res: ResultatPlacement) -> bool:
        """Aucune violation et autant d'élèves assis que possible : inutile de chercher plus loin."""
        return res.stats.nb_violations == 0 and res.stats.nb_places >= self.nb_placables()


def preparer(
    salle: Salle,
    eleves: Sequence[Eleve],
    contraintes: Iterable[Contrainte] | JeuContraintes,
    fixes: Sequence[PlacementFixe] = (),
) -> ContexteResolution:
    """Construit le contexte : index des élèves, arrangement des fixes, places libres."""
    jeu = JeuContraintes.depuis(contraintes)
    arrangement_initial: Arrangement = arrangement_depuis_fixes(fixes)
    deja_assis = set(arrangement_initial.values())
    return ContexteResolution(
        salle=salle,
        jeu=jeu,
        eleves=list(eleves),
        a_placer=[e for e in eleves if e.identifiant() not in deja_assis],
        eleves_par_id={e.identifiant(): e for e in eleves},
        arrangement_initial=arrangement_initial,
        places=places_libres(places_disponibles(salle), arrangement_initial),
    )


def construire_resultat(ctx: ContexteResolution, arrangement: Arrangement, message: str) -> ResultatPlacement:
    """Valide l'arrangement final et calcule les statistiques du résultat."""
    validation = valider_tout(arrangement, ctx.eleves, ctx.salle, ctx.jeu)
    assis = {ident for ident in arrangement.values() if ident in ctx.eleves_par_id}
    total: int = ctx.salle.rangs * ctx.salle.colonnes
    disponibles: int = len(places_disponibles(ctx.salle))
    nb_non_places: int = len(ctx.eleves) - len(assis)
    stats = StatistiquesPlacement(
        total_places=total,
        places_disponibles=disponibles,
        places_desactivees=total - disponibles,
        nb_places=len(assis),
        nb_non_places=nb_non_places,
        nb_violations=len(validation.violations),
    )
    return ResultatPlacement(
        succes=nb_non_places == 0,
        arrangement=dict(arrangement),
        message=message,
        violations=list(validation.violations),
        stats=stats,
    )


class Solveur(ABC):
    """Interface abstraite des moteurs de placement (retour arrière, heuristiques, aléatoire...).

    Un moteur ne lève jamais d'exception parce qu'un placement est incomplet :
    il renvoie toujours un `ResultatPlacement` (succès ou non) avec un message.
    """

    graine: Optional[int] = None

    @abstractmethod
    def resoudre(
        self,
        salle: Salle,
        eleves: Sequence[Eleve],
        contraintes: Iterable[Contrainte] | JeuContraintes,
        *,
        fixes: Sequence[PlacementFixe] = (),
        budget_temps_ms: Optional[int] = None,
    ) -> ResultatPlacement:
        """Place les élèves non fixés de `eleves` dans `salle` en respectant au mieux `contraintes`."""
        raise NotImplementedError

    def avec_graine(self, graine: Optional[int]) -> "Solveur":
        """Retourne un moteur configuré à l'identique, réensemencé avec `graine`."""
        return self
