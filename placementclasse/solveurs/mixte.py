from __future__ import annotations

import logging
import random
from typing import Iterable, List, Optional, Sequence

from .base import Solveur, construire_resultat, preparer
from ..contraintes.base import Contrainte
from ..contraintes.ensemble import JeuContraintes
from ..modele.eleve import Eleve, Genre
from ..modele.placement import Arrangement, PlacementFixe, index_par_eleve
from ..modele.position import Position
from ..modele.resultat import ResultatPlacement
from ..modele.salle import Salle
from ..sieges import est_eligible, places_paires_disponibles

logger = logging.getLogger(__name__)


class SolveurMixte(Solveur):
    """Passe constructive simple : binômes fille/garçon sur les tables à deux, puis le reste au hasard.

    Les genres imposés aux sièges sont ignorés (la salle est copiée sans eux) ;
    les sièges désactivés, les exclusions de rangées et les élèves fixés sont
    respectés. Les violations éventuelles sont rapportées dans le résultat.
    """

    def __init__(self, *, graine: Optional[int] = None, nb_paires: Optional[int] = None) -> None:
        self.graine: Optional[int] = graine
        self.nb_paires: Optional[int] = nb_paires

    def avec_graine(self, graine: Optional[int]) -> "SolveurMixte":
        return SolveurMixte(graine=graine, nb_paires=self.nb_paires)

    def resoudre(
        self,
        salle: Salle,
        eleves: Sequence[Eleve],
        contraintes: Iterable[Contrainte] | JeuContraintes,
        *,
        fixes: Sequence[PlacementFixe] = (),
        budget_temps_ms: Optional[int] = None,
    ) -> ResultatPlacement:
        ctx = preparer(salle.sans_genres_sieges(), eleves, contraintes, fixes)
        rng = random.Random(self.graine)

        garcons: List[Eleve] = [e for e in ctx.a_placer if e.genre() is Genre.MASCULIN]
        filles: List[Eleve] = [e for e in ctx.a_placer if e.genre() is Genre.FEMININ]
        rng.shuffle(garcons)
        rng.shuffle(filles)

        arrangement: Arrangement = dict(ctx.arrangement_initial)
        positions = index_par_eleve(arrangement)

        def essayer(eleve: Eleve, pos: Position) -> bool:
            if not est_eligible(eleve, pos, ctx.salle, ctx.jeu, arrangement, positions):
                return False
            arrangement[pos] = eleve.identifiant()
            positions[eleve.identifiant()] = pos
            return True

        nb_paires_max = min(len(garcons), len(filles))
        nb_paires = nb_paires_max if self.nb_paires is None else min(self.nb_paires, nb_paires_max)
        tables = places_paires_disponibles(ctx.salle, arrangement)
        rng.shuffle(tables)

        formees = 0
        for gauche, droite in tables:
            if formees >= nb_paires or not garcons or not filles:
                break
            g, f = garcons[-1], filles[-1]
            premier, second = (g, f) if rng.random() < 0.5 else (f, g)
            if not essayer(premier, gauche):
                continue
            if not essayer(second, droite):
                del arrangement[gauche]
                del positions[premier.identifiant()]
                continue
            garcons.pop()
            filles.pop()
            formees += 1

        reste: List[Eleve] = garcons + filles
        rng.shuffle(reste)
        libres = [p for p in ctx.places if p not in arrangement]
        rng.shuffle(libres)
        for eleve in reste:
            for pos in libres:
                if pos not in arrangement and essayer(eleve, pos):
                    break

        non_places = [e.nom() for e in ctx.a_placer if e.identifiant() not in positions]
        logger.info("passe mixte : %d binômes formés, %d élèves sans place", formees, len(non_places))
        message = f"Placement mixte : {formees} binôme(s) fille/garçon"
        if non_places:
            message += f" ; sans place : {', '.join(non_places)}"
        # validation sur la vraie salle : les genres imposés ignorés apparaissent comme violations
        ctx.salle = salle
        return construire_resultat(ctx, arrangement, message)
