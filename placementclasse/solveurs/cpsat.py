from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from ortools.sat.python import cp_model

from .base import Chrono, ContexteResolution, Solveur, construire_resultat, preparer
from ..contraintes.base import Contrainte, distance_chebyshev, est_position_paire
from ..contraintes.ensemble import JeuContraintes
from ..modele.eleve import Eleve
from ..modele.placement import Arrangement, PlacementFixe, index_par_eleve
from ..modele.position import Position
from ..modele.resultat import ResultatPlacement
from ..modele.salle import Salle
from ..sieges import est_eligible, siege_paire

logger = logging.getLogger(__name__)

BUDGET_PAR_DEFAUT_MS: int = 30_000


# ======================================================================
# Solveur CP-SAT
# ======================================================================

class SolveurCPSAT(Solveur):
    """
    Solveur exact basé sur OR-Tools CP-SAT.

    Variables x[e][s] pour chaque élève à placer et chaque place libre où il
    est éligible. Toutes les contraintes binaires sont dures ; l'objectif
    maximise le nombre d'élèves assis. Un élève qu'aucune solution ne peut
    asseoir reste sans place, sans violation.
    """

    def __init__(self, *, graine: Optional[int] = None, nb_workers: int = 8) -> None:
        self.graine: Optional[int] = graine
        self.nb_workers: int = nb_workers

    def avec_graine(self, graine: Optional[int]) -> "SolveurCPSAT":
        return SolveurCPSAT(graine=graine, nb_workers=self.nb_workers)

    # ------------------------------------------------------------------ API Solveur

    def resoudre(
            self,
            salle: Salle,
            eleves: Sequence[Eleve],
            contraintes: Iterable[Contrainte] | JeuContraintes,
            *,
            fixes: Sequence[PlacementFixe] = (),
            budget_temps_ms: Optional[int] = None,
    ) -> ResultatPlacement:
        ctx = preparer(salle, eleves, contraintes, fixes)
        if not ctx.a_placer:
            return construire_resultat(ctx, ctx.arrangement_initial, "Aucun élève à placer")

        chrono = Chrono(budget_temps_ms)
        domaines = self._domaines(ctx)
        model, x = self._construire_modele(ctx, domaines)

        budget_s = (budget_temps_ms if budget_temps_ms is not None else BUDGET_PAR_DEFAUT_MS) / 1000.0
        solver = self._make_solver(budget_s)
        status = solver.Solve(model)
        logger.info(
            "CP-SAT : statut %s, %d élèves, %d places, %.0f ms",
            solver.StatusName(status),
            len(ctx.a_placer),
            len(ctx.places),
            chrono.ecoule_ms(),
        )
        if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            return construire_resultat(
                ctx, ctx.arrangement_initial, f"Aucune solution CP-SAT (statut {solver.StatusName(status)})"
            )

        arrangement: Arrangement = dict(ctx.arrangement_initial)
        for ident, vars_par_place in x.items():
            for pos, var in vars_par_place.items():
                if solver.Value(var) == 1:
                    arrangement[pos] = ident
                    break

        optimal = "optimale" if status == cp_model.OPTIMAL else "réalisable"
        non_places = [e.nom() for e in ctx.a_placer if e.identifiant() not in arrangement.values()]
        message = f"Solution CP-SAT {optimal}"
        if non_places:
            message += f" ; sans place : {', '.join(non_places)}"
        return construire_resultat(ctx, arrangement, message)

    # ------------------------------------------------------------------ Construction du modèle

    @staticmethod
    def _domaines(ctx: ContexteResolution) -> Dict[str, List[Position]]:
        """Places éligibles par élève, y compris vis-à-vis des élèves fixés."""
        positions_fixes = index_par_eleve(ctx.arrangement_initial)
        domaines: Dict[str, List[Position]] = {
            e.identifiant(): [
                p
                for p in ctx.places
                if est_eligible(e, p, ctx.salle, ctx.jeu, ctx.arrangement_initial, positions_fixes)
            ]
            for e in ctx.a_placer
        }
        # paire requise avec un élève fixé : seule la place voisine de table reste possible
        for c in ctx.jeu.paires_requises:
            for fixe, libre in ((c.a, c.b), (c.b, c.a)):
                if fixe in positions_fixes and libre in domaines:
                    voisin = siege_paire(positions_fixes[fixe], ctx.salle)
                    domaines[libre] = [p for p in domaines[libre] if p == voisin]
        return domaines

    def _construire_modele(
            self, ctx: ContexteResolution, domaines: Dict[str, List[Position]]
    ) -> tuple[cp_model.CpModel, Dict[str, Dict[Position, cp_model.IntVar]]]:
        model = cp_model.CpModel()

        # x[e][s]
        x: Dict[str, Dict[Position, cp_model.IntVar]] = {
            ident: {p: model.NewBoolVar(f"x_{ident}_{p.cle()}") for p in places}
            for ident, places in domaines.items()
        }

        # Affectations
        for ident, vars_par_place in x.items():
            if vars_par_place:
                model.Add(sum(vars_par_place.values()) <= 1)
        par_place: Dict[Position, List[cp_model.IntVar]] = {}
        for vars_par_place in x.values():
            for p, var in vars_par_place.items():
                par_place.setdefault(p, []).append(var)
        for p, variables in par_place.items():
            if len(variables) > 1:
                model.Add(sum(variables) <= 1)

        # ---------- Contraintes binaires ----------
        def variables_de(c: Contrainte) -> Optional[tuple[Dict[Position, cp_model.IntVar], Dict[Position, cp_model.IntVar]]]:
            a, b = c.implique()
            if a not in x or b not in x:
                if not all(i in ctx.eleves_par_id for i in (a, b)):
                    logger.warning("contrainte ignorée (élève inconnu) : %s", c.texte_humain())
                return None
            return x[a], x[b]

        # (a) Paires interdites
        for c in ctx.jeu.paires_interdites:
            couple = variables_de(c)
            if couple is None:
                continue
            xa, xb = couple
            # même table au sens de la parité des colonnes, comme le validateur
            for p, var_a in xa.items():
                for q, var_b in xb.items():
                    if est_position_paire(p, q):
                        model.Add(var_a + var_b <= 1)

        # (b) Distances minimales
        for c in ctx.jeu.distances:
            couple = variables_de(c)
            if couple is None:
                continue
            xa, xb = couple
            for p, var_a in xa.items():
                for q, var_b in xb.items():
                    if p != q and distance_chebyshev(p, q) < c.distance_min:
                        model.Add(var_a + var_b <= 1)

        # (c) Paires requises : chacun n'est assis que si l'autre l'est à côté
        for c in ctx.jeu.paires_requises:
            couple = variables_de(c)
            if couple is None:
                continue
            for xa, xb in (couple, couple[::-1]):
                for p, var in xa.items():
                    voisin = siege_paire(p, ctx.salle)
                    if voisin is None or voisin not in xb:
                        model.Add(var == 0)
                    else:
                        model.Add(var <= xb[voisin])

        # ---------- Objectif ----------
        model.Maximize(sum(var for vars_par_place in x.values() for var in vars_par_place.values()))
        return model, x

    def _make_solver(self, time_limit_s: Optional[float]) -> cp_model.CpSolver:
        solver = cp_model.CpSolver()
        if time_limit_s is not None:
            solver.parameters.max_time_in_seconds = max(0.1, time_limit_s)
        solver.parameters.num_workers = self.nb_workers
        if self.graine is not None:
            solver.parameters.random_seed = int(self.graine) % (2 ** 31)
        return solver
