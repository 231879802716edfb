from __future__ import annotations

import logging
import random
from typing import Dict, Iterable, List, Optional, Sequence

from .base import Chrono, ContexteResolution, Solveur, construire_resultat, preparer
from ..contraintes.base import Contrainte, est_position_paire
from ..contraintes.binaires import DoiventEtreEloignes, DoiventEtreEnPaire, NeDoiventPasEtreEnPaire
from ..contraintes.ensemble import JeuContraintes
from ..modele.eleve import Eleve, Genre
from ..modele.placement import Arrangement, PlacementFixe, index_par_eleve
from ..modele.position import Position
from ..modele.resultat import ResultatPlacement, meilleur_pour_recherche
from ..modele.salle import Salle
from ..sieges import est_eligible

logger = logging.getLogger(__name__)

# Importance relative des contraintes binaires (ordre des variables et coût des valeurs)
POIDS_PAIRE_REQUISE: int = 10
POIDS_DISTANCE: int = 8
POIDS_PAIRE_INTERDITE: int = 7


def poids_contrainte(c: Contrainte) -> int:
    if isinstance(c, DoiventEtreEnPaire):
        return POIDS_PAIRE_REQUISE
    if isinstance(c, DoiventEtreEloignes):
        return POIDS_DISTANCE
    if isinstance(c, NeDoiventPasEtreEnPaire):
        return POIDS_PAIRE_INTERDITE
    return 0


class SolveurRetourArriere(Solveur):
    """Retour arrière (backtracking) avec ordre MCV/LCV, vérification en avant et redémarrages.

    Caractéristiques
    ----------------
    - Variable : l'élève de plus fort poids cumulé de contraintes
      (paire requise 10, distance 8, paire interdite 7) ; à égalité, garçons
      d'abord puis ordre alphabétique.
    - Valeur : sièges éligibles triés par coût croissant (violation de paire
      ×10 le poids, manque de distance × poids), puis par impact sur les
      élèves contraints restants.
    - Vérification en avant : un siège est écarté s'il laisse un élève
      contraint sans aucune place éligible.
    - Redémarrages : l'ordre est mélangé (graine du moteur) jusqu'à
      `tentatives_max` ou épuisement du budget ; le meilleur résultat
      (plus de placés, puis moins de violations) est conservé.
    """

    def __init__(
        self,
        *,
        graine: Optional[int] = None,
        tentatives_max: Optional[int] = None,
        profondeur_max: Optional[int] = None,
    ) -> None:
        self.graine: Optional[int] = graine
        self.tentatives_max: Optional[int] = tentatives_max
        self.profondeur_max: Optional[int] = profondeur_max

    def avec_graine(self, graine: Optional[int]) -> "SolveurRetourArriere":
        return SolveurRetourArriere(
            graine=graine, tentatives_max=self.tentatives_max, profondeur_max=self.profondeur_max
        )

    def resoudre(
        self,
        salle: Salle,
        eleves: Sequence[Eleve],
        contraintes: Iterable[Contrainte] | JeuContraintes,
        *,
        fixes: Sequence[PlacementFixe] = (),
        budget_temps_ms: Optional[int] = None,
    ) -> ResultatPlacement:
        ctx: ContexteResolution = preparer(salle, eleves, contraintes, fixes)
        n: int = len(ctx.a_placer)
        if n == 0:
            return construire_resultat(ctx, ctx.arrangement_initial, "Aucun élève à placer")

        budget: int = budget_temps_ms if budget_temps_ms is not None else (45_000 if n > 30 else 30_000)
        tentatives_max: int = self.tentatives_max or min(50, n)
        profondeur_max: int = self.profondeur_max or min(1000, n * 10)
        chrono = Chrono(budget)
        rng = random.Random(self.graine)

        priorites: Dict[str, int] = {
            e.identifiant(): sum(poids_contrainte(c) for c in ctx.jeu.binaires_de(e.identifiant()))
            for e in ctx.a_placer
        }
        ordre: List[Eleve] = sorted(
            ctx.a_placer,
            key=lambda e: (-priorites[e.identifiant()], 0 if e.genre() is Genre.MASCULIN else 1, e.nom()),
        )

        logger.info("retour arrière : %d élèves, %d places, budget %d ms", n, len(ctx.places), budget)

        meilleur: Optional[ResultatPlacement] = None
        tentative: int = 0
        while tentative < tentatives_max and not chrono.depasse():
            tentative += 1
            if tentative > 1:
                ordre = list(ordre)
                rng.shuffle(ordre)
            recherche = _Recherche(ctx, ordre, priorites, chrono, profondeur_max, rng if tentative > 1 else None)
            res = recherche.lancer()
            logger.debug(
                "tentative %d : %d placés, %d violations, %d nœuds",
                tentative,
                res.stats.nb_places,
                res.stats.nb_violations,
                recherche.noeuds,
            )
            if meilleur is None or meilleur_pour_recherche(res, meilleur):
                meilleur = res
            if ctx.est_optimal(meilleur):
                break

        if meilleur is None:
            return construire_resultat(ctx, ctx.arrangement_initial, "Limite de temps atteinte avant toute tentative")

        message = f"{meilleur.message} ({tentative} tentative(s), {chrono.ecoule_ms():.0f} ms)"
        logger.info(
            "retour arrière terminé : %d/%d placés, %d violations",
            meilleur.stats.nb_places,
            len(ctx.eleves),
            meilleur.stats.nb_violations,
        )
        return meilleur.avec_message(message)


class _Recherche:
    """Une passe récursive complète ; l'état mutable appartient à cette seule passe."""

    def __init__(
        self,
        ctx: ContexteResolution,
        ordre: Sequence[Eleve],
        priorites: Dict[str, int],
        chrono: Chrono,
        profondeur_max: int,
        rng: Optional[random.Random],
    ) -> None:
        self.ctx = ctx
        self.priorites = priorites
        self.chrono = chrono
        self.profondeur_max = profondeur_max
        self.rng = rng
        self.noeuds: int = 0

        self.arrangement: Arrangement = dict(ctx.arrangement_initial)
        self.positions: Dict[str, Position] = index_par_eleve(self.arrangement)
        self.restants: List[Eleve] = list(ordre)
        self.rang_initial: Dict[str, int] = {e.identifiant(): i for i, e in enumerate(ordre)}

    def lancer(self) -> ResultatPlacement:
        return self._explorer(0)

    # ---------------------------------------------------------------- récursion

    def _explorer(self, profondeur: int) -> ResultatPlacement:
        self.noeuds += 1
        if self.chrono.depasse():
            return self._resultat("Limite de temps atteinte")
        if profondeur > self.profondeur_max:
            return self._resultat("Profondeur maximale atteinte")
        if not self.restants:
            return self._resultat(self._bilan_feuille())
        if not any(p not in self.arrangement for p in self.ctx.places):
            return self._resultat("Plus aucune place disponible")

        eleve: Eleve = max(self.restants, key=lambda e: self.priorites[e.identifiant()])
        candidats: List[Position] = self._ordonner_places(eleve)
        deja_bloques = self._bloques(self._places_libres(), exclu=eleve)

        meilleur: Optional[ResultatPlacement] = None
        for pos in candidats:
            if self.chrono.depasse():
                break
            if not self._verification_avant(eleve, pos, deja_bloques):
                continue
            self._placer(eleve, pos)
            res = self._explorer(profondeur + 1)
            self._retirer(eleve, pos)
            if meilleur is None or meilleur_pour_recherche(res, meilleur):
                meilleur = res
            if self.ctx.est_optimal(meilleur):
                break

        if meilleur is None:
            # aucune place viable : l'élève reste sans place, la recherche continue pour les autres
            return self._sauter(eleve, profondeur)
        return meilleur

    def _sauter(self, eleve: Eleve, profondeur: int) -> ResultatPlacement:
        self.restants.remove(eleve)
        try:
            return self._explorer(profondeur + 1)
        finally:
            self.restants.append(eleve)
            self.restants.sort(key=self._rang_initial)

    def _bilan_feuille(self) -> str:
        sans_place = [e.nom() for e in self.ctx.a_placer if e.identifiant() not in self.positions]
        if sans_place:
            return f"Aucune place viable pour {', '.join(sans_place)}"
        return "Tous les élèves ont été placés"

    def _placer(self, eleve: Eleve, pos: Position) -> None:
        self.arrangement[pos] = eleve.identifiant()
        self.positions[eleve.identifiant()] = pos
        self.restants.remove(eleve)

    def _retirer(self, eleve: Eleve, pos: Position) -> None:
        del self.arrangement[pos]
        del self.positions[eleve.identifiant()]
        self.restants.append(eleve)
        # restaure l'ordre d'origine pour garder des égalités déterministes
        self.restants.sort(key=self._rang_initial)

    def _rang_initial(self, e: Eleve) -> int:
        return self.rang_initial[e.identifiant()]

    def _resultat(self, message: str) -> ResultatPlacement:
        return construire_resultat(self.ctx, self.arrangement, message)

    # ---------------------------------------------------------------- valeurs

    def _places_libres(self) -> List[Position]:
        return [p for p in self.ctx.places if p not in self.arrangement]

    def _ordonner_places(self, eleve: Eleve) -> List[Position]:
        ctx = self.ctx
        eligibles: List[Position] = [
            p
            for p in self._places_libres()
            if est_eligible(eleve, p, ctx.salle, ctx.jeu, self.arrangement, self.positions)
        ]
        if self.rng is not None:
            self.rng.shuffle(eligibles)
        contraints = [
            e for e in self.restants if e is not eleve and ctx.jeu.a_des_contraintes(e.identifiant())
        ]
        # tri stable : coût, puis nombre d'élèves contraints à qui la place est aussi utile
        return sorted(
            eligibles,
            key=lambda p: (
                self._cout(eleve, p),
                sum(1 for e in contraints if est_eligible(e, p, ctx.salle, ctx.jeu)),
            ),
        )

    def _cout(self, eleve: Eleve, pos: Position) -> int:
        ident: str = eleve.identifiant()
        cout: int = 0
        for c in self.ctx.jeu.binaires_de(ident):
            partenaire: Optional[Position] = self.positions.get(c.partenaire_de(ident) or "")
            if partenaire is None:
                continue
            if isinstance(c, DoiventEtreEnPaire):
                if not est_position_paire(pos, partenaire):
                    cout += POIDS_PAIRE_REQUISE * 10
            elif isinstance(c, NeDoiventPasEtreEnPaire):
                if est_position_paire(pos, partenaire):
                    cout += POIDS_PAIRE_INTERDITE * 10
            elif isinstance(c, DoiventEtreEloignes):
                cout += POIDS_DISTANCE * c.manque(pos, partenaire)
        return cout

    # ---------------------------------------------------------------- élagage

    def _bloques(self, libres: Sequence[Position], exclu: Optional[Eleve] = None) -> set[str]:
        """Identifiants des élèves contraints restants qui n'ont plus aucune place éligible."""
        ctx = self.ctx
        bloques: set[str] = set()
        for autre in self.restants:
            if autre is exclu or not ctx.jeu.a_des_contraintes(autre.identifiant()):
                continue
            if not any(est_eligible(autre, p, ctx.salle, ctx.jeu, self.arrangement, self.positions) for p in libres):
                bloques.add(autre.identifiant())
        return bloques

    def _verification_avant(self, eleve: Eleve, pos: Position, deja_bloques: set[str]) -> bool:
        """Simule le placement et vérifie qu'il ne bloque aucun autre élève contraint restant."""
        self._placer(eleve, pos)
        try:
            return self._bloques(self._places_libres()) <= deja_bloques
        finally:
            self._retirer(eleve, pos)
