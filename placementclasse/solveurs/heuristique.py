from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .base import Chrono, ContexteResolution, Solveur, construire_resultat, preparer
from ..contraintes.base import Contrainte, distance_chebyshev, est_position_paire
from ..contraintes.binaires import DoiventEtreEloignes, DoiventEtreEnPaire, NeDoiventPasEtreEnPaire
from ..contraintes.ensemble import JeuContraintes
from ..modele.eleve import Eleve, Genre
from ..modele.placement import Arrangement, PlacementFixe, index_par_eleve
from ..modele.position import Position
from ..modele.resultat import ResultatPlacement, meilleur_pour_recherche
from ..modele.salle import Salle
from ..sieges import est_eligible, places_paires_disponibles, siege_paire

logger = logging.getLogger(__name__)

Domaines = Dict[str, List[Position]]


@dataclass(frozen=True)
class PoidsHeuristiques:
    """Pondération du choix de la variable (somme conseillée : 1)."""

    mrv: float = 0.35
    degre: float = 0.35
    criticite: float = 0.20
    flexibilite: float = 0.10


@dataclass(frozen=True)
class PresetHeuristique:
    """Réglage nommé du moteur heuristique.

    `facteur_profondeur` et `budget_ms` à `None` : valeurs dérivées de la
    complexité du problème (élèves × contraintes).
    """

    nom: str
    poids: PoidsHeuristiques = field(default_factory=PoidsHeuristiques)
    facteur_profondeur: Optional[int] = None
    budget_ms: Optional[int] = None


PRESET_AVANCE = PresetHeuristique("advanced")
PRESET_LEGER = PresetHeuristique("lightweight", PoidsHeuristiques(0.5, 0.3, 0.15, 0.05), 2, 10_000)
PRESET_ORIENTE_CONTRAINTES = PresetHeuristique(
    "constraint-focused", PoidsHeuristiques(0.25, 0.45, 0.25, 0.05), 8, 60_000
)


def reglages_par_complexite(nb_eleves: int, nb_contraintes: int) -> Tuple[int, int]:
    """(budget en ms, facteur de profondeur) selon la complexité élèves × contraintes."""
    complexite = nb_eleves * nb_contraintes
    if complexite > 500:
        return 45_000, 3
    if complexite > 200:
        return 30_000, 4
    return 15_000, 5


class SolveurHeuristique(Solveur):
    """
    Retour arrière guidé par heuristiques, avec propagation de contraintes.

    Étapes
    ------
    1. Domaines initiaux : places éligibles de chaque élève (genre, siège
       désactivé, exclusion de rangées, voisinage des élèves fixés).
    2. Propagation : paires requises restreintes aux tables à deux
       admissibles ; distances restreintes aux places ayant au moins un
       partenaire assez éloigné. Un domaine vide arrête tout, sans recherche.
    3. Recherche : variable choisie par somme pondérée MRV / degré /
       criticité / flexibilité ; valeurs triées par
       satisfaction + flexibilité future + proximité − pénalité de conflit ;
       vérification en avant avec mise à jour des domaines.
    """

    def __init__(
        self,
        *,
        poids: Optional[PoidsHeuristiques] = None,
        profondeur_max: Optional[int] = None,
        budget_temps_ms: Optional[int] = None,
        preset: PresetHeuristique = PRESET_AVANCE,
    ) -> None:
        self.preset: PresetHeuristique = preset
        self.poids: PoidsHeuristiques = poids or preset.poids
        self.profondeur_max: Optional[int] = profondeur_max
        self.budget_temps_ms: Optional[int] = budget_temps_ms

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

        budget_auto, facteur_auto = reglages_par_complexite(n, len(ctx.jeu))
        budget: int = next(
            b for b in (budget_temps_ms, self.budget_temps_ms, self.preset.budget_ms, budget_auto) if b is not None
        )
        profondeur_max: int = self.profondeur_max or n * (self.preset.facteur_profondeur or facteur_auto)
        chrono = Chrono(budget)

        logger.info(
            "heuristique (%s) : %d élèves, %d contraintes, budget %d ms, profondeur %d",
            self.preset.nom,
            n,
            len(ctx.jeu),
            budget,
            profondeur_max,
        )

        domaines = domaines_initiaux(ctx)
        conflits = propager(ctx, domaines)
        if conflits:
            logger.info("propagation en échec : %s", "; ".join(conflits))
            return construire_resultat(
                ctx, ctx.arrangement_initial, "Échec de la propagation des contraintes : " + "; ".join(conflits)
            )

        recherche = _RechercheHeuristique(ctx, domaines, self.poids, chrono, profondeur_max)
        res = recherche.lancer()
        message = (
            f"{res.message} ({recherche.noeuds} nœuds explorés, {recherche.retours} retours, "
            f"{recherche.elagages} branches élaguées, {chrono.ecoule_ms():.0f} ms)"
        )
        logger.info(
            "heuristique terminée : %d/%d placés, %d violations",
            res.stats.nb_places,
            len(ctx.eleves),
            res.stats.nb_violations,
        )
        return res.avec_message(message)


# ---------------------------------------------------------------- domaines


def domaines_initiaux(ctx: ContexteResolution) -> Domaines:
    """Places éligibles de chaque élève à placer, compte tenu des seuls élèves fixés."""
    positions_fixes = index_par_eleve(ctx.arrangement_initial)
    return {
        e.identifiant(): [
            p
            for p in ctx.places
            if est_eligible(e, p, ctx.salle, ctx.jeu, ctx.arrangement_initial, positions_fixes)
        ]
        for e in ctx.a_placer
    }


def _places_admissibles_en_paire(
    dom_a: Sequence[Position], dom_b: Sequence[Position], tables: Sequence[Tuple[Position, Position]]
) -> Tuple[List[Position], List[Position]]:
    ens_a, ens_b = set(dom_a), set(dom_b)
    pour_a: set[Position] = set()
    pour_b: set[Position] = set()
    for p1, p2 in tables:
        if p1 in ens_a and p2 in ens_b:
            pour_a.add(p1)
            pour_b.add(p2)
        if p2 in ens_a and p1 in ens_b:
            pour_a.add(p2)
            pour_b.add(p1)
    return [p for p in dom_a if p in pour_a], [p for p in dom_b if p in pour_b]


def propager(ctx: ContexteResolution, domaines: Domaines) -> List[str]:
    """
    Réduit les domaines en place avant la recherche.

    Retourne la liste des conflits (domaines vidés) ; vide si la propagation réussit.
    """
    salle = ctx.salle
    positions_fixes = index_par_eleve(ctx.arrangement_initial)
    tables = places_paires_disponibles(salle, ctx.arrangement_initial)

    def connu(c: Contrainte) -> bool:
        if all(i in ctx.eleves_par_id for i in c.implique()):
            return True
        logger.warning("contrainte ignorée (élève inconnu) : %s", c.texte_humain())
        return False

    for c in ctx.jeu.paires_requises:
        if not connu(c):
            continue
        if c.a in domaines and c.b in domaines:
            domaines[c.a], domaines[c.b] = _places_admissibles_en_paire(domaines[c.a], domaines[c.b], tables)
            continue
        for fixe, libre in ((c.a, c.b), (c.b, c.a)):
            if fixe in positions_fixes and libre in domaines:
                voisin = siege_paire(positions_fixes[fixe], salle)
                domaines[libre] = [p for p in domaines[libre] if p == voisin]

    for c in ctx.jeu.distances:
        if not connu(c):
            continue
        if c.a in domaines and c.b in domaines:
            domaines[c.a] = [
                p for p in domaines[c.a] if any(distance_chebyshev(p, q) >= c.distance_min for q in domaines[c.b])
            ]
            domaines[c.b] = [
                p for p in domaines[c.b] if any(distance_chebyshev(p, q) >= c.distance_min for q in domaines[c.a])
            ]

    conflits: List[str] = []
    for ident, dom in domaines.items():
        if not dom:
            eleve = ctx.eleves_par_id[ident]
            raisons = [c.texte_humain({i: e.nom() for i, e in ctx.eleves_par_id.items()}) for c in ctx.jeu.binaires_de(ident)]
            detail = f" ({', '.join(raisons)})" if raisons else ""
            conflits.append(f"aucune place possible pour {eleve.nom()}{detail}")
    return conflits


# ---------------------------------------------------------------- recherche


class _RechercheHeuristique:
    """État d'une recherche heuristique ; les domaines sont remplacés (jamais modifiés) à chaque pas."""

    def __init__(
        self,
        ctx: ContexteResolution,
        domaines: Domaines,
        poids: PoidsHeuristiques,
        chrono: Chrono,
        profondeur_max: int,
    ) -> None:
        self.ctx = ctx
        self.poids = poids
        self.chrono = chrono
        self.profondeur_max = profondeur_max

        self.arrangement: Arrangement = dict(ctx.arrangement_initial)
        self.positions: Dict[str, Position] = index_par_eleve(self.arrangement)
        self.domaines: Domaines = domaines
        self.restants: List[Eleve] = sorted(
            ctx.a_placer, key=lambda e: (0 if e.genre() is Genre.MASCULIN else 1, e.nom())
        )
        self.rang_initial: Dict[str, int] = {e.identifiant(): i for i, e in enumerate(self.restants)}

        self.noeuds: int = 0
        self.retours: int = 0
        self.elagages: int = 0

    def lancer(self) -> ResultatPlacement:
        return self._explorer(0)

    def _resultat(self, message: str) -> ResultatPlacement:
        return construire_resultat(self.ctx, self.arrangement, message)

    def _explorer(self, profondeur: int) -> ResultatPlacement:
        self.noeuds += 1
        if self.chrono.depasse():
            return self._resultat("Limite de temps atteinte")
        if profondeur > self.profondeur_max:
            return self._resultat("Profondeur maximale atteinte")
        if not self.restants:
            sans_place = [e.nom() for e in self.ctx.a_placer if e.identifiant() not in self.positions]
            if sans_place:
                return self._resultat(f"Aucune place viable pour {', '.join(sans_place)}")
            return self._resultat("Tous les élèves ont été placés")

        eleve = self.choisir_variable()
        meilleur: Optional[ResultatPlacement] = None
        for pos in self.ordonner_valeurs(eleve):
            if self.chrono.depasse():
                break
            nouveaux = self.verification_avant(eleve, pos)
            if nouveaux is None:
                self.elagages += 1
                continue
            anciens = self.domaines
            self._placer(eleve, pos, nouveaux)
            res = self._explorer(profondeur + 1)
            self._retirer(eleve, pos, anciens)
            if meilleur is None or meilleur_pour_recherche(res, meilleur):
                meilleur = res
            if self.ctx.est_optimal(meilleur):
                break
            self.retours += 1

        if meilleur is None:
            return self._sauter(eleve, profondeur)
        return meilleur

    def _placer(self, eleve: Eleve, pos: Position, domaines: Domaines) -> None:
        self.arrangement[pos] = eleve.identifiant()
        self.positions[eleve.identifiant()] = pos
        self.restants.remove(eleve)
        self.domaines = domaines

    def _retirer(self, eleve: Eleve, pos: Position, domaines: Domaines) -> None:
        del self.arrangement[pos]
        del self.positions[eleve.identifiant()]
        self.restants.append(eleve)
        self.restants.sort(key=lambda e: self.rang_initial[e.identifiant()])
        self.domaines = domaines

    def _sauter(self, eleve: Eleve, profondeur: int) -> ResultatPlacement:
        """L'élève n'a aucune place viable : il reste sans place et la recherche continue."""
        anciens = self.domaines
        self.domaines = {i: d for i, d in anciens.items() if i != eleve.identifiant()}
        self.restants.remove(eleve)
        try:
            return self._explorer(profondeur + 1)
        finally:
            self.restants.append(eleve)
            self.restants.sort(key=lambda e: self.rang_initial[e.identifiant()])
            self.domaines = anciens

    # ---------------------------------------------------------------- variable

    def criticite(self, eleve: Eleve) -> float:
        ident = eleve.identifiant()
        taille = len(self.domaines.get(ident, []))
        score = 0.0
        if taille <= 1:
            score += 50
        elif taille <= 3:
            score += 30
        elif taille <= 5:
            score += 10
        for c in self.ctx.jeu.binaires_de(ident):
            dom_partenaire = self.domaines.get(c.partenaire_de(ident) or "")
            if dom_partenaire is not None and len(dom_partenaire) <= 2:
                score += 20
        if self.ctx.jeu.paires_requises_de(ident):
            score += 25
        return min(score, 100.0)

    def flexibilite(self, eleve: Eleve) -> float:
        ident = eleve.identifiant()
        domaine = self.domaines.get(ident, [])
        taille = len(domaine)
        nb_liens = len(self.ctx.jeu.binaires_de(ident))
        score = 0.0
        if taille > 10:
            score += 30
        elif taille > 5:
            score += 20
        elif taille > 3:
            score += 10
        if nb_liens == 0:
            score += 40
        elif nb_liens <= 2:
            score += 20
        if domaine:
            libres_de_genre = sum(1 for p in domaine if self.ctx.salle.genre_requis(p) is None)
            if libres_de_genre / taille > 0.7:
                score += 20
        return min(score, 100.0)

    def priorite(self, eleve: Eleve) -> float:
        taille = len(self.domaines.get(eleve.identifiant(), []))
        mrv = 100.0 if taille == 0 else 100.0 / taille
        degre = len(self.ctx.jeu.binaires_de(eleve.identifiant())) * 10.0
        return (
            self.poids.mrv * mrv
            + self.poids.degre * degre
            + self.poids.criticite * self.criticite(eleve)
            + self.poids.flexibilite * self.flexibilite(eleve)
        )

    def choisir_variable(self) -> Eleve:
        return max(self.restants, key=self.priorite)

    # ---------------------------------------------------------------- valeurs

    def _partenaires_places(self, ident: str) -> Iterable[Tuple[Contrainte, Position]]:
        for c in self.ctx.jeu.binaires_de(ident):
            pos = self.positions.get(c.partenaire_de(ident) or "")
            if pos is not None:
                yield c, pos

    def satisfaction(self, eleve: Eleve, pos: Position) -> float:
        score = 0.0
        for c, autre in self._partenaires_places(eleve.identifiant()):
            if isinstance(c, DoiventEtreEnPaire):
                if est_position_paire(pos, autre):
                    score += 40
            elif isinstance(c, NeDoiventPasEtreEnPaire):
                if not est_position_paire(pos, autre):
                    score += 30
            elif isinstance(c, DoiventEtreEloignes):
                d = distance_chebyshev(pos, autre)
                if d >= c.distance_min:
                    score += 35
                else:
                    score -= (c.distance_min - d) * 10
        return max(0.0, min(score, 100.0))

    def flexibilite_future(self, eleve: Eleve, pos: Position) -> float:
        score = 50.0
        for autre in self.restants:
            if autre is eleve:
                continue
            domaine = self.domaines.get(autre.identifiant(), [])
            restant = sum(1 for p in domaine if p != pos)
            reduction = 1 - restant / max(len(domaine), 1)
            if reduction > 0.5:
                score -= 20
            elif reduction > 0.3:
                score -= 10
            if self.ctx.jeu.a_des_contraintes(autre.identifiant()) and reduction > 0.3:
                score -= 15
        return max(0.0, min(score, 100.0))

    def bonus_proximite(self, eleve: Eleve, pos: Position) -> float:
        score = 0.0
        for c, autre in self._partenaires_places(eleve.identifiant()):
            d = distance_chebyshev(pos, autre)
            if isinstance(c, DoiventEtreEnPaire):
                if d == 1:
                    score += 30
                elif d <= 2:
                    score += 15
            elif isinstance(c, DoiventEtreEloignes):
                if d == c.distance_min:
                    score += 20
                elif d == c.distance_min + 1:
                    score += 15
        return min(score, 100.0)

    def penalite_conflit(self, eleve: Eleve, pos: Position) -> float:
        ident = eleve.identifiant()
        penalite = 0.0
        voisin = siege_paire(pos, self.ctx.salle)
        occupant = self.arrangement.get(voisin) if voisin is not None else None
        if occupant is not None and any(c.partenaire_de(ident) == occupant for c in self.ctx.jeu.paires_interdites_de(ident)):
            penalite += 50
        for c, autre in self._partenaires_places(ident):
            if isinstance(c, DoiventEtreEloignes):
                penalite += c.manque(pos, autre) * 20
        return min(penalite, 100.0)

    def score_place(self, eleve: Eleve, pos: Position) -> float:
        return (
            self.satisfaction(eleve, pos)
            + self.flexibilite_future(eleve, pos)
            + self.bonus_proximite(eleve, pos)
            - self.penalite_conflit(eleve, pos)
        )

    def ordonner_valeurs(self, eleve: Eleve) -> List[Position]:
        ctx = self.ctx
        candidats = [
            p
            for p in self.domaines.get(eleve.identifiant(), [])
            if est_eligible(eleve, p, ctx.salle, ctx.jeu, self.arrangement, self.positions)
        ]
        return sorted(candidats, key=lambda p: -self.score_place(eleve, p))

    # ---------------------------------------------------------------- vérification en avant

    def verification_avant(self, eleve: Eleve, pos: Position) -> Optional[Domaines]:
        """
        Nouveaux domaines après le placement de `eleve` en `pos`, ou `None`
        si un élève restant se retrouve sans aucune place.
        """
        ident = eleve.identifiant()
        nouveaux: Domaines = {i: [p for p in d if p != pos] for i, d in self.domaines.items() if i != ident}

        for c in self.ctx.jeu.binaires_de(ident):
            partenaire = c.partenaire_de(ident) or ""
            if partenaire not in nouveaux:
                continue
            domaine = nouveaux[partenaire]
            if isinstance(c, DoiventEtreEnPaire):
                voisin = siege_paire(pos, self.ctx.salle)
                nouveaux[partenaire] = [p for p in domaine if p == voisin]
            elif isinstance(c, NeDoiventPasEtreEnPaire):
                nouveaux[partenaire] = [p for p in domaine if not est_position_paire(p, pos)]
            elif isinstance(c, DoiventEtreEloignes):
                nouveaux[partenaire] = [p for p in domaine if distance_chebyshev(p, pos) >= c.distance_min]

        if any(not d for d in nouveaux.values()):
            return None
        return nouveaux
