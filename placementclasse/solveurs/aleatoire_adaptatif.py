from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .base import Chrono, ContexteResolution, Solveur, construire_resultat, preparer
from ..contraintes.base import Contrainte, distance_chebyshev, est_position_paire
from ..contraintes.ensemble import JeuContraintes
from ..erreurs import ErreurEntree
from ..modele.eleve import Eleve
from ..modele.placement import Arrangement, PlacementFixe, index_par_eleve
from ..modele.position import Position
from ..modele.resultat import ResultatPlacement
from ..modele.salle import Salle
from ..sieges import est_eligible, voisins

logger = logging.getLogger(__name__)


class GenerateurLCG:
    """Générateur congruentiel de Park-Miller : même graine, même suite."""

    MODULE: int = 2147483647
    MULTIPLICATEUR: int = 16807

    def __init__(self, graine: Optional[int] = None) -> None:
        if graine is None:
            graine = int(time.time() * 1000)
        self.etat: int = graine % self.MODULE or 1

    def suivant(self) -> float:
        """Flottant dans [0, 1)."""
        self.etat = self.etat * self.MULTIPLICATEUR % self.MODULE
        return (self.etat - 1) / (self.MODULE - 1)

    def indice(self, n: int) -> int:
        return min(int(self.suivant() * n), n - 1)


class ModeAleatoire(str, Enum):
    CONSERVATEUR = "conservative"
    EQUILIBRE = "balanced"
    EXPLORATOIRE = "exploratory"
    CHAOS = "chaos"


class Risque(str, Enum):
    SUR = "safe"
    MODERE = "moderate"
    RISQUE = "risky"


@dataclass(frozen=True)
class ConfigAleatoire:
    """Paramètres d'aléa, en pourcentages (0-100) sauf le mode."""

    mode: ModeAleatoire = ModeAleatoire.EQUILIBRE
    alea_eleve: float = 30
    alea_siege: float = 25
    flexibilite: float = 10
    diversite: float = 40
    exploration: float = 20

    def surcharger(self, **surcharges: Any) -> "ConfigAleatoire":
        if "mode" in surcharges:
            surcharges["mode"] = ModeAleatoire(surcharges["mode"])
        try:
            return replace(self, **surcharges)
        except TypeError as exc:
            raise ErreurEntree(f"paramètre d'aléa inconnu : {exc}") from exc

    @classmethod
    def depuis_preset(cls, nom: str, surcharges: Optional[Mapping[str, Any]] = None) -> "ConfigAleatoire":
        if nom not in PRESETS:
            raise ErreurEntree(f"preset inconnu : {nom!r} (attendu : {', '.join(PRESETS)})")
        return PRESETS[nom].surcharger(**dict(surcharges or {}))


PRESETS: Dict[str, ConfigAleatoire] = {
    "subtle": ConfigAleatoire(ModeAleatoire.CONSERVATEUR, 15, 10, 5, 20, 10),
    "balanced": ConfigAleatoire(ModeAleatoire.EQUILIBRE, 30, 25, 10, 40, 20),
    "creative": ConfigAleatoire(ModeAleatoire.EXPLORATOIRE, 50, 45, 20, 60, 35),
    "wild": ConfigAleatoire(ModeAleatoire.CHAOS, 80, 75, 40, 30, 60),
}

# (nom, facteur appliqué à l'aléa élève et siège)
PHASES: Tuple[Tuple[str, float], ...] = (
    ("constraint-priority", 0.2),
    ("heuristic-based", 0.4),
    ("adaptive-exploration", 0.6),
    ("diversity-seeking", 0.8),
)

# poids (contraintes, heuristique, aléa, diversité) du score final d'un siège
POIDS_PAR_MODE: Dict[ModeAleatoire, Tuple[float, float, float, float]] = {
    ModeAleatoire.CONSERVATEUR: (0.7, 0.2, 0.05, 0.05),
    ModeAleatoire.EQUILIBRE: (0.4, 0.3, 0.15, 0.15),
    ModeAleatoire.EXPLORATOIRE: (0.3, 0.2, 0.25, 0.25),
    ModeAleatoire.CHAOS: (0.2, 0.1, 0.5, 0.2),
}


@dataclass(frozen=True)
class DecisionPlacement:
    """Trace d'un placement validé par le moteur adaptatif."""

    identifiant_eleve: str
    position: Position
    phase: str
    raisons: Tuple[str, ...]
    confiance: float
    influence_aleatoire: float
    nb_alternatives: int


@dataclass(frozen=True)
class AnalysePlacement:
    nb_decisions: int = 0
    nb_confiance_haute: int = 0
    nb_decisions_aleatoires: int = 0
    confiance_moyenne: float = 0.0
    diversite_moyenne: float = 0.0
    decisions_par_phase: Dict[str, int] = field(default_factory=dict)


@dataclass
class _CandidatEleve:
    eleve: Eleve
    score_base: float
    score_final: float


@dataclass
class _CandidatSiege:
    position: Position
    score_contraintes: float
    score_heuristique: float
    facteur_aleatoire: float
    score_diversite: float
    score_final: float
    risque: Risque


class SolveurAleatoireAdaptatif(Solveur):
    """
    Construction gloutonne en quatre phases d'aléa croissant, sans retour arrière.

    Chaque phase ne traite que les élèves laissés sans place par la précédente.
    Dans une phase : choix de l'élève (score heuristique + bonus aléatoire),
    évaluation des sièges éligibles, choix du siège selon le mode. Un siège
    attribué ne l'est jamais à nouveau dans la même exécution.
    """

    def __init__(self, config: Optional[ConfigAleatoire] = None, *, graine: Optional[int] = None) -> None:
        self.config: ConfigAleatoire = config or PRESETS["balanced"]
        self.graine: Optional[int] = graine
        self.historique: List[DecisionPlacement] = []
        self._derniere_analyse: AnalysePlacement = AnalysePlacement()

    def avec_graine(self, graine: Optional[int]) -> "SolveurAleatoireAdaptatif":
        return SolveurAleatoireAdaptatif(self.config, graine=graine)

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

        construction = _Construction(ctx, self.config, GenerateurLCG(self.graine), Chrono(budget_temps_ms))
        logger.info(
            "aléatoire adaptatif (%s, graine %s) : %d élèves, %d places",
            self.config.mode.value,
            self.graine,
            len(ctx.a_placer),
            len(ctx.places),
        )
        arrangement = construction.executer()
        self.historique = construction.historique
        self._derniere_analyse = construction.analyse(arrangement)

        res = construire_resultat(ctx, arrangement, "")
        return res.avec_message(self._message(res, ctx, self._derniere_analyse, len(fixes)))

    def _message(
        self, res: ResultatPlacement, ctx: ContexteResolution, analyse: AnalysePlacement, nb_fixes: int
    ) -> str:
        total = len(ctx.eleves)
        taux = 100.0 * res.stats.nb_places / total if total else 0.0
        message = f"Placement aléatoire ({self.config.mode.value}) : {res.stats.nb_places}/{total} élèves placés ({taux:.1f} %)"
        if nb_fixes:
            message += f" dont {nb_fixes} fixé(s)"
        if analyse.diversite_moyenne > 0:
            message += f" | diversité : {analyse.diversite_moyenne:.1f}"
        if analyse.nb_decisions_aleatoires:
            message += f" | décisions aléatoires : {analyse.nb_decisions_aleatoires}"
        return message

    def analyse(self) -> AnalysePlacement:
        """Synthèse du journal de décisions de la dernière exécution."""
        return self._derniere_analyse

    def generer_plusieurs(
        self,
        nb_candidats: int,
        salle: Salle,
        eleves: Sequence[Eleve],
        contraintes: Iterable[Contrainte] | JeuContraintes,
        *,
        fixes: Sequence[PlacementFixe] = (),
        budget_temps_ms: Optional[int] = None,
    ) -> ResultatPlacement:
        """
        Lance `nb_candidats` exécutions (graines `graine`, `graine + 1`, ...)
        et garde le meilleur score `placés × 100 − violations × 10`.
        À égalité, le premier candidat l'emporte. Les candidats partagent
        `budget_temps_ms` : on n'en lance plus une fois le budget consommé.
        """
        if nb_candidats <= 1:
            return self.resoudre(salle, eleves, contraintes, fixes=fixes, budget_temps_ms=budget_temps_ms)

        jeu = JeuContraintes.depuis(contraintes)
        chrono = Chrono(budget_temps_ms)
        meilleur: Optional[ResultatPlacement] = None
        for i in range(nb_candidats):
            graine = self.graine + i if self.graine is not None else None
            moteur = self.avec_graine(graine)
            res = moteur.resoudre(salle, eleves, jeu, fixes=fixes, budget_temps_ms=chrono.restant_ms())
            res = res.avec_message(f"{res.message} (candidat {i + 1}/{nb_candidats})")
            logger.debug("candidat %d : score %d", i + 1, res.score_candidat())
            if meilleur is None or res.score_candidat() > meilleur.score_candidat():
                meilleur = res
                self.historique = moteur.historique
                self._derniere_analyse = moteur.analyse()
            if chrono.depasse():
                logger.info("budget épuisé après %d candidat(s) sur %d", i + 1, nb_candidats)
                break
        assert meilleur is not None
        return meilleur.avec_message(f"{meilleur.message} | meilleur candidat retenu")


class _Construction:
    """Une exécution complète : générateur, carte de diversité et journal propres à l'appel."""

    def __init__(self, ctx: ContexteResolution, config: ConfigAleatoire, rng: GenerateurLCG, chrono: Chrono) -> None:
        self.ctx = ctx
        self.config = config
        self.rng = rng
        self.chrono = chrono
        self.arrangement: Arrangement = dict(ctx.arrangement_initial)
        self.positions: Dict[str, Position] = index_par_eleve(self.arrangement)
        self.usage: Dict[Position, float] = {p: 0.0 for p in ctx.places}
        self.historique: List[DecisionPlacement] = []

    def executer(self) -> Arrangement:
        non_places: List[Eleve] = list(self.ctx.a_placer)
        for nom, facteur in PHASES:
            if not non_places or self.chrono.depasse():
                break
            config_phase = self.config.surcharger(
                alea_eleve=self.config.alea_eleve * facteur,
                alea_siege=self.config.alea_siege * facteur,
            )
            places = self._phase(non_places, config_phase, nom)
            non_places = [e for e in non_places if e.identifiant() not in self.positions]
            logger.debug("phase %s : %d placés, %d restants", nom, places, len(non_places))
        return self.arrangement

    def _phase(self, eleves: Sequence[Eleve], config: ConfigAleatoire, nom_phase: str) -> int:
        restants: List[Eleve] = list(eleves)
        nb_places = 0
        while restants:
            if self.chrono.depasse():
                logger.info("aléatoire adaptatif : limite de temps atteinte (phase %s)", nom_phase)
                break
            candidat = self.choisir_eleve(restants, config)
            eleve = candidat.eleve
            sieges = self.evaluer_sieges(eleve, config)
            restants.remove(eleve)
            if not sieges:
                continue
            choix = self.choisir_siege(sieges, config)
            self._valider(eleve, choix, candidat, config, nom_phase, len(sieges) - 1)
            nb_places += 1
            if config.mode is ModeAleatoire.EXPLORATOIRE and self.rng.suivant() < 0.1:
                break
        return nb_places

    def _valider(
        self,
        eleve: Eleve,
        choix: _CandidatSiege,
        candidat: _CandidatEleve,
        config: ConfigAleatoire,
        nom_phase: str,
        nb_alternatives: int,
    ) -> None:
        pos = choix.position
        self.arrangement[pos] = eleve.identifiant()
        self.positions[eleve.identifiant()] = pos
        influence = choix.facteur_aleatoire / choix.score_final * 100 if choix.score_final > 0 else 0.0
        self.historique.append(
            DecisionPlacement(
                identifiant_eleve=eleve.identifiant(),
                position=pos,
                phase=nom_phase,
                raisons=self._raisons(choix, candidat, config),
                confiance=max(0.0, min(100.0, choix.score_final)),
                influence_aleatoire=influence,
                nb_alternatives=nb_alternatives,
            )
        )
        self.usage[pos] = self.usage.get(pos, 0.0) + 1
        for v in voisins(pos, self.ctx.salle):
            self.usage[v] = self.usage.get(v, 0.0) + 0.5

    def _raisons(self, choix: _CandidatSiege, candidat: _CandidatEleve, config: ConfigAleatoire) -> Tuple[str, ...]:
        raisons: List[str] = []
        if candidat.score_base > 70:
            raisons.append("élève prioritaire")
        if choix.score_contraintes > 50:
            raisons.append("contraintes satisfaites")
        elif choix.score_contraintes > 0:
            raisons.append("contraintes partiellement satisfaites")
        if choix.score_heuristique > 60:
            raisons.append("bon score heuristique")
        if choix.facteur_aleatoire > config.alea_siege * 0.7:
            raisons.append("choix aléatoire")
        if choix.score_diversite > 70:
            raisons.append("diversité")
        raisons.append(f"risque : {choix.risque.value}")
        return tuple(raisons)

    # ---------------------------------------------------------------- élèves

    def _genres_places(self) -> List[Any]:
        par_id = self.ctx.eleves_par_id
        return [par_id[i].genre() for i in self.arrangement.values() if i in par_id]

    def score_heuristique_eleve(self, eleve: Eleve, genres_places: Sequence[Any]) -> float:
        score = 50.0 + 15 * len(self.ctx.jeu.binaires_de(eleve.identifiant()))
        if genres_places:
            part = sum(1 for g in genres_places if g is eleve.genre()) / len(genres_places)
            if part < 0.4:
                score += 10
        return max(0.0, min(score, 100.0))

    def bonus_diversite_eleve(self, eleve: Eleve, genres_places: Sequence[Any]) -> float:
        meme_genre = sum(1 for g in genres_places if g is eleve.genre())
        return 20.0 if meme_genre < len(genres_places) * 0.4 else 0.0

    def choisir_eleve(self, restants: Sequence[Eleve], config: ConfigAleatoire) -> _CandidatEleve:
        genres_places = self._genres_places()
        candidats: List[_CandidatEleve] = []
        for e in restants:
            base = self.score_heuristique_eleve(e, genres_places)
            final = (
                base
                + self.rng.suivant() * config.alea_eleve
                + self.bonus_diversite_eleve(e, genres_places) * config.diversite / 100
            )
            candidats.append(_CandidatEleve(e, base, final))
        candidats.sort(key=lambda c: -c.score_final)

        if self.rng.suivant() < config.exploration / 100:
            haut = candidats[: max(1, math.ceil(len(candidats) * 0.3))]
            return haut[self.rng.indice(len(haut))]

        tirage = self.rng.suivant()
        cumul = 0.0
        for candidat, poids in zip(candidats[:3], (0.6, 0.3, 0.1)):
            cumul += poids
            if tirage <= cumul:
                return candidat
        return candidats[0]

    # ---------------------------------------------------------------- sièges

    def score_contraintes(self, eleve: Eleve, pos: Position) -> float:
        ident = eleve.identifiant()
        jeu = self.ctx.jeu
        manques_paires = 0
        for c in jeu.paires_requises_de(ident):
            autre = self.positions.get(c.partenaire_de(ident) or "")
            if autre is not None and not est_position_paire(pos, autre):
                manques_paires += 1
        for c in jeu.paires_interdites_de(ident):
            autre = self.positions.get(c.partenaire_de(ident) or "")
            if autre is not None and est_position_paire(pos, autre):
                manques_paires += 1
        manques_distance = 0
        for c in jeu.distances_de(ident):
            autre = self.positions.get(c.partenaire_de(ident) or "")
            if autre is not None and distance_chebyshev(pos, autre) < c.distance_min:
                manques_distance += 1
        score = 100.0 - 30 * manques_paires - 25 * manques_distance
        return max(-100.0, min(score, 100.0))

    def score_heuristique_siege(self, eleve: Eleve, pos: Position) -> float:
        salle = self.ctx.salle
        rang_centre, colonne_centre = salle.centre()
        eloignement = abs(pos.rang - rang_centre) + abs(pos.colonne - colonne_centre)
        score = 50.0 + max(0.0, 20 - 2 * eloignement)

        par_id = self.ctx.eleves_par_id
        meme_genre = 0
        vides = 0
        for v in voisins(pos, salle):
            occupant = self.arrangement.get(v)
            if occupant is None:
                vides += 1
            elif occupant in par_id and par_id[occupant].genre() is eleve.genre():
                meme_genre += 1
        if meme_genre > 2:
            score -= 15
        score += 3 * vides
        return max(0.0, min(score, 100.0))

    @staticmethod
    def niveau_risque(score_contraintes: float, score_heuristique: float) -> Risque:
        total = score_contraintes + score_heuristique
        if score_contraintes < 0:
            return Risque.RISQUE
        if total > 120:
            return Risque.SUR
        if total > 80:
            return Risque.MODERE
        return Risque.RISQUE

    def evaluer_sieges(self, eleve: Eleve, config: ConfigAleatoire) -> List[_CandidatSiege]:
        ctx = self.ctx
        w_contraintes, w_heuristique, w_alea, w_diversite = POIDS_PAR_MODE[config.mode]
        candidats: List[_CandidatSiege] = []
        for pos in ctx.places:
            if pos in self.arrangement:
                continue
            if not est_eligible(eleve, pos, ctx.salle, ctx.jeu, self.arrangement, self.positions):
                continue
            contraintes = self.score_contraintes(eleve, pos)
            heuristique = self.score_heuristique_siege(eleve, pos)
            alea = self.rng.suivant() * config.alea_siege
            diversite = max(0.0, 100 - 10 * self.usage.get(pos, 0.0)) * config.diversite / 100
            risque = self.niveau_risque(contraintes, heuristique)
            if contraintes < 0 or (config.mode is not ModeAleatoire.CHAOS and risque is Risque.RISQUE):
                continue
            candidats.append(
                _CandidatSiege(
                    position=pos,
                    score_contraintes=contraintes,
                    score_heuristique=heuristique,
                    facteur_aleatoire=alea,
                    score_diversite=diversite,
                    score_final=(
                        contraintes * w_contraintes
                        + heuristique * w_heuristique
                        + alea * w_alea
                        + diversite * w_diversite
                    ),
                    risque=risque,
                )
            )
        return candidats

    def choisir_siege(self, candidats: List[_CandidatSiege], config: ConfigAleatoire) -> _CandidatSiege:
        if len(candidats) == 1:
            return candidats[0]

        if config.mode is ModeAleatoire.CONSERVATEUR:
            surs = [c for c in candidats if c.risque is Risque.SUR]
            if surs:
                return max(surs, key=lambda c: c.score_contraintes)
            return max(candidats, key=lambda c: c.score_final)

        if config.mode is ModeAleatoire.EQUILIBRE:
            tries = sorted(candidats, key=lambda c: -c.score_final)
            moitie = tries[: max(1, math.ceil(len(tries) * 0.5))]
            poids = [math.exp(-0.5 * i) for i in range(len(moitie))]
            tirage = self.rng.suivant() * sum(poids)
            cumul = 0.0
            for c, w in zip(moitie, poids):
                cumul += w
                if tirage <= cumul:
                    return c
            return moitie[0]

        if config.mode is ModeAleatoire.EXPLORATOIRE:
            tries = sorted(candidats, key=lambda c: -(c.score_final + 2 * c.score_diversite))
            reserve = tries[: max(1, math.ceil(len(tries) * 0.7))]
            return reserve[self.rng.indice(len(reserve))]

        return candidats[self.rng.indice(len(candidats))]

    # ---------------------------------------------------------------- analyse

    def analyse(self, arrangement: Arrangement) -> AnalysePlacement:
        decisions = self.historique
        if not decisions:
            return AnalysePlacement()
        par_phase: Dict[str, int] = {}
        for d in decisions:
            par_phase[d.phase] = par_phase.get(d.phase, 0) + 1
        usages = [max(0.0, 100 - 10 * u) for p, u in self.usage.items() if p in arrangement]
        return AnalysePlacement(
            nb_decisions=len(decisions),
            nb_confiance_haute=sum(1 for d in decisions if d.confiance > 80),
            nb_decisions_aleatoires=sum(1 for d in decisions if d.influence_aleatoire > 30),
            confiance_moyenne=sum(d.confiance for d in decisions) / len(decisions),
            diversite_moyenne=sum(usages) / len(usages) if usages else 0.0,
            decisions_par_phase=par_phase,
        )
