from __future__ import annotations

from typing import List

import pytest

from placementclasse.config import OptionsPlacement
from placementclasse.contraintes.base import distance_chebyshev, est_position_paire
from placementclasse.contraintes.binaires import DoiventEtreEloignes, DoiventEtreEnPaire, NeDoiventPasEtreEnPaire
from placementclasse.contraintes.types import TypeViolation
from placementclasse.contraintes.unaires import DoitEviterDernieresRangees
from placementclasse.contraintes.validateur import valider_tout, verifier_compatibilite
from placementclasse.modele.placement import index_par_eleve
from placementclasse.modele.position import Position
from placementclasse.modele.resultat import ResultatPlacement, StatistiquesPlacement
from placementclasse.modele.salle import Salle
from placementclasse.orchestrateur import TypeMoteur, executer_avec_reessais, placer_eleves
from placementclasse.solveurs.base import Solveur

MOTEURS = [
    TypeMoteur.RETOUR_ARRIERE,
    TypeMoteur.HEURISTIQUE,
    TypeMoteur.ALEATOIRE,
    TypeMoteur.ALEATOIRE_SAUVAGE,
    TypeMoteur.MIXTE,
]


def test_scenario_succes_simple_2x2(quatre_eleves):
    salle = Salle(2, 2, colonnes_paires=[(0, 1)])
    res = placer_eleves(
        quatre_eleves, salle, [DoiventEtreEnPaire("a", "b")], options=OptionsPlacement(budget_temps_ms=2_000)
    )
    assert res.succes
    pos = index_par_eleve(res.arrangement)
    assert pos["a"].rang == pos["b"].rang
    assert {pos["a"].colonne, pos["b"].colonne} == {0, 1}


def test_scenario_contradiction_detectee(quatre_eleves, salle_3x3):
    res = verifier_compatibilite(
        [DoiventEtreEnPaire("a", "b"), DoiventEtreEloignes("a", "b", 3)], quatre_eleves, salle_3x3
    )
    assert not res.est_valide
    assert "DUPONT Alice" in res.conflits[0] and "MARTIN Bruno" in res.conflits[0]


@pytest.mark.parametrize("moteur", MOTEURS)
def test_siege_desactive_jamais_occupe(moteur, classe):
    salle = Salle(3, 3)
    salle.desactiver_siege(Position(1, 1))
    res = placer_eleves(classe(8), salle, [], moteur=moteur, options=OptionsPlacement(graine=9, budget_temps_ms=2_000))
    assert Position(1, 1) not in res.arrangement
    assert res.stats.places_desactivees == 1
    assert res.stats.nb_places == 8


@pytest.mark.parametrize("moteur", MOTEURS)
def test_exclusion_de_rang_respectee(moteur, classe):
    eleves = classe(6)
    res = placer_eleves(
        eleves,
        Salle(5, 2),
        [DoitEviterDernieresRangees("e0", 1)],
        moteur=moteur,
        options=OptionsPlacement(graine=4, budget_temps_ms=2_000),
    )
    pos = index_par_eleve(res.arrangement)
    assert "e0" not in pos or pos["e0"].rang != 4


@pytest.mark.parametrize("moteur", MOTEURS)
def test_pas_de_double_occupation(moteur, classe):
    res = placer_eleves(
        classe(9),
        Salle(3, 4),
        [NeDoiventPasEtreEnPaire("e0", "e1"), DoiventEtreEloignes("e2", "e3", 2)],
        moteur=moteur,
        options=OptionsPlacement(graine=5, budget_temps_ms=2_000),
    )
    ids = list(res.arrangement.values())
    assert len(ids) == len(set(ids))


def test_validateur_une_violation_pour_une_paire_separee(quatre_eleves, salle_3x3):
    arrangement = {Position(0, 0): "a", Position(2, 1): "b"}
    res = valider_tout(arrangement, quatre_eleves, salle_3x3, [DoiventEtreEnPaire("a", "b")])
    (v,) = res.violations
    assert v.type is TypeViolation.PAIRE_REQUISE
    assert set(v.eleves) == {"a", "b"}


def test_symetries():
    places = [Position(r, c) for r in range(3) for c in range(4)]
    for p in places:
        assert distance_chebyshev(p, p) == 0
        for q in places:
            assert distance_chebyshev(p, q) == distance_chebyshev(q, p)
            assert est_position_paire(p, q) == est_position_paire(q, p)


class _SolveurScripte(Solveur):
    """Renvoie, tentative après tentative, des résultats au nombre de violations imposé."""

    def __init__(self, violations: List[int]) -> None:
        self.violations = violations
        self.appels = 0

    def avec_graine(self, graine):
        return self

    def resoudre(self, salle, eleves, contraintes, *, fixes=(), budget_temps_ms=None):
        n = self.violations[self.appels]
        self.appels += 1
        stats = StatistiquesPlacement(4, 4, 0, 4, 0, n)
        return ResultatPlacement(True, {}, f"tentative {self.appels}", [], stats)


def test_reessais_meilleur_resultat_non_croissant(quatre_eleves, salle_3x3):
    moteur = _SolveurScripte([3, 1, 2, 4, 1])
    res = executer_avec_reessais(moteur, quatre_eleves, salle_3x3, [], activer_reessais=True, max_reessais=5)
    assert moteur.appels == 5
    assert res.stats.nb_violations == 1
    # à égalité, la première tentative reste la meilleure
    assert res.message == "tentative 2 (5 tentative(s))"
