from __future__ import annotations

import time
from typing import List, Optional

import pytest

from placementclasse.config import BUDGET_REESSAIS_PAR_DEFAUT_MS, OptionsPlacement
from placementclasse.contraintes.binaires import DoiventEtreEnPaire, NeDoiventPasEtreEnPaire
from placementclasse.erreurs import ErreurEntree
from placementclasse.modele.eleve import Eleve
from placementclasse.modele.placement import PlacementFixe
from placementclasse.modele.position import Position
from placementclasse.modele.resultat import ResultatPlacement, StatistiquesPlacement
from placementclasse.modele.salle import Salle
from placementclasse.orchestrateur import (
    TypeMoteur,
    executer_avec_reessais,
    fabriquer_moteur,
    placer_eleves,
    valider_arrangement,
    verifier_compatibilite_contraintes,
)
from placementclasse.solveurs.aleatoire_adaptatif import ModeAleatoire, SolveurAleatoireAdaptatif
from placementclasse.solveurs.base import Solveur
from placementclasse.solveurs.heuristique import SolveurHeuristique
from placementclasse.solveurs.mixte import SolveurMixte
from placementclasse.solveurs.retour_arriere import SolveurRetourArriere

MOTEURS_SANS_ORTOOLS = [t for t in TypeMoteur if t is not TypeMoteur.CPSAT]


def test_type_moteur_depuis_texte():
    assert TypeMoteur.depuis(" Heuristic ") is TypeMoteur.HEURISTIQUE
    assert TypeMoteur.depuis(TypeMoteur.MIXTE) is TypeMoteur.MIXTE
    with pytest.raises(ErreurEntree):
        TypeMoteur.depuis("genetique")


def test_fabriquer_moteur():
    options = OptionsPlacement(graine=4, preset_aleatoire="creative")
    assert isinstance(fabriquer_moteur("backtracking", options), SolveurRetourArriere)
    assert fabriquer_moteur("heuristic_lightweight").preset.nom == "lightweight"
    assert isinstance(fabriquer_moteur("heuristic_constraint_focused"), SolveurHeuristique)
    assert isinstance(fabriquer_moteur("gender_balanced"), SolveurMixte)

    alea = fabriquer_moteur("adaptive_random", options)
    assert isinstance(alea, SolveurAleatoireAdaptatif)
    assert alea.config.mode is ModeAleatoire.EXPLORATOIRE
    assert alea.graine == 4
    # le nom du moteur l'emporte sur le preset des options
    assert fabriquer_moteur("adaptive_random_wild", options).config.mode is ModeAleatoire.CHAOS


@pytest.mark.parametrize("moteur", MOTEURS_SANS_ORTOOLS)
def test_chaque_moteur_place_tout_le_monde(moteur, quatre_eleves, salle_3x3):
    fixes = [PlacementFixe("d", Position(2, 2))]
    res = placer_eleves(
        quatre_eleves,
        salle_3x3,
        [NeDoiventPasEtreEnPaire("a", "c")],
        fixes,
        moteur=moteur,
        options=OptionsPlacement(graine=1, budget_temps_ms=2_000),
    )
    assert res.succes
    assert res.arrangement[Position(2, 2)] == "d"
    assert len(set(res.arrangement.values())) == 4


def test_entrees_invalides(quatre_eleves, salle_3x3):
    with pytest.raises(ErreurEntree):
        placer_eleves(None, salle_3x3, [])
    with pytest.raises(ErreurEntree):
        placer_eleves(quatre_eleves, salle_3x3, [], moteur="inconnu")
    with pytest.raises(ErreurEntree):
        placer_eleves(quatre_eleves + [Eleve("AUTRE A", "F", identifiant="a")], salle_3x3, [])
    with pytest.raises(ErreurEntree):
        placer_eleves(quatre_eleves, salle_3x3, [], [PlacementFixe("a", Position(5, 0))])
    with pytest.raises(ErreurEntree):
        placer_eleves(quatre_eleves, salle_3x3, [], [PlacementFixe("z", Position(0, 0))])
    with pytest.raises(ErreurEntree):
        placer_eleves(
            quatre_eleves, salle_3x3, [], [PlacementFixe("a", Position(0, 0)), PlacementFixe("b", Position(0, 0))]
        )


def test_placement_incomplet_sans_exception(classe):
    res = placer_eleves(classe(5), Salle(2, 2), [], options=OptionsPlacement(budget_temps_ms=1_000, tentatives_max=1))
    assert not res.succes
    assert res.stats.nb_non_places == 1


def test_reessais_progression_jusqu_au_maximum(quatre_eleves):
    # paire à la fois requise et interdite : chaque tentative garde une violation
    contraintes = [DoiventEtreEnPaire("a", "b"), NeDoiventPasEtreEnPaire("a", "b")]
    appels = []
    res = executer_avec_reessais(
        "gender_balanced",
        quatre_eleves,
        Salle(2, 2),
        contraintes,
        activer_reessais=True,
        max_reessais=3,
        progression=lambda tentative, total: appels.append((tentative, total)),
        graine=10,
    )
    assert appels == [(1, 3), (2, 3), (3, 3)]
    assert res.stats.nb_violations == 1
    assert res.message.endswith("(3 tentative(s))")


def test_reessais_arret_sans_violation(quatre_eleves, salle_3x3):
    appels = []
    res = executer_avec_reessais(
        TypeMoteur.RETOUR_ARRIERE,
        quatre_eleves,
        salle_3x3,
        [DoiventEtreEnPaire("a", "b")],
        activer_reessais=True,
        max_reessais=5,
        progression=lambda tentative, total: appels.append(tentative),
        options=OptionsPlacement(budget_temps_ms=2_000),
    )
    assert appels == [1]
    assert res.stats.nb_violations == 0
    assert res.message.endswith("(1 tentative(s))")


def test_sans_reessais_une_seule_execution(quatre_eleves, salle_3x3):
    appels = []
    moteur = SolveurMixte(graine=6)
    res = executer_avec_reessais(
        moteur, quatre_eleves, salle_3x3, [], progression=lambda t, n: appels.append((t, n))
    )
    assert appels == [(1, 1)]
    assert "tentative" not in res.message
    assert res.arrangement == moteur.resoudre(salle_3x3, quatre_eleves, []).arrangement


def test_reessais_par_les_options(quatre_eleves, salle_3x3):
    options = OptionsPlacement(graine=3, activer_reessais=True, max_reessais=2, budget_temps_ms=1_000)
    res = placer_eleves(quatre_eleves, salle_3x3, [], moteur="adaptive_random", options=options)
    assert res.message.endswith("(1 tentative(s))")


def test_candidats_multiples(classe):
    options = OptionsPlacement(graine=2, nb_candidats=3)
    res = placer_eleves(classe(6), Salle(3, 4), [], moteur="adaptive_random_balanced", options=options)
    assert "meilleur candidat retenu" in res.message


def test_validation_et_compatibilite(quatre_eleves, salle_3x3):
    res = valider_arrangement({Position(0, 0): "a", Position(2, 0): "b"}, quatre_eleves, salle_3x3, [
        DoiventEtreEnPaire("a", "b")
    ])
    assert not res.est_valide
    compat = verifier_compatibilite_contraintes(
        [DoiventEtreEnPaire("a", "b"), NeDoiventPasEtreEnPaire("a", "b")], quatre_eleves, salle_3x3
    )
    assert len(compat.conflits) == 1
    with pytest.raises(ErreurEntree):
        valider_arrangement(None, quatre_eleves, salle_3x3, [])


class _SolveurLent(Solveur):
    """Chaque tentative dure 100 ms et garde une violation ; note le budget reçu."""

    def __init__(self) -> None:
        self.budgets: List[Optional[int]] = []

    def resoudre(self, salle, eleves, contraintes, *, fixes=(), budget_temps_ms=None):
        self.budgets.append(budget_temps_ms)
        time.sleep(0.1)
        return ResultatPlacement(True, {}, "lent", [], StatistiquesPlacement(9, 9, 0, 4, 0, 1))


def test_reessais_partagent_le_budget(quatre_eleves, salle_3x3):
    moteur = _SolveurLent()
    executer_avec_reessais(
        moteur,
        quatre_eleves,
        salle_3x3,
        [],
        activer_reessais=True,
        max_reessais=10,
        options=OptionsPlacement(budget_temps_ms=250),
    )
    assert 1 <= len(moteur.budgets) < 10
    assert moteur.budgets[0] <= 250
    assert moteur.budgets == sorted(moteur.budgets, reverse=True)
    assert len(set(moteur.budgets)) == len(moteur.budgets)


def test_reessais_budget_par_defaut(quatre_eleves, salle_3x3):
    moteur = _SolveurLent()
    executer_avec_reessais(moteur, quatre_eleves, salle_3x3, [], activer_reessais=True, max_reessais=2)
    assert len(moteur.budgets) == 2
    assert all(b is not None and b <= BUDGET_REESSAIS_PAR_DEFAUT_MS for b in moteur.budgets)


def test_reessais_probleme_insoluble_dans_le_budget(classe):
    # triangle de paires requises : impossible à satisfaire entièrement
    contraintes = [DoiventEtreEnPaire("e0", "e1"), DoiventEtreEnPaire("e1", "e2"), DoiventEtreEnPaire("e0", "e2")]
    debut = time.monotonic()
    res = executer_avec_reessais(
        "backtracking",
        classe(6),
        Salle(3, 4),
        contraintes,
        activer_reessais=True,
        max_reessais=4,
        options=OptionsPlacement(budget_temps_ms=500),
    )
    duree_ms = (time.monotonic() - debut) * 1000
    assert duree_ms < 900
    assert "tentative(s)" in res.message
