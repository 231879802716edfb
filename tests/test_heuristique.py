from __future__ import annotations

import time

from placementclasse.contraintes.base import distance_chebyshev, est_position_paire
from placementclasse.contraintes.binaires import DoiventEtreEloignes, DoiventEtreEnPaire, NeDoiventPasEtreEnPaire
from placementclasse.contraintes.unaires import DoitEviterDernieresRangees
from placementclasse.modele.eleve import Eleve
from placementclasse.modele.placement import PlacementFixe, index_par_eleve
from placementclasse.modele.position import Position
from placementclasse.modele.salle import Salle
from placementclasse.solveurs.base import preparer
from placementclasse.solveurs.heuristique import (
    PRESET_LEGER,
    PRESET_ORIENTE_CONTRAINTES,
    PoidsHeuristiques,
    SolveurHeuristique,
    domaines_initiaux,
    propager,
    reglages_par_complexite,
)


def test_reglages_par_complexite():
    assert reglages_par_complexite(10, 5) == (15_000, 5)
    assert reglages_par_complexite(30, 10) == (30_000, 4)
    assert reglages_par_complexite(30, 20) == (45_000, 3)


def test_presets():
    assert PRESET_LEGER.poids == PoidsHeuristiques(0.5, 0.3, 0.15, 0.05)
    assert PRESET_LEGER.budget_ms == 10_000
    assert PRESET_ORIENTE_CONTRAINTES.facteur_profondeur == 8


def test_scenario_simple_3x3(quatre_eleves, salle_3x3):
    res = SolveurHeuristique().resoudre(salle_3x3, quatre_eleves, [DoiventEtreEnPaire("a", "b")], budget_temps_ms=2_000)
    assert res.succes
    assert res.stats.nb_violations == 0
    pos = index_par_eleve(res.arrangement)
    assert est_position_paire(pos["a"], pos["b"])
    assert "nœuds explorés" in res.message


def test_contraintes_respectees(classe):
    eleves = classe(10)
    contraintes = [
        DoiventEtreEnPaire("e0", "e1"),
        NeDoiventPasEtreEnPaire("e2", "e3"),
        DoiventEtreEloignes("e4", "e5", 3),
        DoitEviterDernieresRangees("e6", 2),
    ]
    res = SolveurHeuristique(preset=PRESET_ORIENTE_CONTRAINTES).resoudre(
        Salle(4, 4), eleves, contraintes, budget_temps_ms=3_000
    )
    assert res.est_parfait()
    pos = index_par_eleve(res.arrangement)
    assert distance_chebyshev(pos["e4"], pos["e5"]) >= 3
    assert len(set(res.arrangement.values())) == 10


def test_propagation_restreint_paire_requise_aux_tables(quatre_eleves):
    salle = Salle(2, 3)  # colonne 2 isolée
    ctx = preparer(salle, quatre_eleves, [DoiventEtreEnPaire("a", "b")])
    domaines = domaines_initiaux(ctx)
    assert propager(ctx, domaines) == []
    assert all(p.colonne != 2 for p in domaines["a"] + domaines["b"])
    assert any(p.colonne == 2 for p in domaines["c"])


def test_propagation_partenaire_fixe(quatre_eleves, salle_3x3):
    fixes = [PlacementFixe("a", Position(1, 0))]
    res = SolveurHeuristique().resoudre(
        salle_3x3, quatre_eleves, [DoiventEtreEnPaire("a", "b")], fixes=fixes, budget_temps_ms=2_000
    )
    assert res.arrangement[Position(1, 0)] == "a"
    assert res.arrangement[Position(1, 1)] == "b"


def test_echec_de_propagation():
    salle = Salle(1, 2)
    eleves = [Eleve("DUPONT Alice", "F", identifiant="a"), Eleve("MARTIN Bruno", "M", identifiant="b")]
    res = SolveurHeuristique().resoudre(salle, eleves, [DoitEviterDernieresRangees("a", 1)], budget_temps_ms=1_000)
    assert not res.succes
    assert res.message.startswith("Échec de la propagation des contraintes")
    assert "DUPONT Alice" in res.message
    assert res.arrangement == {}


def test_determinisme(classe):
    eleves = classe(8)
    contraintes = [NeDoiventPasEtreEnPaire("e0", "e1"), DoiventEtreEloignes("e2", "e3", 2)]
    r1 = SolveurHeuristique(preset=PRESET_LEGER).resoudre(Salle(3, 4), eleves, contraintes, budget_temps_ms=2_000)
    r2 = SolveurHeuristique(preset=PRESET_LEGER).resoudre(Salle(3, 4), eleves, contraintes, budget_temps_ms=2_000)
    assert r1.arrangement == r2.arrangement


def test_arret_des_que_toutes_les_places_sont_prises(classe):
    debut = time.monotonic()
    res = SolveurHeuristique().resoudre(Salle(3, 4), classe(13), [], budget_temps_ms=3_000)
    duree_ms = (time.monotonic() - debut) * 1000
    assert res.stats.nb_places == 12
    assert res.stats.nb_violations == 0
    assert duree_ms < 1_500
