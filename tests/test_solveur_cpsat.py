from __future__ import annotations

import pytest

pytest.importorskip("ortools")

from placementclasse.contraintes.base import distance_chebyshev, est_position_paire  # noqa: E402
from placementclasse.contraintes.binaires import (  # noqa: E402
    DoiventEtreEloignes,
    DoiventEtreEnPaire,
    NeDoiventPasEtreEnPaire,
)
from placementclasse.contraintes.unaires import DoitEviterDernieresRangees  # noqa: E402
from placementclasse.modele.eleve import Genre  # noqa: E402
from placementclasse.modele.placement import PlacementFixe, index_par_eleve  # noqa: E402
from placementclasse.modele.position import Position  # noqa: E402
from placementclasse.modele.salle import Salle  # noqa: E402
from placementclasse.solveurs.cpsat import SolveurCPSAT  # noqa: E402


def test_scenario_simple_3x3(quatre_eleves, salle_3x3):
    res = SolveurCPSAT(graine=1, nb_workers=1).resoudre(
        salle_3x3, quatre_eleves, [DoiventEtreEnPaire("a", "b")], budget_temps_ms=5_000
    )
    assert res.succes
    assert res.message.startswith("Solution CP-SAT")
    pos = index_par_eleve(res.arrangement)
    assert est_position_paire(pos["a"], pos["b"])


def test_toutes_contraintes_dures(classe):
    eleves = classe(10)
    contraintes = [
        DoiventEtreEnPaire("e0", "e1"),
        NeDoiventPasEtreEnPaire("e2", "e3"),
        DoiventEtreEloignes("e4", "e5", 3),
        DoitEviterDernieresRangees("e6", 2),
    ]
    salle = Salle(4, 4)
    salle.definir_genre_siege(Position(0, 0), Genre.MASCULIN)
    res = SolveurCPSAT(graine=2, nb_workers=1).resoudre(salle, eleves, contraintes, budget_temps_ms=5_000)
    assert res.est_parfait()
    pos = index_par_eleve(res.arrangement)
    assert distance_chebyshev(pos["e4"], pos["e5"]) >= 3
    assert pos["e6"].rang < 2
    assert res.arrangement.get(Position(0, 0)) in (None, "e1", "e3", "e5", "e7", "e9")


def test_partenaire_fixe(quatre_eleves, salle_3x3):
    fixes = [PlacementFixe("b", Position(2, 1))]
    res = SolveurCPSAT(nb_workers=1).resoudre(
        salle_3x3, quatre_eleves, [DoiventEtreEnPaire("a", "b")], fixes=fixes, budget_temps_ms=5_000
    )
    assert res.arrangement[Position(2, 1)] == "b"
    assert res.arrangement[Position(2, 0)] == "a"


def test_eleve_sans_place_possible(quatre_eleves):
    # la colonne 2 n'appartient à aucune table : la paire requise ne peut pas être assise
    salle = Salle(1, 3)
    salle.desactiver_siege(Position(0, 0))
    res = SolveurCPSAT(nb_workers=1).resoudre(
        salle, quatre_eleves[:2], [DoiventEtreEnPaire("a", "b")], budget_temps_ms=5_000
    )
    assert not res.succes
    assert res.stats.nb_places == 0
    assert "sans place" in res.message


def test_paire_interdite_hors_tables_declarees(quatre_eleves):
    # seule la table (0, 1) est déclarée, mais les colonnes 2 et 3 restent voisines de table
    salle = Salle(1, 4, colonnes_paires=[(0, 1)])
    salle.desactiver_siege(Position(0, 1))
    fixes = [PlacementFixe("c", Position(0, 0))]
    res = SolveurCPSAT(nb_workers=1).resoudre(
        salle, quatre_eleves[:3], [NeDoiventPasEtreEnPaire("a", "b")], fixes=fixes, budget_temps_ms=5_000
    )
    assert res.stats.nb_violations == 0
    assert res.stats.nb_places == 2
