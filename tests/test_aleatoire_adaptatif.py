from __future__ import annotations

import time

import pytest

from placementclasse.contraintes.base import est_position_paire
from placementclasse.contraintes.binaires import DoiventEtreEloignes, NeDoiventPasEtreEnPaire
from placementclasse.contraintes.unaires import DoitEviterDernieresRangees
from placementclasse.erreurs import ErreurEntree
from placementclasse.modele.placement import PlacementFixe, index_par_eleve
from placementclasse.modele.position import Position
from placementclasse.modele.salle import Salle
from placementclasse.solveurs.aleatoire_adaptatif import (
    PHASES,
    PRESETS,
    ConfigAleatoire,
    GenerateurLCG,
    ModeAleatoire,
    SolveurAleatoireAdaptatif,
)


def test_lcg_reproductible():
    g1, g2 = GenerateurLCG(12345), GenerateurLCG(12345)
    suite = [g1.suivant() for _ in range(50)]
    assert suite == [g2.suivant() for _ in range(50)]
    assert all(0.0 <= x < 1.0 for x in suite)
    assert GenerateurLCG(0).etat == 1
    assert all(0 <= GenerateurLCG(7).indice(3) < 3 for _ in range(10))


def test_presets():
    assert set(PRESETS) == {"subtle", "balanced", "creative", "wild"}
    assert PRESETS["wild"].mode is ModeAleatoire.CHAOS
    assert PRESETS["subtle"].alea_eleve == 15
    assert [f for _, f in PHASES] == [0.2, 0.4, 0.6, 0.8]


def test_config_surcharges():
    config = ConfigAleatoire.depuis_preset("creative", {"diversite": 90, "mode": "conservative"})
    assert config.diversite == 90
    assert config.mode is ModeAleatoire.CONSERVATEUR
    assert PRESETS["creative"].diversite == 60  # preset intact
    with pytest.raises(ErreurEntree):
        ConfigAleatoire.depuis_preset("inconnu")
    with pytest.raises(ErreurEntree):
        PRESETS["balanced"].surcharger(temperature=3)


def test_tous_places_sans_contrainte(classe):
    eleves = classe(10)
    res = SolveurAleatoireAdaptatif(graine=11).resoudre(Salle(3, 4), eleves, [])
    assert res.succes
    assert len(set(res.arrangement.values())) == 10
    assert res.message.startswith("Placement aléatoire (balanced) : 10/10 élèves placés")


def test_meme_graine_meme_placement(classe):
    eleves = classe(8)
    contraintes = [NeDoiventPasEtreEnPaire("e0", "e1"), DoiventEtreEloignes("e2", "e3", 2)]
    r1 = SolveurAleatoireAdaptatif(PRESETS["creative"], graine=99).resoudre(Salle(4, 4), eleves, contraintes)
    r2 = SolveurAleatoireAdaptatif(PRESETS["creative"], graine=99).resoudre(Salle(4, 4), eleves, contraintes)
    assert r1.arrangement == r2.arrangement


def test_contraintes_dures_respectees(classe):
    eleves = classe(6)
    contraintes = [NeDoiventPasEtreEnPaire("e0", "e1"), DoitEviterDernieresRangees("e2", 2)]
    for graine in range(1, 6):
        res = SolveurAleatoireAdaptatif(graine=graine).resoudre(Salle(4, 4), eleves, contraintes)
        pos = index_par_eleve(res.arrangement)
        assert pos["e2"].rang < 2
        assert not est_position_paire(pos["e0"], pos["e1"])


def test_placements_fixes_et_analyse(classe):
    eleves = classe(6)
    fixes = [PlacementFixe("e5", Position(0, 0))]
    moteur = SolveurAleatoireAdaptatif(graine=5)
    res = moteur.resoudre(Salle(3, 4), eleves, [], fixes=fixes)
    assert res.arrangement[Position(0, 0)] == "e5"
    assert "dont 1 fixé(s)" in res.message

    analyse = moteur.analyse()
    assert analyse.nb_decisions == 5  # élève fixé exclu du journal
    assert sum(analyse.decisions_par_phase.values()) == 5
    assert 0.0 <= analyse.confiance_moyenne <= 100.0
    assert all(d.identifiant_eleve != "e5" for d in moteur.historique)


def test_generer_plusieurs(classe):
    eleves = classe(8)
    moteur = SolveurAleatoireAdaptatif(PRESETS["wild"], graine=3)
    res = moteur.generer_plusieurs(4, Salle(3, 4), eleves, [NeDoiventPasEtreEnPaire("e0", "e1")])
    assert "(candidat " in res.message
    assert res.message.endswith("meilleur candidat retenu")
    assert res.stats.nb_places == 8
    assert moteur.analyse().nb_decisions == 8


class _AleatoireLent(SolveurAleatoireAdaptatif):
    """Candidat ralenti de 100 ms qui note le budget reçu."""

    def __init__(self, budgets, graine=None):
        super().__init__(PRESETS["balanced"], graine=graine)
        self.budgets = budgets

    def avec_graine(self, graine):
        return _AleatoireLent(self.budgets, graine=graine)

    def resoudre(self, salle, eleves, contraintes, *, fixes=(), budget_temps_ms=None):
        self.budgets.append(budget_temps_ms)
        time.sleep(0.1)
        return super().resoudre(salle, eleves, contraintes, fixes=fixes, budget_temps_ms=budget_temps_ms)


def test_generer_plusieurs_budget_partage(classe):
    budgets = []
    res = _AleatoireLent(budgets, graine=5).generer_plusieurs(10, Salle(3, 4), classe(6), [], budget_temps_ms=250)
    assert 1 <= len(budgets) < 10
    assert budgets[0] <= 250
    assert budgets == sorted(budgets, reverse=True)
    assert res.message.endswith("meilleur candidat retenu")
