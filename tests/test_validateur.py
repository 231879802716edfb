from __future__ import annotations

from placementclasse.contraintes.binaires import DoiventEtreEloignes, DoiventEtreEnPaire, NeDoiventPasEtreEnPaire
from placementclasse.contraintes.types import TypeViolation
from placementclasse.contraintes.unaires import DoitEviterDernieresRangees
from placementclasse.contraintes.validateur import MESSAGE_ELEVE_INEXISTANT, valider_tout, verifier_compatibilite
from placementclasse.modele.eleve import Genre
from placementclasse.modele.position import Position
from placementclasse.modele.salle import Salle


def test_arrangement_valide(quatre_eleves, salle_3x3):
    arrangement = {Position(0, 0): "a", Position(0, 1): "b", Position(2, 2): "c"}
    res = valider_tout(arrangement, quatre_eleves, salle_3x3, [DoiventEtreEnPaire("a", "b")])
    assert res.est_valide
    assert res.violations == []


def test_paire_requise_un_seul_eleve_place(quatre_eleves, salle_3x3):
    # une seule violation, qui nomme les deux élèves
    res = valider_tout({Position(0, 0): "a"}, quatre_eleves, salle_3x3, [DoiventEtreEnPaire("a", "b")])
    assert len(res.violations) == 1
    v = res.violations[0]
    assert v.type is TypeViolation.PAIRE_REQUISE
    assert v.eleves == ("a", "b")
    assert "DUPONT Alice" in v.message and "MARTIN Bruno" in v.message
    assert "n'est pas placé" in v.message


def test_paire_requise_aucun_eleve_place(quatre_eleves, salle_3x3):
    res = valider_tout({}, quatre_eleves, salle_3x3, [DoiventEtreEnPaire("a", "b")])
    assert len(res.violations) == 1
    assert "ne sont pas placés" in res.violations[0].message


def test_chaque_famille_de_violation(quatre_eleves):
    salle = Salle(3, 4)
    salle.definir_genre_siege(Position(0, 3), Genre.FEMININ)
    salle.desactiver_siege(Position(1, 0))
    arrangement = {
        Position(0, 0): "a",
        Position(0, 1): "c",  # a et c en binôme interdit
        Position(0, 3): "b",  # garçon sur un siège réservé aux filles
        Position(1, 0): "d",  # siège désactivé
    }
    contraintes = [
        NeDoiventPasEtreEnPaire("a", "c"),
        DoiventEtreEloignes("a", "d", 2),
        DoitEviterDernieresRangees("d", 2),
    ]
    res = valider_tout(arrangement, quatre_eleves, salle, contraintes)
    types = sorted(v.type.value for v in res.violations)
    assert types == ["disabled_seat", "distance", "gender", "pair_prohibited", "row_exclusion"]
    assert not res.est_valide


def test_contrainte_eleve_inexistant(quatre_eleves, salle_3x3):
    res = valider_tout({}, quatre_eleves, salle_3x3, [DoiventEtreEloignes("a", "fantome", 2)])
    assert len(res.violations) == 1
    assert MESSAGE_ELEVE_INEXISTANT in res.violations[0].message
    assert "fantome" in res.violations[0].message


def test_validation_en_lecture_seule(quatre_eleves, salle_3x3):
    arrangement = {Position(0, 0): "a", Position(1, 1): "b"}
    copie = dict(arrangement)
    valider_tout(arrangement, quatre_eleves, salle_3x3, [DoiventEtreEnPaire("a", "b")])
    assert arrangement == copie


def test_compatibilite_requis_et_interdit(quatre_eleves, salle_3x3):
    res = verifier_compatibilite(
        [DoiventEtreEnPaire("a", "b"), NeDoiventPasEtreEnPaire("b", "a")], quatre_eleves, salle_3x3
    )
    assert not res.est_valide
    assert any("à la fois requis et interdits" in c for c in res.conflits)


def test_compatibilite_meme_genre_sans_table(quatre_eleves):
    salle = Salle(1, 2)
    salle.definir_genre_siege(Position(0, 0), Genre.FEMININ)
    salle.definir_genre_siege(Position(0, 1), Genre.MASCULIN)
    res = verifier_compatibilite([DoiventEtreEnPaire("a", "c")], quatre_eleves, salle)
    assert not res.est_valide
    assert "genre" in res.conflits[0]
    # fille/garçon : la table convient
    assert verifier_compatibilite([DoiventEtreEnPaire("a", "b")], quatre_eleves, salle).est_valide


def test_compatibilite_paire_et_distance(quatre_eleves, salle_3x3):
    res = verifier_compatibilite(
        [DoiventEtreEnPaire("a", "b"), DoiventEtreEloignes("a", "b", 2)], quatre_eleves, salle_3x3
    )
    assert len(res.conflits) == 1
    assert "au moins 2 places" in res.conflits[0]
    # distance 1 : toujours compatible avec une table à deux
    res = verifier_compatibilite(
        [DoiventEtreEnPaire("a", "b"), DoiventEtreEloignes("a", "b", 1)], quatre_eleves, salle_3x3
    )
    assert res.est_valide
