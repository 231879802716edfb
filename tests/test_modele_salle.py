from __future__ import annotations

import pytest

from placementclasse.erreurs import ErreurEntree
from placementclasse.modele.eleve import Eleve, Genre
from placementclasse.modele.identifiants import PaletteCouleurs, nouvel_identifiant
from placementclasse.modele.position import Position
from placementclasse.modele.salle import Salle


def test_salle_places_count():
    salle = Salle(4, 6)
    assert len(salle.toutes_les_places()) == 24
    assert salle.colonnes_paires == [(0, 1), (2, 3), (4, 5)]


def test_salle_colonnes_impaires_paires_par_defaut():
    # la dernière colonne d'une grille impaire reste une place isolée
    assert Salle(2, 5).colonnes_paires == [(0, 1), (2, 3)]


@pytest.mark.parametrize("rangs,colonnes", [(0, 3), (11, 3), (3, 0), (3, 11)])
def test_salle_dimensions_hors_bornes(rangs, colonnes):
    with pytest.raises(ErreurEntree):
        Salle(rangs, colonnes)


def test_salle_paire_invalide():
    with pytest.raises(ErreurEntree):
        Salle(2, 4, colonnes_paires=[(1, 2)])
    with pytest.raises(ErreurEntree):
        Salle(2, 4, colonnes_paires=[(4, 5)])


def test_salle_sieges_genres_et_desactives():
    salle = Salle(2, 2)
    salle.definir_genre_siege(Position(0, 0), "F")
    salle.desactiver_siege(Position(1, 1), "pilier")
    assert salle.genre_requis(Position(0, 0)) is Genre.FEMININ
    assert salle.est_desactive(Position(1, 1))
    assert str(salle) == "F .\n. X"

    sans = salle.sans_genres_sieges()
    assert sans.genre_requis(Position(0, 0)) is None
    assert salle.genre_requis(Position(0, 0)) is Genre.FEMININ  # l'original est intact
    assert sans.est_desactive(Position(1, 1))


def test_salle_siege_hors_grille():
    with pytest.raises(ErreurEntree):
        Salle(2, 2).desactiver_siege(Position(2, 0))


def test_rangs_exclus_depuis_le_fond():
    salle = Salle(5, 2)
    assert list(salle.rangs_exclus(2)) == [3, 4]
    assert list(salle.rangs_exclus(9)) == [0, 1, 2, 3, 4]
    assert salle.centre() == (2.0, 0.5)


def test_position_immutable_hashable():
    a = Position(0, 0)
    b = Position(0, 0)
    s = {a}
    assert b in s  # même valeur -> hash/eq
    assert Position.depuis_cle(Position(3, 7).cle()) == Position(3, 7)


def test_position_cle_invalide():
    with pytest.raises(ErreurEntree):
        Position.depuis_cle("3:7")
    with pytest.raises(ErreurEntree):
        Position.depuis_cle("a-b")


def test_eleve_nom_et_genre():
    e = Eleve("DE LA FONTAINE Jean", "garçon", numero=3)
    assert e.nom_famille() == "DE LA FONTAINE"
    assert e.prenom() == "Jean"
    assert e.genre() is Genre.MASCULIN
    assert e.affichage_nom() == "3. DE LA FONTAINE Jean"


def test_eleve_identite_par_identifiant():
    a = Eleve("DUPONT Alice", "F", identifiant="x")
    b = Eleve("DURAND Alice", "F", identifiant="x")
    assert a == b and hash(a) == hash(b)
    assert Eleve("DUPONT Alice", "F") != Eleve("DUPONT Alice", "F")


def test_eleve_entrees_invalides():
    with pytest.raises(ErreurEntree):
        Eleve("   ", "F")
    with pytest.raises(ErreurEntree):
        Eleve("DUPONT A", "autre")


def test_identifiants_jamais_reutilises():
    ids = {nouvel_identifiant("e") for _ in range(200)}
    assert len(ids) == 200
    assert all(i.startswith("e") for i in ids)


def test_palette_couleurs_cyclique():
    palette = PaletteCouleurs(["#111", "#222"])
    assert [palette.suivante() for _ in range(3)] == ["#111", "#222", "#111"]
    palette.reinitialiser()
    assert palette.suivante() == "#111"
