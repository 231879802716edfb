from __future__ import annotations

import pytest

# Import des fabriques : side-effect d'enregistrement
from placementclasse.contraintes.enregistrement import *  # noqa: F403,F401
from placementclasse.contraintes.binaires import DoiventEtreEloignes, DoiventEtreEnPaire, NeDoiventPasEtreEnPaire
from placementclasse.contraintes.registre import ContexteFabrique, contrainte_depuis_code, fabrique_de
from placementclasse.contraintes.types import TypeContrainte
from placementclasse.contraintes.unaires import DoitEviterDernieresRangees
from placementclasse.modele.eleve import Eleve
from placementclasse.modele.salle import Salle


def _contexte():
    salle = Salle(4, 6)
    eleves = [Eleve("DUPONT Alice", "F", identifiant="a"), Eleve("MARTIN Bruno", "M", identifiant="b")]
    return ContexteFabrique(salle, {e.identifiant(): e for e in eleves})


def test_toutes_les_fabriques_sont_enregistrees():
    for type_c in TypeContrainte:
        assert fabrique_de(type_c) is not None


def test_roundtrip_code_machine():
    ctx = _contexte()
    originales = [
        DoiventEtreEnPaire("a", "b", couleur="#3b82f6"),
        NeDoiventPasEtreEnPaire("a", "b"),
        DoiventEtreEloignes("a", "b", 3),
        DoitEviterDernieresRangees("a", 2),
    ]
    for c in originales:
        code = c.code_machine()
        c2 = contrainte_depuis_code(code, ctx)
        assert type(c2) is type(c)
        assert c2.code_machine() == code  # même identifiant, même date


def test_reference_par_nom_ou_inconnue():
    ctx = _contexte()
    c = contrainte_depuis_code({"type": "pair_prohibited", "a": "DUPONT Alice", "b": "b"}, ctx)
    assert (c.a, c.b) == ("a", "b")
    # une référence inconnue est conservée telle quelle
    c = contrainte_depuis_code({"type": "row_exclusion", "student": "fantome", "k": 1}, ctx)
    assert c.eleve == "fantome"


def test_alias_distance():
    c = contrainte_depuis_code({"type": "distance", "a": "a", "b": "b", "d": 2}, _contexte())
    assert c.distance_min == 2


def test_type_inconnu():
    with pytest.raises(ValueError):
        contrainte_depuis_code({"type": "table_vide"}, _contexte())
