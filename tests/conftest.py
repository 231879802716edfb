from __future__ import annotations

from typing import Callable, List

import pytest

from placementclasse.modele.eleve import Eleve, Genre
from placementclasse.modele.salle import Salle


@pytest.fixture
def salle_3x3() -> Salle:
    # une seule table à deux par rang : colonnes (0, 1)
    return Salle(3, 3, nom="3x3")


@pytest.fixture
def quatre_eleves() -> List[Eleve]:
    return [
        Eleve("DUPONT Alice", Genre.FEMININ, identifiant="a"),
        Eleve("MARTIN Bruno", Genre.MASCULIN, identifiant="b"),
        Eleve("DURAND Chloé", Genre.FEMININ, identifiant="c"),
        Eleve("PETIT David", Genre.MASCULIN, identifiant="d"),
    ]


@pytest.fixture
def classe() -> Callable[[int], List[Eleve]]:
    """Fabrique `n` élèves alternant fille/garçon, identifiants e0, e1..."""

    def fabriquer(n: int) -> List[Eleve]:
        return [
            Eleve(f"ELEVE {chr(65 + i)}", Genre.FEMININ if i % 2 == 0 else Genre.MASCULIN, identifiant=f"e{i}")
            for i in range(n)
        ]

    return fabriquer
