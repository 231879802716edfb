from __future__ import annotations

from typing import Any, Mapping

from .types import TypeContrainte
from .registre import enregistrer, entete_depuis_code, ContexteFabrique
from .unaires import DoitEviterDernieresRangees
from .binaires import (
    DoiventEtreEloignes,
    DoiventEtreEnPaire,
    NeDoiventPasEtreEnPaire,
)


@enregistrer(TypeContrainte.PAIRE_REQUISE)
def _fab_paire_requise(code: Mapping[str, Any], ctx: ContexteFabrique):
    return DoiventEtreEnPaire(
        a=ctx.identifiant(code["a"]),
        b=ctx.identifiant(code["b"]),
        couleur=code.get("color"),
        **entete_depuis_code(code),
    )


@enregistrer(TypeContrainte.PAIRE_INTERDITE)
def _fab_paire_interdite(code: Mapping[str, Any], ctx: ContexteFabrique):
    return NeDoiventPasEtreEnPaire(
        a=ctx.identifiant(code["a"]),
        b=ctx.identifiant(code["b"]),
        couleur=code.get("color"),
        **entete_depuis_code(code),
    )


@enregistrer(TypeContrainte.DISTANCE)
def _fab_distance(code: Mapping[str, Any], ctx: ContexteFabrique):
    """
    Construit une contrainte d'éloignement (Chebyshev).

    Champs :
      - a, b : identifiants ou noms
      - minDistance : int (>=1) ; `d` accepté comme alias
    """
    d = code["minDistance"] if "minDistance" in code else code["d"]
    return DoiventEtreEloignes(
        a=ctx.identifiant(code["a"]),
        b=ctx.identifiant(code["b"]),
        distance_min=int(d),
        **entete_depuis_code(code),
    )


@enregistrer(TypeContrainte.EXCLUSION_RANGEES)
def _fab_exclusion_rangees(code: Mapping[str, Any], ctx: ContexteFabrique):
    nb = code["excludedRowsFromBack"] if "excludedRowsFromBack" in code else code["k"]
    return DoitEviterDernieresRangees(
        eleve=ctx.identifiant(code["student"]),
        nb_rangees=int(nb),
        **entete_depuis_code(code),
    )
