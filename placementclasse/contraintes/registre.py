from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional

from .types import TypeContrainte
from .base import Contrainte
from ..modele.eleve import Eleve
from ..modele.salle import Salle

FabriqueContrainte = Callable[[Mapping[str, Any], "ContexteFabrique"], Contrainte]


class ContexteFabrique:
    """Contexte nécessaire pour reconstruire une contrainte à partir d'un dict.

    Attributs
    ---------
    salle : Salle
        Salle visée par la reconstruction.
    eleves_par_id : Mapping[str, Eleve]
        Élèves connus, indexés par identifiant.

    Une référence d'élève peut être un identifiant ou un nom affiché. Une
    référence inconnue est conservée telle quelle : le validateur la
    signalera comme élève inexistant.
    """

    def __init__(self, salle: Salle, eleves_par_id: Mapping[str, Eleve]) -> None:
        self.salle: Salle = salle
        self.eleves_par_id: Mapping[str, Eleve] = eleves_par_id
        self._ids_par_nom: Dict[str, str] = {e.nom(): i for i, e in eleves_par_id.items()}

    def identifiant(self, reference: Any) -> str:
        ref = str(reference)
        if ref in self.eleves_par_id:
            return ref
        return self._ids_par_nom.get(ref, ref)


def entete_depuis_code(code: Mapping[str, Any]) -> Dict[str, Any]:
    """Arguments communs (`identifiant`, `cree_le`) lus dans un « code_machine »."""
    cree_le: Optional[datetime] = None
    if code.get("createdAt"):
        cree_le = datetime.fromisoformat(str(code["createdAt"]))
    return {"identifiant": code.get("id") or None, "cree_le": cree_le}


_REGISTRE: Dict[TypeContrainte, FabriqueContrainte] = {}


def enregistrer(type_c: TypeContrainte):
    """Décorateur enregistrant une fabrique pour un `TypeContrainte`."""

    def deco(fabrique: FabriqueContrainte) -> FabriqueContrainte:
        _REGISTRE[type_c] = fabrique
        return fabrique

    return deco


def fabrique_de(type_c: TypeContrainte) -> Optional[FabriqueContrainte]:
    """Retourne la fabrique enregistrée pour `type_c`, ou `None` si absente."""
    return _REGISTRE.get(type_c)


def contrainte_depuis_code(code: Mapping[str, Any], contexte: ContexteFabrique) -> Contrainte:
    """Reconstitue une contrainte à partir d'un dictionnaire « code_machine ».

    Lève `ValueError` si le type est inconnu, `KeyError` si aucune fabrique
    n'est enregistrée pour ce type.
    """
    type_valeur: str = str(code.get("type", ""))
    try:
        type_c: TypeContrainte = TypeContrainte(type_valeur)
    except ValueError as exc:
        raise ValueError(f"Type de contrainte inconnu: {type_valeur!r}") from exc

    fab: Optional[FabriqueContrainte] = _REGISTRE.get(type_c)
    if fab is None:
        raise KeyError(f"Aucune fabrique enregistrée pour le type {type_c}")
    return fab(code, contexte)
