from __future__ import annotations

from typing import Optional, TypeVar

T = TypeVar("T")


class ErreurPlacement(Exception):
    """Classe de base des erreurs levées par le paquet."""


class ErreurEntree(ErreurPlacement, ValueError):
    """Entrée invalide fournie par l'appelant (dimensions, doublons, argument manquant...).

    Hérite de `ValueError` : un appelant qui filtrait déjà les `ValueError`
    continue de fonctionner.
    """


def exiger(valeur: Optional[T], nom: str) -> T:
    """Retourne `valeur`, ou lève `ErreurEntree` si elle vaut `None`."""
    if valeur is None:
        raise ErreurEntree(f"argument obligatoire manquant : {nom}")
    return valeur
