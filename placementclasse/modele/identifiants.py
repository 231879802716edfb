from __future__ import annotations

import secrets
import time
from typing import List, Optional, Sequence

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"

COULEURS_PAR_DEFAUT: Sequence[str] = (
    "#3b82f6",
    "#ef4444",
    "#10b981",
    "#f59e0b",
    "#8b5cf6",
    "#ec4899",
    "#06b6d4",
    "#84cc16",
)


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    chiffres: List[str] = []
    while n:
        n, r = divmod(n, 36)
        chiffres.append(_ALPHABET[r])
    return "".join(reversed(chiffres))


def nouvel_identifiant(prefixe: str = "") -> str:
    """Génère un identifiant unique : horodatage (ms) puis suffixe aléatoire, en base 36."""
    horodatage: str = _base36(int(time.time() * 1000))
    suffixe: str = "".join(secrets.choice(_ALPHABET) for _ in range(8))
    return f"{prefixe}{horodatage}{suffixe}"


class PaletteCouleurs:
    """Distribue des couleurs d'affichage aux contraintes de paire, en boucle.

    L'objet appartient à l'appelant : deux palettes distinctes ne partagent
    aucun état.
    """

    def __init__(self, couleurs: Optional[Sequence[str]] = None) -> None:
        self._couleurs: List[str] = list(couleurs or COULEURS_PAR_DEFAUT)
        if not self._couleurs:
            raise ValueError("une palette doit contenir au moins une couleur")
        self._indice: int = 0

    def suivante(self) -> str:
        """Retourne la prochaine couleur de la palette."""
        couleur = self._couleurs[self._indice % len(self._couleurs)]
        self._indice += 1
        return couleur

    def reinitialiser(self) -> None:
        self._indice = 0
