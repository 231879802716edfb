from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional

from ..erreurs import ErreurEntree
from .position import Position

# Arrangement : position -> identifiant d'élève (creux : seuls les sièges occupés figurent)
Arrangement = Dict[Position, str]


def _maintenant() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PlacementFixe:
    """Élève épinglé à un siège avant la recherche ; les moteurs ne le déplacent jamais."""

    identifiant_eleve: str
    position: Position
    horodatage: datetime = field(default_factory=_maintenant)
    raison: Optional[str] = None


def index_par_eleve(arrangement: Mapping[Position, str]) -> Dict[str, Position]:
    """Construit l'index inverse identifiant -> position."""
    return {ident: pos for pos, ident in arrangement.items()}


def verifier_arrangement(arrangement: Mapping[Position, str]) -> None:
    """Vérifie qu'aucun élève n'occupe deux sièges.

    Lève `ErreurEntree` en cas de doublon (un dict garantit déjà l'unicité des sièges).
    """
    vus: Dict[str, Position] = {}
    for pos, ident in arrangement.items():
        if ident in vus:
            raise ErreurEntree(f"l'élève {ident!r} occupe deux sièges : {vus[ident]} et {pos}")
        vus[ident] = pos


def arrangement_en_cles(arrangement: Mapping[Position, str]) -> Dict[str, str]:
    """Sérialise un arrangement avec des clés « rang-colonne »."""
    return {pos.cle(): ident for pos, ident in sorted(arrangement.items())}


def arrangement_depuis_cles(donnees: Mapping[str, str]) -> Arrangement:
    """Reconstruit un arrangement depuis des clés « rang-colonne » et le vérifie."""
    arrangement: Arrangement = {Position.depuis_cle(cle): str(ident) for cle, ident in donnees.items()}
    verifier_arrangement(arrangement)
    return arrangement
