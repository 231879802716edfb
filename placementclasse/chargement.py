"""Lecture et écriture des scénarios JSON de la ligne de commande.

Format (clés anglaises, positions en « rang-colonne ») ::

    {
      "students": [{"id": "s1", "name": "DUPONT Léa", "gender": "female", "number": 1}],
      "classroom": {
        "rows": 4, "cols": 6, "name": "B12",
        "pairColumns": [[0, 1], [2, 3], [4, 5]],
        "seatGenderConstraints": {"0-0": "female"},
        "seatUsageConstraints": {"3-5": {"disabled": true, "reason": "pilier"}}
      },
      "constraints": [{"type": "pair_required", "a": "s1", "b": "s2"}],
      "fixedPlacements": [{"studentId": "s1", "position": "0-0", "reason": "vue"}],
      "seating": {"0-0": "s1"},
      "options": {"seed": 42}
    }
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .contraintes import enregistrement  # noqa: F401  (enregistre les fabriques)
from .contraintes.ensemble import JeuContraintes
from .contraintes.registre import ContexteFabrique, contrainte_depuis_code
from .erreurs import ErreurEntree
from .modele.eleve import Eleve, Genre
from .modele.placement import Arrangement, PlacementFixe, arrangement_depuis_cles, arrangement_en_cles
from .modele.position import Position
from .modele.salle import ContrainteUsage, Salle


@dataclass
class Scenario:
    eleves: List[Eleve]
    salle: Salle
    contraintes: JeuContraintes
    fixes: List[PlacementFixe] = field(default_factory=list)
    arrangement: Optional[Arrangement] = None
    options: Dict[str, Any] = field(default_factory=dict)


def _champ(d: Mapping[str, Any], cle: str, ou: str) -> Any:
    if cle not in d:
        raise ErreurEntree(f"champ {cle!r} manquant dans {ou}")
    return d[cle]


def _eleves_depuis(donnees: Any) -> List[Eleve]:
    if not isinstance(donnees, list):
        raise ErreurEntree("« students » doit être une liste")
    eleves: List[Eleve] = []
    for i, d in enumerate(donnees):
        numero = d.get("number")
        eleves.append(
            Eleve(
                nom=_champ(d, "name", f"students[{i}]"),
                genre=_champ(d, "gender", f"students[{i}]"),
                identifiant=str(d["id"]) if d.get("id") is not None else None,
                numero=int(numero) if numero is not None else None,
            )
        )
    return eleves


def _salle_depuis(d: Mapping[str, Any]) -> Salle:
    genres = {Position.depuis_cle(k): v for k, v in (d.get("seatGenderConstraints") or {}).items()}
    usages = {}
    for cle, u in (d.get("seatUsageConstraints") or {}).items():
        if isinstance(u, Mapping):
            if not u.get("disabled", True):
                continue
            usages[Position.depuis_cle(cle)] = ContrainteUsage(True, u.get("reason"))
        elif u:
            usages[Position.depuis_cle(cle)] = ContrainteUsage(True, None)
    paires = d.get("pairColumns")
    return Salle(
        int(_champ(d, "rows", "classroom")),
        int(_champ(d, "cols", "classroom")),
        nom=str(d.get("name", "")),
        colonnes_paires=[tuple(p) for p in paires] if paires is not None else None,
        genres_sieges={p: _genre(g) for p, g in genres.items()},
        usages_sieges=usages,
    )


def _genre(valeur: Any) -> Genre:
    return Genre.depuis_texte(str(valeur))


def scenario_depuis_dict(data: Mapping[str, Any]) -> Scenario:
    """Construit un `Scenario` ; lève `ErreurEntree` (ou `ValueError`/`KeyError` du registre) si invalide."""
    eleves = _eleves_depuis(data.get("students", []))
    salle = _salle_depuis(_champ(data, "classroom", "le scénario"))

    contexte = ContexteFabrique(salle, {e.identifiant(): e for e in eleves})
    jeu = JeuContraintes.depuis(contrainte_depuis_code(c, contexte) for c in data.get("constraints", []))

    fixes = [
        PlacementFixe(
            identifiant_eleve=contexte.identifiant(_champ(f, "studentId", "fixedPlacements")),
            position=Position.depuis_cle(str(_champ(f, "position", "fixedPlacements"))),
            raison=f.get("reason"),
        )
        for f in data.get("fixedPlacements", [])
    ]
    seating = data.get("seating")
    arrangement = arrangement_depuis_cles(seating) if seating is not None else None
    return Scenario(eleves, salle, jeu, fixes, arrangement, dict(data.get("options") or {}))


def charger_scenario(chemin: str | Path) -> Scenario:
    try:
        data = json.loads(Path(chemin).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ErreurEntree(f"{chemin} : JSON invalide ({exc})") from exc
    if not isinstance(data, dict):
        raise ErreurEntree(f"{chemin} : un objet JSON est attendu")
    return scenario_depuis_dict(data)


def scenario_en_dict(scenario: Scenario) -> Dict[str, Any]:
    salle = scenario.salle
    d: Dict[str, Any] = {
        "students": [
            {
                "id": e.identifiant(),
                "name": e.nom(),
                "gender": e.genre().value,
                **({"number": e.numero()} if e.numero() is not None else {}),
            }
            for e in scenario.eleves
        ],
        "classroom": {
            "rows": salle.rangs,
            "cols": salle.colonnes,
            "name": salle.nom,
            "pairColumns": [list(p) for p in salle.colonnes_paires],
            "seatGenderConstraints": {p.cle(): g.value for p, g in sorted(salle.genres_sieges().items())},
            "seatUsageConstraints": {
                p.cle(): {"disabled": u.desactive, **({"reason": u.raison} if u.raison else {})}
                for p, u in sorted(salle.usages_sieges().items())
            },
        },
        "constraints": [c.code_machine() for c in scenario.contraintes],
        "fixedPlacements": [
            {
                "studentId": f.identifiant_eleve,
                "position": f.position.cle(),
                **({"reason": f.raison} if f.raison else {}),
            }
            for f in scenario.fixes
        ],
    }
    if scenario.arrangement is not None:
        d["seating"] = arrangement_en_cles(scenario.arrangement)
    if scenario.options:
        d["options"] = dict(scenario.options)
    return d
