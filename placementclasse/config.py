"""Options de placement et configuration de la journalisation.

Les options arrivent souvent sous forme de dict « lâche » (JSON d'un scénario,
arguments de la ligne de commande) : `options_depuis_dict` les normalise,
accepte les clés camelCase comme snake_case, et pose les défauts.
"""
from __future__ import annotations

import logging.config
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

from .erreurs import ErreurEntree
from .solveurs.heuristique import PoidsHeuristiques

ENV_BUDGET_MS = "PLACEMENTCLASSE_BUDGET_MS"
# budget partagé par les tentatives successives quand aucun budget n'est fixé
BUDGET_REESSAIS_PAR_DEFAUT_MS = 30_000
ENV_NIVEAU_LOG = "PLACEMENTCLASSE_LOG_LEVEL"

_NIVEAUX = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def charger_environnement(chemin: Optional[str | Path] = None) -> bool:
    """Charge un fichier `.env` (par défaut celui du répertoire courant) dans l'environnement.

    Les variables déjà définies ne sont pas écrasées. Retourne `False` si
    aucune variable n'a été chargée (fichier absent ou vide).
    """
    return load_dotenv(Path(chemin) if chemin is not None else Path.cwd() / ".env")


def _niveau(env_name: str, default: str = "WARNING") -> str:
    val = os.getenv(env_name, default).upper()
    return val if val in _NIVEAUX else default


def budget_par_defaut() -> Optional[int]:
    """Budget (ms) lu dans l'environnement, ou `None` pour laisser chaque moteur décider."""
    brut = os.getenv(ENV_BUDGET_MS)
    if not brut:
        return None
    try:
        return int(brut)
    except ValueError as exc:
        raise ErreurEntree(f"{ENV_BUDGET_MS} doit être un entier, reçu {brut!r}") from exc


@dataclass
class OptionsPlacement:
    """Réglages transmis à l'orchestrateur et aux moteurs.

    `None` signifie « valeur par défaut du moteur ».
    """

    budget_temps_ms: Optional[int] = None
    profondeur_max: Optional[int] = None
    tentatives_max: Optional[int] = None
    graine: Optional[int] = None
    preset_aleatoire: str = "balanced"
    surcharges_aleatoire: Dict[str, Any] = field(default_factory=dict)
    nb_candidats: int = 1
    poids_heuristiques: Optional[PoidsHeuristiques] = None
    activer_reessais: bool = False
    max_reessais: int = 10
    nb_paires: Optional[int] = None


# clé normalisée -> alias acceptés dans un dict d'options
_ALIAS: Dict[str, tuple[str, ...]] = {
    "budget_temps_ms": ("budget_temps_ms", "timeBudgetMs", "time_budget_ms", "timeLimit"),
    "profondeur_max": ("profondeur_max", "maxDepth", "max_depth"),
    "tentatives_max": ("tentatives_max", "maxAttempts", "max_attempts"),
    "graine": ("graine", "seed", "random_seed"),
    "preset_aleatoire": ("preset_aleatoire", "preset"),
    "surcharges_aleatoire": ("surcharges_aleatoire", "customConfig", "custom_config"),
    "nb_candidats": ("nb_candidats", "generateMultiple", "generate_multiple"),
    "poids_heuristiques": ("poids_heuristiques", "heuristicWeights", "heuristic_weights"),
    "activer_reessais": ("activer_reessais", "enableRetry", "enable_retry"),
    "max_reessais": ("max_reessais", "maxRetries", "max_retries"),
    "nb_paires": ("nb_paires", "pairCount", "pair_count"),
}

_ALIAS_ALEA: Dict[str, str] = {
    "mode": "mode",
    "studentSelectionRandomness": "alea_eleve",
    "seatSelectionRandomness": "alea_siege",
    "constraintFlexibility": "flexibilite",
    "diversityBoost": "diversite",
    "explorationProbability": "exploration",
}

_ALIAS_POIDS: Dict[str, str] = {
    "mrv": "mrv",
    "degree": "degre",
    "criticality": "criticite",
    "flexibility": "flexibilite",
}


def _premiere(raw: Mapping[str, Any], cle: str) -> Any:
    for alias in _ALIAS[cle]:
        if alias in raw and raw[alias] is not None:
            return raw[alias]
    return None


def _entier(valeur: Any, nom: str) -> Optional[int]:
    if valeur is None:
        return None
    try:
        return int(valeur)
    except (TypeError, ValueError) as exc:
        raise ErreurEntree(f"option {nom!r} : entier attendu, reçu {valeur!r}") from exc


def options_depuis_dict(raw: Optional[Mapping[str, Any]] = None) -> OptionsPlacement:
    """
    Normalise les options et pose les défauts.

    Champs reconnus (tous facultatifs) :
      - timeBudgetMs / budget_temps_ms : int (défaut : $PLACEMENTCLASSE_BUDGET_MS)
      - maxDepth, maxAttempts : int
      - seed / graine : int | null
      - preset : "subtle" | "balanced" | "creative" | "wild"
      - customConfig : dict (clés camelCase du moteur aléatoire ou noms français)
      - generateMultiple : int
      - heuristicWeights : {mrv, degree, criticality, flexibility}
      - enableRetry : bool, maxRetries : int
      - pairCount : int (passe mixte)
    """
    o: Mapping[str, Any] = raw or {}

    budget = _entier(_premiere(o, "budget_temps_ms"), "budget_temps_ms")
    if budget is None:
        budget = budget_par_defaut()

    surcharges: Dict[str, Any] = {}
    for cle, valeur in dict(_premiere(o, "surcharges_aleatoire") or {}).items():
        surcharges[_ALIAS_ALEA.get(cle, cle)] = valeur

    poids: Optional[PoidsHeuristiques] = None
    poids_bruts = _premiere(o, "poids_heuristiques")
    if poids_bruts:
        try:
            poids = PoidsHeuristiques(**{_ALIAS_POIDS.get(k, k): float(v) for k, v in dict(poids_bruts).items()})
        except TypeError as exc:
            raise ErreurEntree(f"poids heuristiques invalides : {poids_bruts!r}") from exc

    max_reessais = _entier(_premiere(o, "max_reessais"), "max_reessais")
    nb_candidats = _entier(_premiere(o, "nb_candidats"), "nb_candidats")

    return OptionsPlacement(
        budget_temps_ms=budget,
        profondeur_max=_entier(_premiere(o, "profondeur_max"), "profondeur_max"),
        tentatives_max=_entier(_premiere(o, "tentatives_max"), "tentatives_max"),
        graine=_entier(_premiere(o, "graine"), "graine"),
        preset_aleatoire=str(_premiere(o, "preset_aleatoire") or "balanced").lower().strip(),
        surcharges_aleatoire=surcharges,
        nb_candidats=max(1, nb_candidats or 1),
        poids_heuristiques=poids,
        activer_reessais=bool(_premiere(o, "activer_reessais") or False),
        max_reessais=10 if max_reessais is None else max(1, max_reessais),
        nb_paires=_entier(_premiere(o, "nb_paires"), "nb_paires"),
    )


def configuration_journalisation(verbosite: int = 0) -> Dict[str, Any]:
    """Dictionnaire `logging.config.dictConfig` de la ligne de commande.

    Niveau : $PLACEMENTCLASSE_LOG_LEVEL (WARNING par défaut), relevé à INFO
    par `-v` et à DEBUG par `-vv`.
    """
    niveau = _niveau(ENV_NIVEAU_LOG, "WARNING")
    if verbosite >= 2:
        niveau = "DEBUG"
    elif verbosite == 1 and niveau not in {"DEBUG", "INFO"}:
        niveau = "INFO"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {
                "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S%z",
            },
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "formatter": "console"},
        },
        "root": {
            "handlers": ["console"],
            "level": niveau,
        },
    }


def configurer_journalisation(verbosite: int = 0) -> None:
    logging.config.dictConfig(configuration_journalisation(verbosite))
