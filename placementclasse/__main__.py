# placementclasse/__main__.py
from __future__ import annotations

import argparse
import json
import logging
import sys

from .config import charger_environnement, configurer_journalisation, options_depuis_dict
from .erreurs import ErreurEntree

logger = logging.getLogger("placementclasse")

CODE_OK = 0
CODE_INCOMPLET = 1
CODE_ENTREE_INVALIDE = 2


def _run_exemple(args: argparse.Namespace) -> int:
    from .exemples import construire_exemple, exporter_exemple

    if args.exporter:
        print(exporter_exemple())
    else:
        construire_exemple()
    return CODE_OK


def _run_resoudre(args: argparse.Namespace) -> int:
    from .chargement import charger_scenario
    from .exemples import afficher_resultat
    from .orchestrateur import placer_eleves

    scenario = charger_scenario(args.fichier)
    brut = dict(scenario.options)
    if args.graine is not None:
        brut["graine"] = args.graine
    if args.budget_ms is not None:
        brut["budget_temps_ms"] = args.budget_ms
    if args.reessais:
        brut["activer_reessais"] = True
        brut["max_reessais"] = args.reessais
    options = options_depuis_dict(brut)

    def progression(tentative: int, total: int) -> None:
        logger.info("tentative %d/%d", tentative, total)

    res = placer_eleves(
        scenario.eleves,
        scenario.salle,
        scenario.contraintes,
        scenario.fixes,
        moteur=args.moteur,
        options=options,
        progression=progression,
    )
    if args.json:
        print(json.dumps(res.en_dict(), ensure_ascii=False, indent=2))
    else:
        afficher_resultat(res, scenario.salle, scenario.eleves)
    return CODE_OK if res.succes else CODE_INCOMPLET


def _run_verifier(args: argparse.Namespace) -> int:
    from .chargement import charger_scenario
    from .orchestrateur import valider_arrangement, verifier_compatibilite_contraintes

    scenario = charger_scenario(args.fichier)
    code = CODE_OK

    compat = verifier_compatibilite_contraintes(scenario.contraintes, scenario.eleves, scenario.salle)
    for conflit in compat.conflits:
        print(f"conflit : {conflit}")
    if not compat.est_valide:
        code = CODE_INCOMPLET

    if scenario.arrangement is not None:
        validation = valider_arrangement(scenario.arrangement, scenario.eleves, scenario.salle, scenario.contraintes)
        for v in validation.violations:
            print(f"violation ({v.type.value}) : {v.message}")
        if not validation.est_valide:
            code = CODE_INCOMPLET

    if code == CODE_OK:
        print("aucun problème détecté")
    return code


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="placementclasse",
        description="Placement des élèves dans une salle de classe sous contraintes."
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v : INFO, -vv : DEBUG")
    sub = parser.add_subparsers(dest="cmd")

    p_ex = sub.add_parser("exemple", help="Exécute le scénario d'exemple.")
    p_ex.add_argument("--exporter", action="store_true", help="Affiche le scénario d'exemple en JSON.")
    p_ex.set_defaults(func=_run_exemple)

    p_res = sub.add_parser("resoudre", help="Place les élèves d'un scénario JSON.")
    p_res.add_argument("fichier")
    p_res.add_argument("--moteur", default="backtracking", help="backtracking, heuristic, adaptive_random, cpsat...")
    p_res.add_argument("--graine", type=int, default=None)
    p_res.add_argument("--reessais", type=int, default=0, metavar="N", help="Active N tentatives au plus.")
    p_res.add_argument("--budget-ms", type=int, default=None)
    p_res.add_argument("--json", action="store_true", help="Sortie JSON du résultat.")
    p_res.set_defaults(func=_run_resoudre)

    p_ver = sub.add_parser("verifier", help="Vérifie les contraintes et l'arrangement d'un scénario.")
    p_ver.add_argument("fichier")
    p_ver.set_defaults(func=_run_verifier)

    args = parser.parse_args(argv)
    charger_environnement()
    configurer_journalisation(args.verbose)

    # défaut: si aucune sous-commande n'est fournie, on lance l'exemple
    if not args.cmd:
        args = parser.parse_args(["exemple"])

    try:
        return args.func(args)
    except (ErreurEntree, ValueError, KeyError, OSError) as exc:
        print(f"erreur : {exc}", file=sys.stderr)
        return CODE_ENTREE_INVALIDE


if __name__ == "__main__":
    raise SystemExit(main())
