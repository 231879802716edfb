from __future__ import annotations

import json
from typing import List, Mapping, Sequence

from .chargement import Scenario, scenario_en_dict
from .contraintes.binaires import DoiventEtreEloignes, DoiventEtreEnPaire, NeDoiventPasEtreEnPaire
from .contraintes.ensemble import JeuContraintes
from .contraintes.registre import ContexteFabrique, contrainte_depuis_code
from .contraintes.unaires import DoitEviterDernieresRangees
from .modele.eleve import Eleve, Genre
from .modele.identifiants import PaletteCouleurs
from .modele.placement import PlacementFixe
from .modele.position import Position
from .modele.resultat import ResultatPlacement
from .modele.salle import Salle
from .orchestrateur import placer_eleves, verifier_compatibilite_contraintes
from .config import OptionsPlacement


def scenario_exemple() -> Scenario:
    """
    Salle de 5 rangs × 6 colonnes (trois tables à deux par rang), 20 élèves
    et un jeu de contraintes varié.
    """
    salle = Salle(5, 6, nom="Salle d'exemple")
    salle.definir_genre_siege(Position(0, 0), Genre.FEMININ)
    salle.definir_genre_siege(Position(0, 1), Genre.MASCULIN)
    salle.desactiver_siege(Position(4, 5), "pilier")

    eleves: List[Eleve] = [
        Eleve(nom=f"DUPONT {chr(65 + i)}", genre=Genre.FEMININ if i % 2 == 0 else Genre.MASCULIN,
              identifiant=f"e{i:02d}", numero=i + 1)
        for i in range(20)
    ]

    palette = PaletteCouleurs()
    contraintes = JeuContraintes.depuis([
        DoiventEtreEnPaire(eleves[0].identifiant(), eleves[1].identifiant(), couleur=palette.suivante()),
        NeDoiventPasEtreEnPaire(eleves[2].identifiant(), eleves[3].identifiant(), couleur=palette.suivante()),
        DoiventEtreEloignes(eleves[4].identifiant(), eleves[5].identifiant(), 3),
        DoitEviterDernieresRangees(eleves[6].identifiant(), 2),
    ])
    fixes = [PlacementFixe(eleves[7].identifiant(), Position(2, 2), raison="vue")]
    return Scenario(eleves, salle, contraintes, fixes)


def rendu_grille(arrangement: Mapping[Position, str], salle: Salle, eleves: Sequence[Eleve]) -> str:
    """Grille texte : numéro (ou initiales) de l'élève, « . » siège libre, « X » siège désactivé."""
    par_id = {e.identifiant(): e for e in eleves}
    paires = {g for g, _ in salle.colonnes_paires}
    lignes: List[str] = []
    for r in range(salle.rangs):
        cases: List[str] = []
        for c in range(salle.colonnes):
            pos = Position(r, c)
            ident = arrangement.get(pos)
            if salle.est_desactive(pos):
                case = "X"
            elif ident is None:
                case = "."
            elif ident in par_id and par_id[ident].numero() is not None:
                case = str(par_id[ident].numero())
            else:
                case = ident[:3]
            cases.append(f"{case:>3}" + ("" if c in paires else " "))
        lignes.append("".join(cases).rstrip())
    return "\n".join(lignes)


def afficher_resultat(res: ResultatPlacement, salle: Salle, eleves: Sequence[Eleve]) -> None:
    print(res.message)
    print(rendu_grille(res.arrangement, salle, eleves))
    for v in res.violations:
        print(f" ! {v.message}")


def construire_exemple() -> None:
    """
    construit le scénario d'exemple, vérifie sa cohérence et lance le placement.

    affiche la grille obtenue, puis l'export JSON des contraintes et leur
    reconstruction via la fabrique.
    """
    scenario = scenario_exemple()

    compat = verifier_compatibilite_contraintes(scenario.contraintes, scenario.eleves, scenario.salle)
    for conflit in compat.conflits:
        print(f"conflit : {conflit}")

    res = placer_eleves(
        scenario.eleves,
        scenario.salle,
        scenario.contraintes,
        scenario.fixes,
        moteur="backtracking",
        options=OptionsPlacement(graine=42, budget_temps_ms=5_000),
    )
    print("=== placement ===")
    afficher_resultat(res, scenario.salle, scenario.eleves)

    codes = [c.code_machine() for c in scenario.contraintes]
    print("\n=== export JSON des contraintes ===")
    print(json.dumps(codes, ensure_ascii=False, indent=2))

    ctx = ContexteFabrique(salle=scenario.salle, eleves_par_id={e.identifiant(): e for e in scenario.eleves})
    reconstruites = [contrainte_depuis_code(code, ctx) for code in codes]
    if all(c1.code_machine() == c2.code_machine() for c1, c2 in zip(scenario.contraintes, reconstruites)):
        print("\n(reconstruction via fabrique : OK)")


def exporter_exemple() -> str:
    """Scénario d'exemple au format JSON des scénarios (point de départ d'un fichier à éditer)."""
    return json.dumps(scenario_en_dict(scenario_exemple()), ensure_ascii=False, indent=2)
