"""Placement d'élèves dans une salle de classe sous contraintes.

Point d'entrée : `placer_eleves`. Les fonctions `valider_arrangement` et
`verifier_compatibilite_contraintes` sont en lecture seule et peuvent être
appelées à tout moment.
"""
from .config import OptionsPlacement, options_depuis_dict
from .contraintes.binaires import DoiventEtreEloignes, DoiventEtreEnPaire, NeDoiventPasEtreEnPaire
from .contraintes.ensemble import JeuContraintes
from .contraintes.unaires import DoitEviterDernieresRangees
from .erreurs import ErreurEntree, ErreurPlacement
from .modele.eleve import Eleve, Genre
from .modele.placement import PlacementFixe
from .modele.position import Position
from .modele.resultat import ResultatPlacement, Violation
from .modele.salle import Salle
from .orchestrateur import (
    TypeMoteur,
    executer_avec_reessais,
    placer_eleves,
    valider_arrangement,
    verifier_compatibilite_contraintes,
)

__version__ = "0.1.0"

__all__ = [
    "OptionsPlacement",
    "options_depuis_dict",
    "DoiventEtreEloignes",
    "DoiventEtreEnPaire",
    "NeDoiventPasEtreEnPaire",
    "DoitEviterDernieresRangees",
    "JeuContraintes",
    "ErreurEntree",
    "ErreurPlacement",
    "Eleve",
    "Genre",
    "PlacementFixe",
    "Position",
    "ResultatPlacement",
    "Violation",
    "Salle",
    "TypeMoteur",
    "executer_avec_reessais",
    "placer_eleves",
    "valider_arrangement",
    "verifier_compatibilite_contraintes",
]
