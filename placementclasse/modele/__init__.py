"""Modèle de données : positions, élèves, salle, placements et résultats."""
