from __future__ import annotations

from collections.abc import Iterable

# Old job names -> current inclusive names. Only legacy single-job records go
# through this table; job lists are never rewritten.
_JOB_MIGRATIONS: dict[str, str] = {
    # Mise en scène
    "Réalisateur": "Réalisateur.ice",
    "1er Assistant Réalisateur": "1er.ère Assistant.e Réalisateur.ice",
    "2e Assistant Réalisateur": "2e Assistant.e Réalisateur.ice",
    "3e Assistant Réalisateur": "3e Assistant.e Réalisateur.ice",
    # Image
    "Directeur de la photographie": "Directeur.ice de la photographie",
    "Chef opérateur": "Chef.fe opérateur.ice",
    "Cadreur": "Cadreur.se",
    "Opérateur Steadicam": "Opérateur.ice Steadicam",
    "Opérateur Louma": "Opérateur.ice Louma",
    "1er Assistant Caméra (Focus Puller)": "1er.ère Assistant.e Caméra (Focus Puller)",
    "2e Assistant Caméra (Clap/Loader)": "2e Assistant.e Caméra (Clap/Loader)",
    "3e Assistant Caméra": "3e Assistant.e Caméra",
    # Son
    "Ingénieur du Son": "Ingénieur.e du Son",
    "Monteur Son": "Monteur.se Son",
    "Mixeur": "Mixeur.se",
    # Lumière / machinerie
    "Chef Électro (Gaffer)": "Chef.fe Électro (Gaffer)",
    "Électro": "Électricien.ne",
    "Chef Machiniste (Key Grip)": "Chef.fe Machiniste (Key Grip)",
    # Régie
    "Régisseur Général": "Régisseur.se Général.e",
    "Régisseur Adjoint": "Régisseur.se Adjoint.e",
    "Régisseur": "Régisseur.se",
    "Régisseur Transport": "Régisseur.se Transport",
    "Régisseur Plateau": "Régisseur.se Plateau",
    # Décors
    "Chef Décorateur": "Chef.fe Décorateur.ice",
    "Assistant Décorateur": "1er.ère Assistant.e Décorateur.ice",
    "Ensemblière": "Ensemblier.ère",
    "Constructeur Décor": "Constructeur.ice Décor",
    "Menuisier Décor": "Menuisier.ère Décor",
    # Costumes
    "Chef Costumier": "Chef.fe Costumier.ère",
    "Assistant Costumier": "Assistant.e Costumier.ère",
    "Habilleur": "Habilleur.se",
    "Costumier": "Chef.fe Costumier.ère",
    # Maquillage et coiffure
    "Chef Maquilleur": "Chef.fe Maquilleur.se",
    "Maquilleur": "Maquilleur.se",
    "Assistant Maquilleur": "Assistant.e Maquilleur.se",
    "Chef Coiffeur": "Chef.fe Coiffeur.se",
    "Coiffeur": "Coiffeur.se",
    "Perruquier": "Perruquier.ère",
    # Production
    "Producteur": "Producteur.ice",
    "Directeur de Production": "Directeur.ice de Production",
    "Assistant de Production": "Assistant.e de Production",
    "Administrateur de Production": "Administrateur.ice de Production",
    # Post-production
    "Monteur Image": "Monteur.se Image",
    "Assistant Monteur": "Assistant.e Monteur.se",
    "Étalonneur": "Étalonneur.se",
    "Superviseur VFX": "Superviseur.e VFX",
    "Graphiste VFX": "Artiste VFX",
    # Autres spécialités
    "Cascadeur": "Cascadeur.se",
    "Coordinateur Stunts": "Coordinateur.ice Cascades",
    "Dresseur Animalier": "Dresseur.se Animalier.ère",
    "Making-of": "Vidéaste Making-of",
    "Chef Cuisinier Plateau": "Chef.fe Cuisinier.ère Plateau",
}


def migrate_job_title(job_title: str) -> str:
    return _JOB_MIGRATIONS.get(job_title, job_title)


def needs_migration(job_title: str) -> bool:
    return job_title in _JOB_MIGRATIONS


def normalize_job_titles(
    job_titles: Iterable[str] | None,
    job_title: str | None = None,
) -> list[str]:
    """Return the job list, falling back to the legacy single job field.

    A non-empty ``job_titles`` wins and is returned in its original order.
    Otherwise a non-blank legacy ``job_title`` becomes a one-element list,
    migrated to its current name.
    """
    if job_titles:
        return list(job_titles)
    if job_title and job_title.strip():
        return [migrate_job_title(job_title.strip())]
    return []
