"""Application constants."""

USER_AGENT = "ipsmap/0.3 (+open-data; contact: configured-email)"
STAGES = (
    "fetch",
    "reconcile",
    "export",
)
EXIT_SUCCESS = 0
EXIT_EMPTY = 10
EXIT_HARD_FAIL = 20

DEFAULT_SECTOR = "Public"

SOURCE_NAMES = (
    "ips_ecoles",
    "ips_colleges",
    "ips_lycees",
    "localisations",
    "effectifs",
)

# Ordered candidate field names per source. The first non-empty value wins.
DEFAULT_FIELDS = {
    "ips_ecoles": {
        "identifier": ["uai", "numero_ecole", "numero_uai"],
        "ips": ["ips"],
    },
    "ips_colleges": {
        "identifier": ["uai", "numero_college", "numero_uai"],
        "ips": ["ips"],
    },
    "ips_lycees": {
        "identifier": ["uai", "numero_lycee", "numero_uai"],
        "ips": ["ips_etab", "ips_ensemble_gt_pro"],
    },
    "localisations": {
        "identifier": ["numero_uai", "uai"],
        "latitude": ["latitude"],
        "longitude": ["longitude"],
        "denomination": ["denomination_principale"],
        "sector": ["secteur_public_prive_libe", "secteur"],
        "commune": ["libelle_commune", "nom_de_la_commune"],
        "department": ["libelle_departement", "departement"],
        "region": ["libelle_region", "code_region"],
    },
    "effectifs": {
        "identifier": ["numero_uai", "uai", "numero_ecole", "numero_college", "numero_lycee"],
        "students": ["nombre_total_eleves"],
        "classes": ["nombre_total_classes"],
    },
    "ips_record": {
        "denomination": ["denomination_principale", "nom_de_l_etablissment", "nom_de_l_etablissement"],
        "sector": ["secteur"],
        "commune": ["nom_de_la_commune"],
        "department": ["departement"],
        "region": ["academie"],
        "ips_commune": ["ips_commune"],
        "ips_department": ["ips_departement"],
        "ips_academy": ["ips_academie"],
        "ips_national": ["ips_national"],
    },
}

DEFAULT_IPS_BANDS = (
    {"max": 80.0, "color": "#d7191c"},
    {"max": 90.0, "color": "#fdae61"},
    {"max": 100.0, "color": "#ffffbf"},
    {"max": 110.0, "color": "#a6d96a"},
    {"color": "#1a9641"},
)
DEFAULT_SHAPES = {
    "ecole": "circle",
    "college": "square",
    "lycee": "diamond",
}
DEFAULT_ICON = {
    "min_size": 8,
    "max_size": 18,
    "min_zoom": 5,
    "max_zoom": 18,
}

JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "source",
    "event",
    "status",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)
