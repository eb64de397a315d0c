"""
Studio — Card & Dashboard Service Layer for Integration-Backed BI
==================================================================
Data-bound cards query external integrations (Airflow, Databricks,
Azure Data Factory, Synapse) and are arranged on dashboards.  Cards whose
query changed must be tested against the integration before they can be
saved; a catalog of template cards and dashboards is seeded per integration.

Package layout::

    studio/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Policy constants + legacy enum code tables
    ├── errors.py          # Domain exception taxonomy
    ├── schemas.py         # Pydantic request / response models
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── models.py      # Studio ORM models + external lookup tables
    │   └── repository.py  # Bootstrap-user + integration discovery reads
    └── services/
        ├── signature.py          # Canonical configuration fingerprint
        ├── integration_client.py # Test-query call to the integration service
        ├── access_service.py     # Share-based visibility
        ├── card_service.py       # Test-gated card persistence
        ├── dashboard_service.py  # Dashboards + replace-all placements
        ├── share_service.py      # Share upserts
        ├── seed_catalog.py       # Template card / dashboard definitions
        └── sample_seeder.py      # Idempotent template materialization
"""

__version__ = "0.1.0"
