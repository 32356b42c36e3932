"""
Mamoji — Federated Emoji Directory
===================================
Registers remote ActivityPub servers and keeps a local, periodically
refreshed catalog of their custom emoji, enriched with moderation metadata
(copy permission, sensitivity, author attribution, notes).

Package layout::

    mamoji/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Protocol constants + freshness window
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # servers, emojis, authors
    ├── engine/
    │   ├── errors.py      # Typed error taxonomy
    │   ├── schemas.py     # Pydantic payload validators (pure)
    │   ├── duplicates.py  # Shortcode collision check
    │   ├── freshness.py   # TTL cache gate
    │   └── catalog.py     # Catalog entries, search + grouping
    ├── federation/
    │   ├── client.py      # httpx client + fetch helpers
    │   ├── discovery.py   # NodeInfo two-hop resolver
    │   ├── adapters.py    # Per-family emoji adapters (registry)
    │   └── actor.py       # WebFinger → actor profile resolver
    ├── services/
    │   ├── catalog_service.py         # Sync orchestration (gate → writer)
    │   ├── reconciliation_service.py  # Durable upserts + catalog reads
    │   ├── author_service.py          # Author rows
    │   ├── curation_service.py        # Operator metadata edits
    │   └── export_service.py          # Bulk ZIP download
    └── api/
        ├── main.py        # FastAPI app
        └── routes/        # servers + authors endpoints
"""

__version__ = "0.1.0"
