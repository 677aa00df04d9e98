"""Claim ingestion and location catalog services."""

from data_claims.services.catalog import SEED_LOCATIONS, LocationCatalogService
from data_claims.services.claims import ClaimIngestionService

__all__ = ["ClaimIngestionService", "LocationCatalogService", "SEED_LOCATIONS"]
