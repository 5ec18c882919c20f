"""Content revisioning and multi-tenant publication pipeline."""
