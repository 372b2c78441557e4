"""Domain services: expense lifecycle, approval workflow and enrichment helpers."""
