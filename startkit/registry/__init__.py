"""Registry — the asset catalog index and module fetching."""
