"""Assets — search, install and dependency resolution for catalog assets."""
