"""Resolution core: versions, catalog cache, constraints, providers, resolver."""
