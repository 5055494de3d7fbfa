"""Assessment core: catalog, scoring, narrative, configuration."""
