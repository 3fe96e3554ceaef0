"""Infrastructure layer: config, catalog, transports, extraction, markers."""
