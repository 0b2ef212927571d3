"""Entity graph: discovery, registry, authorship and validation."""
