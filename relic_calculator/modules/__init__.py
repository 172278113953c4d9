"""Feature modules: calculation engine and dual-path validation."""
