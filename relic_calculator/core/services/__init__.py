"""Service wiring: the ServiceContainer that builds the calculation graph."""
