"""Domain layer: immutable relic, context, result and validation models."""
