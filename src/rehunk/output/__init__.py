"""Session renderers: rich terminal tree and JSON."""
