"""Cross-cutting infrastructure: errors, events, observability, paths."""
