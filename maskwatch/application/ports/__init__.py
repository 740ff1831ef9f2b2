"""Ports: protocols for the collaborators the pipeline does not own."""
