"""maskwatch: live camera face-mask monitoring with a debounced status stream."""

__version__ = "0.3.0"
