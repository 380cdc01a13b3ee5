"""Tour Guide backend: nearby places, routing and live turn-by-turn guidance."""

__version__ = "1.0.0"
