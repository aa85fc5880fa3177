"""Configuration for zapgate."""
