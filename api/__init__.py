"""HTTP facade for zapgate."""
