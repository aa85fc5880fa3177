"""zapgate command line interface."""
