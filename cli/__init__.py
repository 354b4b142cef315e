"""chatgate command line interface."""
