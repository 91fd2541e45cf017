"""Command line entry points for repmed."""
