"""fieldrelay GitHub clients."""
