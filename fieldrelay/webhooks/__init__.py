"""fieldrelay webhook handling."""
