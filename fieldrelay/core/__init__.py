"""fieldrelay relay pipeline."""
