"""Package metadata parsing and conditional resolution."""
