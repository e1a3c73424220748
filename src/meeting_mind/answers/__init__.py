"""Answer generation, parsing and presentation."""
