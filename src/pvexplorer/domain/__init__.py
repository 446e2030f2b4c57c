"""Position fingerprints, PV moves and the move graph."""
