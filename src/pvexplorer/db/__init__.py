"""Result store backends."""
