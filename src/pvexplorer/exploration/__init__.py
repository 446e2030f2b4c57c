"""Frontier traversal over engine principal variations."""
