"""Board geometry, placement legality and trinity detection."""
