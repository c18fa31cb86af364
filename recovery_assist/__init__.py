"""Page context extraction for the fire recovery assistant."""
