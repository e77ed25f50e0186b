"""Source adapters and the machinery they share."""
