"""Domain modules of the reward and marketplace core."""
