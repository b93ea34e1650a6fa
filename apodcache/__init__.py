"""Read-through cache for NASA's Astronomy Picture of the Day."""
