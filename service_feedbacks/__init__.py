"""FeedBacks service package."""
