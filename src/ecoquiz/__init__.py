"""Terminal quiz about recycling and the Sustainable Development Goals."""
