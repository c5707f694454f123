"""Storage adapters for site records (subscribers, contact submissions)."""
