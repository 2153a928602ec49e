"""HTTP surface over the lifecycle coordinator."""
