"""Read-only HTTP surface over the fee pipeline."""
