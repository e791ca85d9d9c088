"""Storage and domain services for vocabulary lessons."""
