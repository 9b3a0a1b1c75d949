"""Application services wiring the data layer together."""
