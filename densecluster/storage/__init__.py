"""Model persistence."""
