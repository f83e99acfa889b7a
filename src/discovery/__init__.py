"""Discovery & engagement engine."""
