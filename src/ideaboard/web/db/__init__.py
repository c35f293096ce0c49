"""Database connection and schema."""
