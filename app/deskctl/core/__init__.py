"""Core cache engine, storage and configuration."""
