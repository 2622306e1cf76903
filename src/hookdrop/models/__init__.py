"""Pydantic models for configuration, API payloads and stored records."""
