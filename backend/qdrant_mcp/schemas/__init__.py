"""Schemas - pydantic models validated at the tool and frame boundaries."""
