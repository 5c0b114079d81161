"""Pydantic schemas for the turn relay."""
