"""Typed records and enumerations of the projection stage."""
