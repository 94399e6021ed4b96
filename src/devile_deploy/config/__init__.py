"""
Configuration management for deployments.

Contains the Pydantic settings holding the shared deployment descriptor and
the per-environment overlays with their EC2 name-tag table.
"""
