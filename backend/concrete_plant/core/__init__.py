"""
Core package for shared infrastructure.

Holds configuration, structured logging setup and other cross-cutting
utilities used by the API, services and database layers.
"""
