"""
Database package initialization.

The package follows a modular structure:
- base: declarative base and shared mixins
- connection: async engine, session factory and the request dependency
- models: ORM models for sites, recipes, orders, tasks and operation logs
"""

# Import submodules explicitly when needed to avoid circular dependencies

__all__ = []
