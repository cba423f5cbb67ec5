"""Monorepo manifest reconciliation and cross-component file unification."""

__version__ = "0.1.0"
