"""Concrete adapters for originmap's external collaborators."""
