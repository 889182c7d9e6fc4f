"""Concrete adapters for the interfaces in :mod:`cratedigger.interfaces`."""
