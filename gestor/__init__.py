"""Storage and Flask blueprints for managing church cell groups, networks and supervisors."""

__version__ = "0.1.0"