"""Blueprint Forge: merge the output of many code generators into one project."""

__version__ = "0.1.0"
