"""Generators for Qt meta-object tables, qrc resource data and plugin metadata."""

__version__ = "0.1.0"
__all__ = ["qbjs", "qrc", "metaobject", "declarations", "generator"]