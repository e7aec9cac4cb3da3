"""Product catalog service.

A small REST API over a YAML file of product records, with an ORM-style
repository on top of a locked, whole-file record storage.
"""

__version__ = "0.1.0"
