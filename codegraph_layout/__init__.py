"""CodeGraph Layout: normalize, cluster and lay out code graphs for rendering."""

__version__ = "0.3.0"
