"""Composable HTTP request routing on a radix tree, with middleware and sub-routers."""

__version__ = "0.1.0"
__all__ = ["handlers", "mux", "patterns", "tree", "walk"]