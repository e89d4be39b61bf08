"""StockGenius - inventory tracking service.

Holds the categories and items collections for each owner and exposes them
over a small JSON API that the ``stocksync`` client mirrors locally.
"""

__version__ = "0.1.0"
