"""StockSync - offline-tolerant client for StockGenius.

StockSync mirrors a StockGenius owner's categories and items into a local
cache so the inventory stays browsable without a network connection. Writes
always go to the server first and are only reflected locally once confirmed.
Photos are recompressed to a bounded size before upload.

Usage:
    stocksync configure --server https://your-server.com --token YOUR_TOKEN
    stocksync sync
    stocksync items --search bolt
    stocksync add-item "Bolt M6" --category CATEGORY_ID --photo bolt.jpg
"""

__version__ = "0.1.0"
