"""SupermarketAI: inventory, point of sale and AI insights backend."""

__version__ = "0.1.0"
