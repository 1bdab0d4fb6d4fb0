"""LexiQuest dictionary API."""
__version__ = "2.0.0"
