"""MovieFinder: free-text movie discovery with per-result enrichment."""

__version__ = "1.0.0"
