"""ImiTune: search sounds by imitating them."""

__version__ = "0.3.0"
