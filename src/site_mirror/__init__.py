"""Mirror a published site into a self-contained, relocatable zip archive."""

__version__ = "0.1.0"
