"""cat-prep: an mdbook preprocessor for teaching-material books.

Resolves teachers, subjects, materials and tags from a source tree and splices
generated listings back into the book.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
