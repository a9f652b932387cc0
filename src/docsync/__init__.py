"""docsync: documentation patch synthesis and validation from code diffs."""

__version__ = "0.1.0"
