"""ragtool: local document chunking, embedding and lexical retrieval."""

__version__ = "0.1.0"
