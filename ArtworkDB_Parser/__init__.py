from .parser import parse_artworkdb

__all__ = ["parse_artworkdb"]
