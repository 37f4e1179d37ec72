from .parser import parse_itunesdb

__all__ = ["parse_itunesdb"]
