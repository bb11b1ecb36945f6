from .random_search import RandomSearch

__all__ = ["RandomSearch"]
