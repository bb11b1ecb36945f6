from .ant_system import AntSystem

__all__ = ["AntSystem"]
