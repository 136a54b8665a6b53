"""Bearer-token principal resolution."""

from .principal import PrincipalResolver

__all__ = ["PrincipalResolver"]
