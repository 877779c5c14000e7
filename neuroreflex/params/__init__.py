"""Optimizable parameter store."""

from .binding import ParamInfo, ParameterBinding

__all__ = ["ParamInfo", "ParameterBinding"]
