"""Errors raised while attributing vault fee revenue"""


class AttributionError(Exception):
    """Base exception for revenue attribution errors"""
    pass


class ResolutionError(AttributionError):
    """A network has no known mapping to the upstream index or client"""
    pass


class UpstreamUnavailable(AttributionError):
    """A remote dependency failed or returned a non-success status"""
    pass


class DivisionByZero(AttributionError, ZeroDivisionError):
    """Pool value is zero at the timestamp of a fee event"""
    pass


class EmptySeries(AttributionError, ValueError):
    """Interpolation attempted on a history with no samples"""
    pass
