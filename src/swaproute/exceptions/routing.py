from swaproute.exceptions.base import SwaprouteError


class RoutingError(SwaprouteError):
    """
    Raised when a route search is requested with invalid inputs.
    """
