"""
Error taxonomy for Recommendation Service
"""


class RecommendationError(Exception):
    """Base error carrying an HTTP status and a service error code"""

    status: int = 500
    code: int = -50000

    def __init__(self, message: str, code: int = None, status: int = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status is not None:
            self.status = status


class DataUnavailable(RecommendationError):
    """
    The backing store could not be reached or a read timed out.

    This is the only error that leaves the recommendation engine; callers
    should retry or serve a degraded feed.
    """

    status = 503
    code = -50300


class MalformedCandidate(RecommendationError):
    """A store row is missing required fields; the record is dropped"""

    status = 500
    code = -50001
