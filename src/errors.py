"""Error taxonomy shared by the search and review services.

Every error carries the HTTP status the API maps it to. ``retryable`` marks the
only kinds that may indicate transient backend trouble.
"""


class CampsiteError(Exception):
    status_code = 500
    retryable = False
    default_message = "Internal error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidCoordinate(CampsiteError):
    status_code = 400
    default_message = "Latitude must be within [-90, 90] and longitude within [-180, 180]"


class InvalidRating(CampsiteError):
    status_code = 400
    default_message = "Rating must be an integer between 1 and 5"


class CommentRequiresIdentity(CampsiteError):
    status_code = 400
    default_message = "Only registered users can submit comments"


class CommentTooLong(CampsiteError):
    status_code = 400
    default_message = "Comment must be 1000 characters or less"


class ReasonRequired(CampsiteError):
    status_code = 400
    default_message = "Flag reason is required"


class Unauthenticated(CampsiteError):
    status_code = 401
    default_message = "Invalid or expired token"


class Forbidden(CampsiteError):
    status_code = 403
    default_message = "Not authorized to modify this resource"


class SiteNotFound(CampsiteError):
    status_code = 404
    default_message = "Campsite not found"


class ReviewNotFound(CampsiteError):
    status_code = 404
    default_message = "Review not found"


class AlreadyFlagged(CampsiteError):
    status_code = 409
    default_message = "You have already flagged this review"


class RateLimited(CampsiteError):
    status_code = 429
    default_message = "You can only submit one anonymous rating per campsite per 24 hours"


class SearchUnavailable(CampsiteError):
    status_code = 503
    retryable = True
    default_message = "Search is temporarily unavailable"


class StoreUnavailable(CampsiteError):
    status_code = 503
    retryable = True
    default_message = "Storage is temporarily unavailable"
