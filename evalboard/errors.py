class EvalboardError(Exception):
    code = "INTERNAL"
    status_code = 500

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidInput(EvalboardError):
    code = "VALIDATION_ERROR"
    status_code = 400


class AccessDenied(EvalboardError):
    code = "FORBIDDEN"
    status_code = 403


class NotFound(EvalboardError):
    code = "NOT_FOUND"
    status_code = 404


class PayloadMalformed(EvalboardError):
    """Stored calificacion is still not valid JSON after repair."""
    code = "PAYLOAD_MALFORMED"
    status_code = 500
