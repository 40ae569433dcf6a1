class DocstronError(Exception):
    """Base class for errors surfaced at the HTTP boundary."""

    status_code = 500
    public_message = "Internal server error."


class ValidationError(DocstronError):
    """The uploaded file is missing or violates the upload policy."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.public_message = message


class ConversionError(DocstronError):
    """The external tool failed to run, exited with an error, or produced nothing.

    The detailed message stays in the server logs; clients only ever see
    ``public_message``.
    """

    status_code = 500
    public_message = "Error converting file."


class CapacityError(DocstronError):
    status_code = 503
    public_message = "Server is busy, please retry."
