class InvalidArgumentError(ValueError):
    """Raised for structurally invalid aggregation arguments.

    ``code`` is a key of ``constants.analytics.ERRORS`` so the HTTP layer can
    translate it without inspecting the message.
    """

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
