class RoyaleError(Exception):
    """Base exception for Code Royale."""

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code
        super().__init__(message)


class ProtocolError(RoyaleError):
    """Inbound message could not be decoded."""

    pass


class QuestionOutOfRangeError(RoyaleError, IndexError):
    """Question index is past the end of the bank."""

    def __init__(self, index: int, count: int):
        super().__init__(
            f"Question {index} out of range (bank has {count})",
            code="question_out_of_range",
        )
        self.index = index
        self.count = count


class QuestionBankError(RoyaleError):
    """Question file is missing or malformed."""

    pass
