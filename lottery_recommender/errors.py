"""Exception hierarchy for the draw lifecycle."""


class LotteryError(Exception):
    """Base error for lottery operations."""


# --- Validation ---

class ScheduleError(LotteryError):
    """Schedule cron expression cannot be parsed into draw weekdays."""


class InvalidCombinationError(LotteryError):
    """Generated number text failed one of the format checks."""

    def __init__(self, check: str, text: str):
        self.check = check
        self.text = text
        super().__init__(f"{check}: {text!r}")


class UnsupportedFormatError(LotteryError):
    """No format rules are registered for a lottery code."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Unsupported lottery format: {code}")


# --- Transport ---

class BackendTransportError(LotteryError):
    """Text generation backend unreachable or returned an error status."""


class ResultFetchError(LotteryError):
    """Results API unreachable, non-200, or reported a provider error."""


# --- Parsing ---

class ResultParseError(LotteryError):
    """Results API payload does not have the expected shape."""


class DrawInfoParseError(LotteryError):
    """Draw info API payload does not have the expected shape."""


# --- Consistency ---

class LotteryNotFoundError(LotteryError):
    def __init__(self, key):
        self.key = key
        super().__init__(f"Lottery type not found: {key}")


class MissingDrawResultError(LotteryError):
    """Re-analysis requested for a period with no stored draw result."""


class GenerationFailed(LotteryError):
    """All generation attempts were used up without a valid combination."""

    def __init__(self, attempts: int, last_error: Exception | None = None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Number generation failed after {attempts} attempts: {last_error}"
        )
