"""Per-record error accumulation for a batch."""

from typing import List

from loguru import logger

DEFAULT_SAMPLE_SIZE = 5


class ErrorCollector:
    """
    Collects per-record reconciliation failures without interrupting the batch.

    Every failure is counted, but only the first ``sample_size`` messages are
    kept so a batch full of failures does not flood logs or the sync state.
    """

    def __init__(self, sample_size: int = DEFAULT_SAMPLE_SIZE):
        if sample_size < 0:
            raise ValueError("sample_size must be >= 0")
        self.sample_size = sample_size
        self.count = 0
        self._messages: List[str] = []

    def record(self, email: str, error: BaseException) -> str:
        """
        Record a failure for one directory user.

        Args:
            email: Email of the directory user (for traceability)
            error: Exception raised while reconciling the user

        Returns:
            The formatted error message
        """
        message = f"Failed to sync employee {email}: {error}"
        self.count += 1
        if len(self._messages) < self.sample_size:
            self._messages.append(message)

        logger.bind(email=email, error_type=type(error).__name__).error(message)
        return message

    @property
    def messages(self) -> List[str]:
        """Retained error messages (a prefix of all failures, in order)."""
        return list(self._messages)

    @property
    def dropped(self) -> int:
        """Number of failures counted but not retained."""
        return self.count - len(self._messages)

    def __bool__(self) -> bool:
        return self.count > 0
