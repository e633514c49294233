"""Exception hierarchy for the tutor core."""


class SoftExamTutorError(Exception):
    """Base exception for all tutor errors."""


class SessionInProgressError(SoftExamTutorError):
    """Raised when a practice session is started while another is running."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Practice session {session_id} is still in progress")


class NoActiveSessionError(SoftExamTutorError):
    """Raised when an answer is submitted with no session in progress."""

    def __init__(self):
        super().__init__("No practice session in progress")
