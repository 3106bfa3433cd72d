class VotingError(Exception):
    """
    Base class for every failure the vote-casting pipeline reports to a caller.

    'retryable' tells the caller whether the same request may succeed later.
    Eligibility and duplicate errors describe a final, correct state and are
    never retried.
    """
    code = "voting_error"
    retryable = False
    default_message = "The vote could not be processed."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotEligible(VotingError):
    code = "not_eligible"
    default_message = "You are not eligible to vote in this election."


class DuplicateVote(VotingError):
    code = "duplicate_vote"
    default_message = "You have already voted in this election."


class CandidateMismatch(VotingError):
    code = "candidate_mismatch"
    default_message = "This candidate is not running in this election."


class StorageUnavailable(VotingError):
    code = "storage_unavailable"
    retryable = True
    default_message = "The ledger is temporarily unavailable. Please try again."


class InvalidStatusTransition(VotingError):
    code = "invalid_status_transition"
    default_message = "Completed elections cannot change status."


class CandidateLocked(VotingError):
    code = "candidate_locked"
    default_message = "Candidates cannot be changed once the election is completed."


class ProviderDispatchFailed(Exception):
    """
    Raised by a notification provider when a single send fails.
    'error_text' is the provider's raw answer and is stored verbatim in the
    notification log.
    """

    def __init__(self, error_text):
        self.error_text = str(error_text)
        super().__init__(self.error_text)
